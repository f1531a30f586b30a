import uvicorn

from apied_piper.core.config import settings

if __name__ == "__main__":
    print(f"Starting {settings.PROJECT_NAME} on http://{settings.host}:{settings.port}")
    print(f"Docs available at: http://localhost:{settings.port}/docs")

    uvicorn.run(
        "apied_piper.main:app",
        host=settings.host,
        port=settings.port,
    )
