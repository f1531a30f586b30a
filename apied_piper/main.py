# apied_piper/main.py

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from apied_piper.api.api import api_router
from apied_piper.api.responses import send_response
from apied_piper.core.config import Settings, get_settings
from apied_piper.core.errors import ApiError
from apied_piper.core.logging_config import configure_logging
from apied_piper.db.init_db import init_db
from apied_piper.db.session import Database

logger = logging.getLogger(__name__)


def create_application(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = database or Database(settings.database_url, echo=settings.database_echo)
        init_db(db)
        app.state.database = db
        logger.info("%s %s ready", settings.PROJECT_NAME, settings.VERSION)
        try:
            yield
        finally:
            # a handle passed in belongs to the caller
            if database is None:
                db.close()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.started_at = time.time()

    # ---------- CORS ----------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["X-Requested-With", "X-HTTP-Method-Override", "Content-Type", "Accept"],
    )

    # ---------- ERRORS ----------
    register_exception_handlers(app)

    # ---------- ROUTERS ----------
    @app.get("/healthz", summary="Health check")
    def healthz():
        return send_response(status.HTTP_200_OK, "OK", None)

    app.include_router(api_router, prefix=settings.api_prefix)

    return app


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        logger.warning("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.message)
        return send_response(exc.status_code, exc.message, exc.data)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = []
        for error in exc.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            errors.append(f"{field}: {error['msg']}")
        return send_response(status.HTTP_400_BAD_REQUEST, "Invalid request: " + "; ".join(errors))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return send_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unexpected error on %s %s", request.method, request.url.path)
        return send_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server error")


app = create_application()
