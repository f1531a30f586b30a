# File: apied_piper/core/config.py

import os
from functools import lru_cache
from typing import List

from pydantic import BaseModel, ConfigDict, field_validator


class Settings(BaseModel):
    # env-derived defaults are strings and need coercing too
    model_config = ConfigDict(validate_default=True)

    # Basic app info
    PROJECT_NAME: str = "APIed Piper"
    VERSION: str = "0.1.0"

    api_prefix: str = "/api"

    # CORS ("*" keeps the API open to any front end)
    cors_origins: List[str] = os.getenv("CORS_ORIGINS", "*")

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./apied_piper.db")
    database_echo: bool = os.getenv("DATABASE_ECHO", "false")

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # GET /tasks without an explicit limit
    default_task_limit: int = 100

    # Server
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "3000"))

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):
        if isinstance(v, str):
            return [i.strip() for i in v.split(",") if i.strip()]
        if isinstance(v, list):
            return v
        return []

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
