# File: apied_piper/api/deps.py

from collections.abc import Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from apied_piper.core.config import Settings
from apied_piper.db.session import Database
from apied_piper.services.task_service import TaskService
from apied_piper.services.unit_of_work import UnitOfWork
from apied_piper.services.user_service import UserService


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(database: Database = Depends(get_database)) -> Generator[Session, None, None]:
    """
    FastAPI dependency that provides a SQLAlchemy session.

    Usage in route functions:
        db: Session = Depends(get_db)
    """
    with database.session_scope() as db:
        yield db


def get_uow(db: Session = Depends(get_db)) -> UnitOfWork:
    return UnitOfWork(db)


def get_user_service(uow: UnitOfWork = Depends(get_uow)) -> UserService:
    return UserService(uow)


def get_task_service(uow: UnitOfWork = Depends(get_uow)) -> TaskService:
    return TaskService(uow)
