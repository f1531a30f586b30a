"""
Database initialization helpers.

Models are imported so their tables get registered on Base.metadata.
"""

import logging

from apied_piper.db.session import Database
from apied_piper.models.base import Base
from apied_piper.models import task, user  # noqa: F401

logger = logging.getLogger(__name__)


def init_db(database: Database) -> None:
    """
    Create the users and tasks tables if they do not exist yet.
    """
    Base.metadata.create_all(bind=database.engine)
    logger.info("Database tables ready")
