# File: apied_piper/models/base.py

import secrets
from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


def new_object_id() -> str:
    """24 lowercase hex characters, the id format both collections use."""
    return secrets.token_hex(12)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Rows are treated as documents: string ids, no foreign keys, and a list
    column where a document store would keep an array.
    """
    pass
