# File: apied_piper/models/user.py

"""
User model.

``pending_tasks`` mirrors every task whose ``assigned_user`` points back
at this user and that is not completed. Nothing at the database level
enforces that; the assignment reconciler does.
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from apied_piper.models.base import Base, new_object_id, utcnow


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(24), primary_key=True, default=new_object_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)

    # Ordered task ids; always replaced, never mutated in place, so the
    # ORM sees the change.
    pending_tasks: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    date_created: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
