# File: apied_piper/models/task.py

"""
Task model.

``assigned_user`` is "" when nobody owns the task, and
``assigned_user_name`` caches the owner's display name ("unassigned"
otherwise).
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from apied_piper.models.base import Base, new_object_id, utcnow

UNASSIGNED_NAME = "unassigned"


class Task(Base):
    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String(24), primary_key=True, default=new_object_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    deadline: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    assigned_user: Mapped[str] = mapped_column(String(24), nullable=False, default="", index=True)
    assigned_user_name: Mapped[str] = mapped_column(
        String(255), nullable=False, default=UNASSIGNED_NAME
    )

    date_created: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
