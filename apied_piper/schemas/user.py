# File: apied_piper/schemas/user.py

from datetime import datetime, timezone
from typing import Any, List

from pydantic import BaseModel, Field, field_validator

# wire name -> model attribute
USER_FIELDS = {
    "_id": "id",
    "name": "name",
    "email": "email",
    "pendingTasks": "pending_tasks",
    "dateCreated": "date_created",
}

USER_FIELD_TYPES = {
    "id": "id",
    "name": "text",
    "email": "text",
    "pending_tasks": "ids",
    "date_created": "date",
}


class UserPayload(BaseModel):
    """
    Body of POST / PUT /users.

    Fields stay loosely typed; the service decides what is acceptable so
    clients get the same messages whatever shape they sent.
    """

    name: Any = None
    email: Any = None
    pendingTasks: Any = None


class UserRead(BaseModel):
    id: str = Field(serialization_alias="_id")
    name: str
    email: str
    pending_tasks: List[str] = Field(default_factory=list, serialization_alias="pendingTasks")
    date_created: datetime = Field(serialization_alias="dateCreated")

    class Config:
        from_attributes = True

    @field_validator("date_created")
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        # SQLite hands back naive values
        return v.replace(tzinfo=timezone.utc) if v.tzinfo is None else v
