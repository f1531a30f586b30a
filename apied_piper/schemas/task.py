# File: apied_piper/schemas/task.py

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator

# wire name -> model attribute
TASK_FIELDS = {
    "_id": "id",
    "name": "name",
    "description": "description",
    "deadline": "deadline",
    "completed": "completed",
    "assignedUser": "assigned_user",
    "assignedUserName": "assigned_user_name",
    "dateCreated": "date_created",
}

# model attribute -> value type accepted in "where"
TASK_FIELD_TYPES = {
    "id": "id",
    "name": "text",
    "description": "text",
    "deadline": "date",
    "completed": "bool",
    "assigned_user": "id",
    "assigned_user_name": "text",
    "date_created": "date",
}


class TaskPayload(BaseModel):
    """
    Body of POST / PUT /tasks.

    ``assignedUserName`` is accepted for compatibility but ignored: the
    cached name always comes from the assigned user record.
    """

    name: Any = None
    description: Any = None
    deadline: Any = None
    completed: Any = None
    assignedUser: Any = None
    assignedUserName: Any = None


class TaskRead(BaseModel):
    id: str = Field(serialization_alias="_id")
    name: str
    description: str = ""
    deadline: datetime
    completed: bool = False
    assigned_user: str = Field(default="", serialization_alias="assignedUser")
    assigned_user_name: str = Field(default="unassigned", serialization_alias="assignedUserName")
    date_created: datetime = Field(serialization_alias="dateCreated")

    class Config:
        from_attributes = True

    @field_validator("deadline", "date_created")
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        return v.replace(tzinfo=timezone.utc) if v.tzinfo is None else v
