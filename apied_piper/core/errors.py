# File: apied_piper/core/errors.py

"""
Typed failures raised by the store, the reconciler and the services.

Each failure knows its HTTP status and renders to the same
``{"message": ..., "data": ...}`` envelope every endpoint replies with.
"""

from typing import Any, Dict, List, Optional


class ApiError(Exception):
    """Base class for failures that map onto a client-visible response."""

    status_code: int = 400

    def __init__(self, message: str, data: Any = None):
        self.message = message
        self.data = data
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "data": self.data}


class NotFoundError(ApiError):
    """An entity id does not resolve."""

    status_code = 404


class InvalidArgumentError(ApiError):
    """Malformed id, missing required field, unparseable date or list."""


class ConflictError(ApiError):
    """Duplicate unique field, or a row changed under a concurrent request."""


class MissingReferenceError(ApiError):
    """Some of the referenced task ids do not exist."""

    def __init__(self, missing_ids: List[str], message: Optional[str] = None):
        self.missing_ids = list(missing_ids)
        super().__init__(
            message or "Some tasks were not found",
            {"missingTaskIds": self.missing_ids},
        )
