# File: apied_piper/api/responses.py

from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from apied_piper.api.query import apply_projection


def send_response(status_code: int, message: str, data: Any = None) -> JSONResponse:
    """Every reply, success or failure, is ``{"message": ..., "data": ...}``."""
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({"message": message, "data": data}),
    )


def render(
    schema: type[BaseModel],
    entity: Any,
    select: Optional[Dict[str, int]] = None,
) -> Dict[str, Any]:
    doc = schema.model_validate(entity).model_dump(by_alias=True, mode="json")
    return apply_projection(doc, select)
