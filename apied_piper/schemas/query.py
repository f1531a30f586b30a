# File: apied_piper/schemas/query.py

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field


class QueryOptions(BaseModel):
    """Listing options, already translated to model attribute names."""

    where: Dict[str, Any] = Field(default_factory=dict)
    sort: List[Tuple[str, int]] = Field(default_factory=list)
    # wire names, applied when rendering
    select: Optional[Dict[str, int]] = None
    skip: Optional[int] = None
    limit: Optional[int] = None
    count: bool = False
