# File: apied_piper/api/query.py

"""
Query-string parsing for the listing endpoints.

``where``, ``sort`` and ``select`` arrive as JSON text. Only the fields a
resource exposes and a fixed set of operators are accepted; everything
else is rejected instead of being handed to the store.
"""

import json
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from apied_piper.core.errors import InvalidArgumentError
from apied_piper.schemas.query import QueryOptions
from apied_piper.services.normalize import parse_bool, parse_deadline

WHERE_OPERATORS = {"$in", "$nin", "$ne", "$gt", "$gte", "$lt", "$lte"}
TRUE_STRINGS = {"true", "1"}
FALSE_STRINGS = {"false", "0"}


def parse_json_param(value: Optional[str], name: str) -> Any:
    if value is None or value == "":
        return None
    try:
        return json.loads(value)
    except ValueError:
        raise InvalidArgumentError(f'Invalid JSON for "{name}" parameter')


def parse_non_negative_int(value: Optional[str], name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except ValueError:
        number = -1.0
    if not number.is_integer() or number < 0:
        raise InvalidArgumentError(f'"{name}" must be a non-negative integer')
    return int(number)


def parse_query_options(
    fields: Mapping[str, str],
    field_types: Mapping[str, str],
    *,
    where: Optional[str] = None,
    sort: Optional[str] = None,
    select: Optional[str] = None,
    filter: Optional[str] = None,
    skip: Optional[str] = None,
    limit: Optional[str] = None,
    count: Optional[str] = None,
    default_limit: Optional[int] = None,
) -> QueryOptions:
    """
    Build QueryOptions from raw query-string values.

    ``fields`` maps wire names to model attributes and ``field_types``
    maps attributes to one of "id", "ids", "text", "bool" or "date", which
    decides how ``where`` values are checked. ``filter`` is the legacy
    spelling of ``select``. A ``limit`` of 0 means no limit.
    """
    count_only = parse_bool(count) if count is not None else False
    limit_value = parse_non_negative_int(limit, "limit")
    if limit_value is None and not count_only:
        limit_value = default_limit

    return QueryOptions(
        where=_parse_where(parse_json_param(where, "where"), fields, field_types),
        sort=_parse_sort(parse_json_param(sort, "sort"), fields),
        select=parse_select(select, filter, fields),
        skip=parse_non_negative_int(skip, "skip"),
        limit=None if count_only else limit_value,
        count=count_only,
    )


def parse_select(
    select: Optional[str],
    filter: Optional[str],
    fields: Mapping[str, str],
) -> Optional[Dict[str, int]]:
    name = "select" if select is not None else "filter"
    raw = parse_json_param(select if select is not None else filter, name)
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise InvalidArgumentError(f'"{name}" must be a JSON object')

    projection: Dict[str, int] = {}
    for field, flag in raw.items():
        _check_field(field, fields)
        if flag not in (0, 1, True, False):
            raise InvalidArgumentError(f'"{name}" values must be 0 or 1')
        projection[field] = int(flag)

    modes = {flag for field, flag in projection.items() if field != "_id"}
    if len(modes) > 1:
        raise InvalidArgumentError(f'"{name}" cannot mix inclusion and exclusion')
    return projection


def apply_projection(doc: Dict[str, Any], select: Optional[Dict[str, int]]) -> Dict[str, Any]:
    if not select:
        return doc

    inclusive = any(flag for field, flag in select.items() if field != "_id")
    if inclusive:
        keep = {field for field, flag in select.items() if flag}
        if select.get("_id", 1):
            keep.add("_id")
        return {key: value for key, value in doc.items() if key in keep}

    drop = {field for field, flag in select.items() if not flag}
    return {key: value for key, value in doc.items() if key not in drop}


def _check_field(field: str, fields: Mapping[str, str]) -> str:
    if field not in fields:
        raise InvalidArgumentError(f'Unknown field "{field}"')
    return fields[field]


def _parse_where(raw: Any, fields: Mapping[str, str], field_types: Mapping[str, str]) -> Dict[str, Any]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise InvalidArgumentError('"where" must be a JSON object')

    where: Dict[str, Any] = {}
    for field, condition in raw.items():
        attr = _check_field(field, fields)
        coerce = _coercer(field, field_types.get(attr, "text"))

        if isinstance(condition, dict):
            translated = {}
            for op, operand in condition.items():
                if op not in WHERE_OPERATORS:
                    raise InvalidArgumentError(f'Unsupported operator "{op}" in "where"')
                if op in ("$in", "$nin"):
                    if not isinstance(operand, list):
                        raise InvalidArgumentError(f'"{op}" expects an array')
                    translated[op] = [coerce(item) for item in operand]
                else:
                    translated[op] = coerce(operand)
            where[attr] = translated
        elif isinstance(condition, list) and field_types.get(attr) == "ids":
            # exact match on the whole list
            where[attr] = [coerce(item) for item in condition]
        else:
            where[attr] = coerce(condition)
    return where


def _coercer(field: str, kind: str):
    """Return a function checking one ``where`` value against a field's type."""

    def as_text(value: Any) -> str:
        if not isinstance(value, str):
            raise InvalidArgumentError(f'Expected a string for "{field}" in "where"')
        return value

    def as_id(value: Any) -> str:
        # ids are stored lowercase
        return as_text(value).strip().lower()

    def as_bool(value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, (str, int)):
            normalized = str(value).strip().lower()
            if normalized in TRUE_STRINGS:
                return True
            if normalized in FALSE_STRINGS:
                return False
        raise InvalidArgumentError(f'Expected a boolean for "{field}" in "where"')

    def as_date(value: Any) -> datetime:
        parsed = None
        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            parsed = parse_deadline(value)
        if parsed is None:
            raise InvalidArgumentError(f'Invalid date for "{field}" in "where"')
        return parsed

    if kind in ("id", "ids"):
        return as_id
    if kind == "bool":
        return as_bool
    if kind == "date":
        return as_date
    return as_text


def _parse_sort(raw: Any, fields: Mapping[str, str]):
    if raw is None:
        return []
    if not isinstance(raw, dict):
        raise InvalidArgumentError('"sort" must be a JSON object')

    items = []
    for field, direction in raw.items():
        attr = _check_field(field, fields)
        if direction in (1, "1", "asc", "ascending"):
            items.append((attr, 1))
        elif direction in (-1, "-1", "desc", "descending"):
            items.append((attr, -1))
        else:
            raise InvalidArgumentError(f'Invalid sort direction for "{field}"')
    return items
