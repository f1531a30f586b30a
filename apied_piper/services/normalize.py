# File: apied_piper/services/normalize.py

"""
Input normalization shared by the user and task services.

Request bodies come from loosely-typed clients (forms, scripts, SPAs), so
ids may arrive as lists, JSON-encoded strings, or nested mixtures of both.
Everything here turns that into plain Python values or raises
InvalidArgumentError naming the offending input.
"""

import json
import re
from datetime import datetime, timezone
from typing import Any, List, Optional

from apied_piper.core.errors import InvalidArgumentError

OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")

UNASSIGNED_SENTINELS = {"", "unassigned", "null", "undefined"}


def is_valid_object_id(value: Any) -> bool:
    return isinstance(value, str) and bool(OBJECT_ID_RE.match(value))


def ensure_object_id(value: Any, label: str) -> str:
    """Validate an id and return it in the lowercase form it is stored in."""
    if not is_valid_object_id(value):
        raise InvalidArgumentError(f"Invalid {label} id")
    return value.lower()


def sanitize_id_list(values: Any) -> List[str]:
    """
    Flatten, validate and de-duplicate a task id list.

    Accepts None, a single id, a list (possibly nested), or a string
    holding a JSON array. Order of first appearance is kept.
    """
    result: List[str] = []
    seen = set()

    for task_id in _iter_ids(values):
        if task_id not in seen:
            seen.add(task_id)
            result.append(task_id)

    return result


def _iter_ids(values: Any):
    if values is None:
        return

    if isinstance(values, (list, tuple)):
        for value in values:
            yield from _iter_ids(value)
        return

    text = str(values).strip()
    if not text:
        return

    if text.startswith("["):
        try:
            parsed = json.loads(text)
        except ValueError:
            raise InvalidArgumentError(f"Invalid task id list: {text}")
        yield from _iter_ids(parsed if isinstance(parsed, list) else [parsed])
        return

    if not is_valid_object_id(text):
        raise InvalidArgumentError(f"Invalid task id: {text}")

    yield text.lower()


def normalize_assigned_user(value: Any) -> str:
    """Map the many spellings of "nobody" to ""; otherwise trim."""
    if value is None:
        return ""

    text = str(value).strip()
    if text.lower() in UNASSIGNED_SENTINELS:
        return ""
    return text.lower() if is_valid_object_id(text) else text


def parse_bool(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value

    normalized = str(value).strip().lower()
    if normalized in ("true", "1"):
        return True
    if normalized in ("false", "0"):
        return False
    return bool(value)


def parse_deadline(value: Any) -> Optional[datetime]:
    """
    Parse a deadline into an aware UTC datetime, or None when unusable.

    Numbers (and numeric strings) are epoch milliseconds; other strings
    must be ISO-8601.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = _from_epoch_ms(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            parsed = _from_epoch_ms(float(text))
        except ValueError:
            try:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                return None

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _from_epoch_ms(value: float) -> Optional[datetime]:
    try:
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def require_text(value: Any) -> str:
    """Trimmed string form of a required text field ("" when missing)."""
    if value is None:
        return ""
    return str(value).strip()
