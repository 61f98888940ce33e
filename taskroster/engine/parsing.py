"""Field-level input coercion for request payloads and query parameters.

These helpers accept the loosely typed values that arrive in request bodies
(JSON booleans or strings, epoch numbers or ISO strings) and turn them into
Python values, raising BadRequest for values that cannot be interpreted.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from taskroster.errors import BadRequest, DocumentCastError

_EPOCH = datetime(1970, 1, 1)


def parse_boolean(value: Any, default: bool) -> bool:
    """Coerce a boolean-like value.

    Native booleans pass through and "true"/"false" are matched case-insensitively;
    anything else (including a missing value) yields `default`.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return default


def _from_epoch_millis(millis: float) -> datetime:
    if not math.isfinite(millis):
        raise ValueError("timestamp is not finite")
    return _EPOCH + timedelta(milliseconds=millis)


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def to_datetime(value: Any) -> datetime:
    """Convert a timestamp-like value to a naive UTC datetime.

    Preference order: native datetime, number (epoch milliseconds), numeric
    string (epoch milliseconds), ISO-8601 string.

    Raises:
        ValueError: If the value does not denote a valid point in time
    """
    if isinstance(value, datetime):
        return _to_naive_utc(value)
    if isinstance(value, bool):
        raise ValueError("booleans are not timestamps")
    try:
        if isinstance(value, (int, float)):
            return _from_epoch_millis(value)
        if isinstance(value, str):
            text = value.strip()
            try:
                millis = float(text)
            except ValueError:
                millis = None
            if millis is not None:
                return _from_epoch_millis(millis)
            if text.endswith(("Z", "z")):
                text = text[:-1] + "+00:00"
            return _to_naive_utc(datetime.fromisoformat(text))
    except OverflowError as e:
        raise ValueError(str(e)) from e
    raise ValueError(f"unsupported timestamp type {type(value).__name__}")


def parse_date_value(value: Any, field_name: str) -> Optional[datetime]:
    """Parse a date field from a request payload.

    Missing, null and empty values mean "no value" and return None; whether that
    is acceptable is decided by the store's required-field validation.

    Raises:
        BadRequest: If a value is present but is not a valid point in time
    """
    if value is None or value == "":
        return None
    try:
        return to_datetime(value)
    except ValueError:
        raise BadRequest(f'Invalid date supplied for "{field_name}"')


def coerce_text(value: Any, field_name: str) -> Optional[str]:
    """Cast a scalar payload value to the string stored in a text field.

    Raises:
        DocumentCastError: For objects and arrays
    """
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    raise DocumentCastError(field_name, value)
