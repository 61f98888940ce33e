"""Query options parsing shared by the Users and Tasks list endpoints.

Turns the raw, untyped query-string parameters of a list request into a
validated `QueryOptions`:

- `where`: JSON filter document (default: match everything)
- `sort`: JSON object of field -> direction (1/-1, "asc"/"desc")
- `select`: JSON projection of field -> 0/1. `filter` is accepted as a legacy
  alias for the same option; when both are sent only `select` is read.
- `skip`, `limit`: non-negative integers
- `count`: "true" to return the number of matches instead of documents
"""

import json
import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from taskroster.errors import BadRequest
from taskroster.models.constants import MAX_QUERY_NUMBER, PROJECTION_PARAM_NAMES

_SORT_DIRECTIONS = {
    "asc": 1,
    "ascending": 1,
    "desc": -1,
    "descending": -1,
}


@dataclass(frozen=True)
class QueryOptions:
    """Typed query descriptor produced by `build_query_options`."""

    filter: Dict[str, Any]
    sort: Optional[Dict[str, int]] = None
    projection: Optional[Dict[str, int]] = None
    skip: Optional[int] = None
    limit: Optional[int] = None
    count: bool = False

    @property
    def returns_nothing(self) -> bool:
        """True for a `limit=0` listing, which is answered without querying the store."""
        return not self.count and self.limit == 0


def parse_json_param(value: Any, param_name: str) -> Any:
    """Decode a JSON-encoded parameter; None when the parameter is absent."""
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except (ValueError, RecursionError):
        raise BadRequest(f'Invalid JSON in "{param_name}" parameter')


def parse_number_param(value: Any, param_name: str) -> Optional[int]:
    """Parse a non-negative integer parameter; None when absent."""
    if value is None:
        return None
    message = f'Parameter "{param_name}" must be a non-negative integer'
    if isinstance(value, bool):
        raise BadRequest(message)
    if isinstance(value, int):
        parsed = value
    else:
        parsed = _parse_integral(value)
        if parsed is None:
            raise BadRequest(message)
    if parsed < 0 or parsed > MAX_QUERY_NUMBER:
        raise BadRequest(message)
    return parsed


def _parse_integral(value: Any) -> Optional[int]:
    """Exact int for an integral number or string ("10", "1e1"); None otherwise."""
    if isinstance(value, float):
        number = value
    else:
        text = str(value).strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
    if not math.isfinite(number) or not number.is_integer():
        return None
    return int(number)


def parse_count_param(value: Any) -> bool:
    """Count mode is on only for a boolean True or a case-insensitive "true"."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def _read_projection_param(params: Mapping[str, Any]) -> Tuple[str, Any]:
    for name in PROJECTION_PARAM_NAMES:
        if params.get(name) is not None:
            return name, params[name]
    return PROJECTION_PARAM_NAMES[0], None


def _normalize_projection(raw: Any, param_name: str) -> Optional[Dict[str, int]]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise BadRequest(f'Invalid "{param_name}" parameter: expected a JSON object')

    projection: Dict[str, int] = {}
    for field, flag in raw.items():
        if isinstance(flag, bool) or flag in (0, 1):
            projection[field] = int(flag)
        else:
            raise BadRequest(f'Invalid "{param_name}" parameter: "{field}" must be 0 or 1')

    modes = {flag for field, flag in projection.items() if field != "_id"}
    if len(modes) > 1:
        raise BadRequest(f'Invalid "{param_name}" parameter: cannot mix inclusion and exclusion')
    return projection


def parse_projection_param(params: Mapping[str, Any]) -> Optional[Dict[str, int]]:
    """Parse the `select` (or legacy `filter`) projection parameter."""
    param_name, value = _read_projection_param(params)
    return _normalize_projection(parse_json_param(value, param_name), param_name)


def _normalize_sort(raw: Any) -> Optional[Dict[str, int]]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise BadRequest('Invalid "sort" parameter: expected a JSON object')

    sort: Dict[str, int] = {}
    for field, direction in raw.items():
        if isinstance(direction, str):
            normalized = _SORT_DIRECTIONS.get(direction.strip().lower())
        elif not isinstance(direction, bool) and direction in (1, -1):
            normalized = int(direction)
        else:
            normalized = None
        if normalized is None:
            raise BadRequest(f'Invalid sort direction for "{field}" in "sort" parameter')
        sort[field] = normalized
    return sort


def build_query_options(params: Mapping[str, Any], default_limit: Optional[int] = None) -> QueryOptions:
    """Build a validated QueryOptions from raw request parameters.

    Args:
        params: Raw query parameters (e.g. `request.query_params`)
        default_limit: Limit applied when none is given (None for unbounded)

    Returns:
        QueryOptions; `limit` is None (unbounded) whenever `count` is set

    Raises:
        BadRequest: For malformed JSON, bad numbers, or a projection while counting
    """
    where = parse_json_param(params.get("where"), "where")
    if where is None:
        where = {}
    if not isinstance(where, dict):
        raise BadRequest('Invalid JSON in "where" parameter')

    sort = _normalize_sort(parse_json_param(params.get("sort"), "sort"))
    projection_param, _ = _read_projection_param(params)
    projection = parse_projection_param(params)
    skip = parse_number_param(params.get("skip"), "skip")
    limit = parse_number_param(params.get("limit"), "limit")
    count = parse_count_param(params.get("count"))

    if count and projection:
        raise BadRequest(f'Cannot use "{projection_param}" parameter when "count" is true')

    if count:
        limit = None
    elif limit is None:
        limit = default_limit

    return QueryOptions(
        filter=where,
        sort=sort,
        projection=projection,
        skip=skip,
        limit=limit,
        count=count,
    )
