"""Translation of document-style queries to SQLAlchemy.

Filters are JSON documents in the familiar document-store dialect, e.g.
`{"completed": false, "deadline": {"$lt": 1700000000000}}` or
`{"$or": [{"assignedUser": ""}, {"pendingTasks": {"$in": [...]}}]}`.
Field names are the wire names of the documents (`_id`, `assignedUser`, ...).
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, DateTime, and_, asc, desc, exists, false, not_, or_, true
from sqlalchemy.sql.elements import ColumnElement

from taskroster.database.models import UserDB, UserPendingTaskDB, is_valid_id
from taskroster.engine.parsing import to_datetime
from taskroster.errors import BadRequest, DocumentCastError
from taskroster.models.constants import MAX_FILTER_DEPTH

_COMPARISONS = {
    "$gt": lambda column, value: column > value,
    "$gte": lambda column, value: column >= value,
    "$lt": lambda column, value: column < value,
    "$lte": lambda column, value: column <= value,
}

_LOGICAL = ("$and", "$or", "$nor")


def _unsupported(message: str) -> BadRequest:
    return BadRequest(f'{message} in "where" parameter')


def _cast_value(path: str, column, value: Any) -> Any:
    """Cast a filter value to the Python type of the column it is compared with."""
    if value is None:
        return None
    column_type = column.property.columns[0].type
    if path == "_id":
        if not is_valid_id(value):
            raise DocumentCastError(path, value)
        return value
    if isinstance(column_type, DateTime):
        try:
            return to_datetime(value)
        except ValueError:
            raise DocumentCastError(path, value)
    if isinstance(column_type, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower() == "true"
        raise DocumentCastError(path, value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value
    raise DocumentCastError(path, value)


def _cast_list(path: str, column, operator: str, value: Any) -> List[Any]:
    if not isinstance(value, list):
        raise _unsupported(f'"{operator}" on "{path}" needs an array')
    return [_cast_value(path, column, item) for item in value]


def _scalar_condition(model, path: str, condition: Any) -> ColumnElement:
    column = getattr(model, model.document_fields[path])

    if not isinstance(condition, dict) or not any(key.startswith("$") for key in condition):
        if isinstance(condition, (dict, list)):
            raise DocumentCastError(path, condition)
        value = _cast_value(path, column, condition)
        return column.is_(None) if value is None else column == value

    clauses = []
    for operator, operand in condition.items():
        if operator == "$eq":
            value = _cast_value(path, column, operand)
            clauses.append(column.is_(None) if value is None else column == value)
        elif operator == "$ne":
            value = _cast_value(path, column, operand)
            clauses.append(column.isnot(None) if value is None else column != value)
        elif operator in _COMPARISONS:
            value = _cast_value(path, column, operand)
            if value is None:
                raise DocumentCastError(path, operand)
            clauses.append(_COMPARISONS[operator](column, value))
        elif operator == "$in":
            clauses.append(column.in_(_cast_list(path, column, operator, operand)))
        elif operator == "$nin":
            clauses.append(not_(column.in_(_cast_list(path, column, operator, operand))))
        elif operator == "$exists":
            clauses.append(true() if operand else false())
        else:
            raise _unsupported(f'Unsupported operator "{operator}" for "{path}"')
    return and_(*clauses)


def _contains_any(task_ids: List[str]) -> ColumnElement:
    return exists().where(
        UserPendingTaskDB.user_id == UserDB.id,
        UserPendingTaskDB.task_id.in_(task_ids),
    )


def _pending_tasks_condition(path: str, condition: Any) -> ColumnElement:
    """Membership tests against a user's pending task list."""
    if isinstance(condition, list):
        if condition:
            raise _unsupported(f'Exact array match on "{path}" is not supported')
        return not_(exists().where(UserPendingTaskDB.user_id == UserDB.id))
    if not isinstance(condition, dict):
        return _contains_any([str(condition)])
    if not condition:
        return false()

    clauses = []
    for operator, operand in condition.items():
        if operator == "$eq":
            clauses.append(_contains_any([str(operand)]))
        elif operator == "$ne":
            clauses.append(not_(_contains_any([str(operand)])))
        elif operator in ("$in", "$nin", "$all"):
            if not isinstance(operand, list):
                raise _unsupported(f'"{operator}" on "{path}" needs an array')
            ids = [str(item) for item in operand]
            if operator == "$in":
                clauses.append(_contains_any(ids))
            elif operator == "$nin":
                clauses.append(not_(_contains_any(ids)))
            else:
                clauses.append(and_(true(), *[_contains_any([task_id]) for task_id in ids]))
        elif operator == "$size":
            if operand == 0:
                clauses.append(not_(exists().where(UserPendingTaskDB.user_id == UserDB.id)))
            else:
                raise _unsupported(f'Only "$size": 0 is supported for "{path}"')
        elif operator == "$exists":
            clauses.append(true() if operand else false())
        else:
            raise _unsupported(f'Unsupported operator "{operator}" for "{path}"')
    return and_(*clauses)


def compile_filter(model, document: Optional[Dict[str, Any]], _depth: int = 0) -> Optional[ColumnElement]:
    """Compile a filter document into a WHERE clause for `model`.

    Returns None for an empty filter (match everything).

    Raises:
        BadRequest: For unknown fields, unsupported operators or too deep nesting
        DocumentCastError: For values that cannot be compared with their field
    """
    if not document:
        return None
    if _depth > MAX_FILTER_DEPTH:
        raise _unsupported(f"Filters nested deeper than {MAX_FILTER_DEPTH} levels are not supported")

    clauses = []
    for key, condition in document.items():
        if key in _LOGICAL:
            if not isinstance(condition, list) or not condition:
                raise _unsupported(f'"{key}" needs a non-empty array')
            parts = []
            for sub_document in condition:
                if not isinstance(sub_document, dict):
                    raise _unsupported(f'"{key}" entries must be objects')
                compiled = compile_filter(model, sub_document, _depth + 1)
                parts.append(true() if compiled is None else compiled)
            if key == "$and":
                clauses.append(and_(*parts))
            elif key == "$or":
                clauses.append(or_(*parts))
            else:
                clauses.append(not_(or_(*parts)))
        elif key.startswith("$"):
            raise _unsupported(f'Unsupported operator "{key}"')
        elif key in model.array_fields:
            clauses.append(_pending_tasks_condition(key, condition))
        elif key in model.document_fields:
            clauses.append(_scalar_condition(model, key, condition))
        else:
            raise _unsupported(f'Unknown field "{key}"')
    return and_(*clauses)


def compile_sort(model, sort: Optional[Dict[str, int]]) -> list:
    """Compile a normalized sort document ({field: 1|-1}) into ORDER BY clauses."""
    if not sort:
        return []
    order_by = []
    for path, direction in sort.items():
        if path not in model.document_fields:
            raise BadRequest(f'Cannot sort by "{path}"')
        column = getattr(model, model.document_fields[path])
        order_by.append(asc(column) if direction > 0 else desc(column))
    return order_by


def apply_projection(document: Dict[str, Any], projection: Optional[Dict[str, int]]) -> Dict[str, Any]:
    """Apply a normalized projection ({field: 0|1}) to a serialized document.

    Inclusion projections always keep `_id` unless it is explicitly excluded.
    """
    if not projection:
        return document

    include_id = projection.get("_id", 1) == 1
    inclusive = any(flag == 1 for field, flag in projection.items() if field != "_id")
    if not inclusive and "_id" in projection and len(projection) == 1 and include_id:
        # {"_id": 1} alone selects only the id
        inclusive = True

    if inclusive:
        projected = {field: value for field, value in document.items() if projection.get(field) == 1}
    else:
        projected = {field: value for field, value in document.items() if projection.get(field, 1) == 1}

    if include_id and "_id" in document:
        projected["_id"] = document["_id"]
    elif not include_id:
        projected.pop("_id", None)
    return projected
