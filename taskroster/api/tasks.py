"""Task endpoints."""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request, Response, status

from taskroster.api.dependencies import (
    get_synchronizer,
    get_task_repository,
    get_user_repository,
    require_valid_id,
)
from taskroster.api.responses import send_response, to_document
from taskroster.database.models import is_valid_id
from taskroster.database.repository import TaskRepository
from taskroster.database.user_repository import UserRepository
from taskroster.engine.assignment import AssignmentSynchronizer
from taskroster.engine.parsing import coerce_text, parse_boolean, parse_date_value
from taskroster.engine.query_options import build_query_options, parse_projection_param
from taskroster.errors import BadRequest, NotFound
from taskroster.models.constants import TASK_LIST_DEFAULT_LIMIT
from taskroster.models.factory import create_task_base
from taskroster.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _load_assigned_user(payload: Dict[str, Any], users: UserRepository) -> Optional[User]:
    """Resolve `assignedUser` from a payload; None when the task is to be unassigned."""
    raw = payload.get("assignedUser")
    assigned_user_id = str(raw) if raw else ""
    if not assigned_user_id:
        return None
    if not is_valid_id(assigned_user_id):
        raise BadRequest("Invalid user id in assignedUser")
    user = users.get(assigned_user_id)
    if not user:
        raise BadRequest("Assigned user does not exist")
    return user


@router.get("")
def list_tasks(request: Request, tasks: TaskRepository = Depends(get_task_repository)):
    """List tasks (100 by default), or count them with `count=true`."""
    options = build_query_options(request.query_params, default_limit=TASK_LIST_DEFAULT_LIMIT)
    if options.count:
        return send_response(status.HTTP_200_OK, "OK", tasks.count(options.filter))
    if options.returns_nothing:
        return send_response(status.HTTP_200_OK, "OK", [])

    found = tasks.find(options.filter, sort=options.sort, skip=options.skip, limit=options.limit)
    return send_response(status.HTTP_200_OK, "OK", [to_document(task, options.projection) for task in found])


@router.post("")
def create_task(
    payload: Optional[Dict[str, Any]] = Body(None),
    users: UserRepository = Depends(get_user_repository),
    tasks: TaskRepository = Depends(get_task_repository),
    sync: AssignmentSynchronizer = Depends(get_synchronizer),
):
    """Create a task, optionally assigned to an existing user."""
    payload = payload or {}
    owner = _load_assigned_user(payload, users)
    completed = parse_boolean(payload.get("completed"), False)
    deadline = parse_date_value(payload.get("deadline"), "deadline")

    task = create_task_base(
        name=coerce_text(payload.get("name"), "name"),
        deadline=deadline,
        description=coerce_text(payload.get("description"), "description"),
        completed=completed,
    )
    tasks.validate(task)
    if owner:
        sync.assign_task(task, owner)

    created = tasks.create(task)
    sync.sync_task_owner(created)
    logger.info(f"Created task {created.id} assigned to {created.assigned_user or 'nobody'}")

    return send_response(status.HTTP_201_CREATED, "Task created", to_document(tasks.get(created.id)))


@router.get("/{task_id}")
def get_task(task_id: str, request: Request, tasks: TaskRepository = Depends(get_task_repository)):
    """Get one task, optionally projected with `select`."""
    require_valid_id(task_id, "Invalid task id")
    projection = parse_projection_param(request.query_params)
    task = tasks.get(task_id)
    if not task:
        raise NotFound("Task not found")
    return send_response(status.HTTP_200_OK, "OK", to_document(task, projection))


@router.put("/{task_id}")
def update_task(
    task_id: str,
    payload: Optional[Dict[str, Any]] = Body(None),
    users: UserRepository = Depends(get_user_repository),
    tasks: TaskRepository = Depends(get_task_repository),
    sync: AssignmentSynchronizer = Depends(get_synchronizer),
):
    """Replace a task and move it between pending lists as needed.

    Fields missing from the payload are reset to their defaults (the task is
    unassigned when `assignedUser` is absent), except `deadline`: an omitted
    deadline keeps the stored one while an explicit null or "" clears it.
    """
    require_valid_id(task_id, "Invalid task id")
    task = tasks.get(task_id)
    if not task:
        raise NotFound("Task not found")

    payload = payload or {}
    previous_user_id = task.assigned_user
    completed = parse_boolean(payload.get("completed"), False)
    if "deadline" in payload:
        task.deadline = parse_date_value(payload["deadline"], "deadline")
    owner = _load_assigned_user(payload, users)

    task.name = coerce_text(payload.get("name"), "name")
    task.description = coerce_text(payload.get("description"), "description") or ""
    task.completed = completed
    tasks.validate(task)

    if owner:
        sync.assign_task(task, owner)
    else:
        sync.unassign_task(task)

    updated = tasks.update(task)
    sync.sync_task_owner(updated, previous_user_id)
    logger.info(f"Updated task {task_id}")

    return send_response(status.HTTP_200_OK, "Task updated", to_document(tasks.get(task_id)))


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: str,
    tasks: TaskRepository = Depends(get_task_repository),
    sync: AssignmentSynchronizer = Depends(get_synchronizer),
):
    """Delete a task and drop it from its owner's pending list."""
    require_valid_id(task_id, "Invalid task id")
    task = tasks.get(task_id)
    if not task:
        raise NotFound("Task not found")

    tasks.delete(task_id)
    sync.release_task(task_id, task.assigned_user)
    logger.info(f"Deleted task {task_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
