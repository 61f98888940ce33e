"""User endpoints."""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request, Response, status

from taskroster.api.dependencies import (
    get_synchronizer,
    get_user_repository,
    require_valid_id,
)
from taskroster.api.responses import send_response, to_document
from taskroster.database.user_repository import UserRepository
from taskroster.engine.assignment import AssignmentSynchronizer, normalize_id_array
from taskroster.engine.parsing import coerce_text
from taskroster.engine.query_options import build_query_options, parse_projection_param
from taskroster.errors import NotFound
from taskroster.models.constants import USER_LIST_DEFAULT_LIMIT
from taskroster.models.factory import create_user_base

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("")
def list_users(request: Request, users: UserRepository = Depends(get_user_repository)):
    """List users, or count them with `count=true`."""
    options = build_query_options(request.query_params, default_limit=USER_LIST_DEFAULT_LIMIT)
    if options.count:
        return send_response(status.HTTP_200_OK, "OK", users.count(options.filter))
    if options.returns_nothing:
        return send_response(status.HTTP_200_OK, "OK", [])

    found = users.find(options.filter, sort=options.sort, skip=options.skip, limit=options.limit)
    return send_response(status.HTTP_200_OK, "OK", [to_document(user, options.projection) for user in found])


@router.post("")
def create_user(
    payload: Optional[Dict[str, Any]] = Body(None),
    users: UserRepository = Depends(get_user_repository),
    sync: AssignmentSynchronizer = Depends(get_synchronizer),
):
    """Create a user; tasks listed in `pendingTasks` are assigned to it."""
    payload = payload or {}
    pending_task_ids = normalize_id_array(payload.get("pendingTasks"), "pendingTasks")
    sync.ensure_tasks_exist(pending_task_ids)

    user = create_user_base(
        name=coerce_text(payload.get("name"), "name"),
        email=coerce_text(payload.get("email"), "email"),
        pending_tasks=pending_task_ids,
    )
    created = users.create(user)
    sync.sync_user_pending_tasks(created, [])
    logger.info(f"Created user {created.id} with {len(pending_task_ids)} pending tasks")

    return send_response(status.HTTP_201_CREATED, "User created", to_document(users.get(created.id)))


@router.get("/{user_id}")
def get_user(user_id: str, request: Request, users: UserRepository = Depends(get_user_repository)):
    """Get one user, optionally projected with `select`."""
    require_valid_id(user_id, "Invalid user id")
    projection = parse_projection_param(request.query_params)
    user = users.get(user_id)
    if not user:
        raise NotFound("User not found")
    return send_response(status.HTTP_200_OK, "OK", to_document(user, projection))


@router.put("/{user_id}")
def update_user(
    user_id: str,
    payload: Optional[Dict[str, Any]] = Body(None),
    users: UserRepository = Depends(get_user_repository),
    sync: AssignmentSynchronizer = Depends(get_synchronizer),
):
    """Replace a user. The new `pendingTasks` list re-derives task ownership."""
    require_valid_id(user_id, "Invalid user id")
    user = users.get(user_id)
    if not user:
        raise NotFound("User not found")

    payload = payload or {}
    previous_pending = list(user.pending_tasks)
    pending_task_ids = normalize_id_array(payload.get("pendingTasks"), "pendingTasks")
    sync.ensure_tasks_exist(pending_task_ids)

    user.name = coerce_text(payload.get("name"), "name")
    user.email = coerce_text(payload.get("email"), "email")
    user.pending_tasks = pending_task_ids

    updated = users.update(user)
    sync.sync_user_pending_tasks(updated, previous_pending)
    logger.info(f"Updated user {user_id}")

    return send_response(status.HTTP_200_OK, "User updated", to_document(users.get(user_id)))


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: str,
    users: UserRepository = Depends(get_user_repository),
    sync: AssignmentSynchronizer = Depends(get_synchronizer),
):
    """Delete a user; its tasks become unassigned."""
    require_valid_id(user_id, "Invalid user id")
    if not users.get(user_id):
        raise NotFound("User not found")

    sync.release_user_tasks(user_id)
    users.delete(user_id)
    logger.info(f"Deleted user {user_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
