"""FastAPI dependencies wiring repositories and the synchronizer to a request session."""

from fastapi import Depends
from sqlalchemy.orm import Session

from taskroster.database.database import get_db
from taskroster.database.models import is_valid_id
from taskroster.database.repository import TaskRepository
from taskroster.database.user_repository import UserRepository
from taskroster.engine.assignment import AssignmentSynchronizer
from taskroster.errors import BadRequest


def get_user_repository(db: Session = Depends(get_db)) -> UserRepository:
    return UserRepository(db)


def get_task_repository(db: Session = Depends(get_db)) -> TaskRepository:
    return TaskRepository(db)


def get_synchronizer(
    users: UserRepository = Depends(get_user_repository),
    tasks: TaskRepository = Depends(get_task_repository),
) -> AssignmentSynchronizer:
    return AssignmentSynchronizer(users, tasks)


def require_valid_id(value: str, message: str) -> str:
    """Reject a path id that is not in the store's id format."""
    if not is_valid_id(value):
        raise BadRequest(message)
    return value
