"""Document creation factory for taskroster.

This module centralizes creation of new Users and Tasks so that ids,
creation timestamps and relationship defaults are applied consistently.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from taskroster.models.constants import NO_USER, UNASSIGNED_USER_NAME
from taskroster.models.task import Task
from taskroster.models.user import User


def new_id() -> str:
    """Generate a new document id (UUID v4 string)."""
    return str(uuid.uuid4())


def create_task_base(
    name: Optional[str],
    deadline: Optional[datetime],
    description: Optional[str] = None,
    completed: bool = False,
) -> Task:
    """Create an unassigned task with defaults applied.

    Args:
        name: Task name
        deadline: Task deadline
        description: Task description (defaults to empty)
        completed: Completion flag

    Returns:
        Task object; owner fields start unassigned
    """
    return Task(
        id=new_id(),
        name=name,
        description=description if description is not None else "",
        deadline=deadline,
        completed=completed,
        assigned_user=NO_USER,
        assigned_user_name=UNASSIGNED_USER_NAME,
        date_created=datetime.utcnow(),
    )


def create_user_base(name: Optional[str], email: Optional[str], pending_tasks: Optional[List[str]] = None) -> User:
    """Create a new user with defaults applied."""
    return User(
        id=new_id(),
        name=name,
        email=email,
        pending_tasks=list(pending_tasks or []),
        date_created=datetime.utcnow(),
    )
