"""Assignment synchronization between Tasks and Users.

A task's owner pointer (`assigned_user` / `assigned_user_name`) and its
owner's `pending_tasks` list are two copies of the same relationship. This
module is the only code that writes the *other* side of that relationship
in response to a write on one side.

Consistency rule, restored at the end of every scenario below:
an incomplete task assigned to user U is in U's pending list, and a task
that is unassigned or completed is in no pending list.

There are no multi-document transactions. Each scenario is an ordered
sequence of idempotent steps (`detach_task`, `attach_task`, per-document
saves), so a concurrent request may briefly observe the two sides
disagreeing and re-running a step converges to the same state.
"""

import logging
from typing import Any, Iterable, List, Optional, Set

from taskroster.database.models import is_valid_id
from taskroster.database.repository import TaskRepository
from taskroster.database.user_repository import UserRepository
from taskroster.errors import BadRequest
from taskroster.models.constants import NO_USER, UNASSIGNED_USER_NAME
from taskroster.models.task import Task
from taskroster.models.user import User

logger = logging.getLogger(__name__)


def normalize_id_array(values: Any, field_name: str) -> List[str]:
    """Normalize a raw id list from a request payload.

    Accepts a scalar or a sequence. Null and empty entries are dropped,
    duplicates removed (first occurrence wins) and every remaining value
    checked against the store's id format.

    Raises:
        BadRequest: On the first value that is not a valid id
    """
    if values is None:
        return []
    if not isinstance(values, (list, tuple)):
        values = [values]

    seen: Set[str] = set()
    unique: List[str] = []
    for value in values:
        if value is None or value == "":
            continue
        value = str(value)
        if value not in seen:
            seen.add(value)
            unique.append(value)

    for value in unique:
        if not is_valid_id(value):
            raise BadRequest(f'Invalid task id in "{field_name}" array')
    return unique


class AssignmentSynchronizer:
    """Keeps task owner pointers and user pending lists in agreement."""

    def __init__(self, user_repository: UserRepository, task_repository: TaskRepository):
        self.users = user_repository
        self.tasks = task_repository

    # ---- primitives ----

    def detach_task(self, task_id: str, user_id: Optional[str]) -> None:
        """Remove a task from a user's pending list (no-op without a user)."""
        if not user_id:
            return
        if self.users.remove_pending_task(user_id, task_id):
            logger.debug(f"Detached task {task_id} from user {user_id}")

    def attach_task(self, task_id: str, user_id: Optional[str]) -> None:
        """Add a task to a user's pending list once (no-op without a user)."""
        if not user_id:
            return
        if self.users.add_pending_task(user_id, task_id):
            logger.debug(f"Attached task {task_id} to user {user_id}")

    # ---- task side ----

    def assign_task(self, task: Task, user: User) -> None:
        """Point a task at a new owner, detaching it from a different current owner.

        Only the task object is changed; the caller saves it and then calls
        `sync_task_owner` to attach it according to its completion state.
        """
        if task.assigned_user and task.assigned_user != user.id:
            self.detach_task(task.id, task.assigned_user)
        task.assigned_user = user.id
        task.assigned_user_name = user.name

    def unassign_task(self, task: Task) -> None:
        """Clear a task's owner, detaching it from the current owner first."""
        if task.assigned_user:
            self.detach_task(task.id, task.assigned_user)
        task.assigned_user = NO_USER
        task.assigned_user_name = UNASSIGNED_USER_NAME

    def sync_task_owner(self, task: Task, previous_user_id: Optional[str] = None) -> None:
        """Bring pending lists in line with a task that has just been saved.

        Detaches the task from a previous owner that is no longer the owner,
        then detaches (completed) or attaches (incomplete) it for the current owner.
        """
        if previous_user_id and previous_user_id != task.assigned_user:
            self.detach_task(task.id, previous_user_id)

        if not task.assigned_user:
            return
        if task.completed:
            self.detach_task(task.id, task.assigned_user)
        else:
            self.attach_task(task.id, task.assigned_user)

    def release_task(self, task_id: str, user_id: Optional[str]) -> None:
        """Drop a deleted task from its former owner's pending list."""
        self.detach_task(task_id, user_id)

    # ---- user side ----

    def ensure_tasks_exist(self, task_ids: List[str]) -> List[Task]:
        """Fail unless every id resolves to an existing task.

        Raises:
            BadRequest: If one or more ids do not exist
        """
        if not task_ids:
            return []
        tasks = self.tasks.get_many(task_ids)
        if len(tasks) != len(set(task_ids)):
            raise BadRequest("One or more tasks in pendingTasks do not exist")
        return tasks

    def sync_user_pending_tasks(self, user: User, previous_pending_ids: Optional[Iterable[str]] = None) -> None:
        """Re-derive task owner pointers from a user's freshly written pending list.

        Tasks dropped from the list are unassigned if they still point at this
        user; tasks pointing elsewhere are left alone. Every task in the list is
        then detached from any other owner, assigned to this user and marked
        incomplete.
        """
        previous_ids = [str(task_id) for task_id in (previous_pending_ids or [])]
        current_ids = [str(task_id) for task_id in user.pending_tasks]
        current_set = set(current_ids)

        removed = [task_id for task_id in previous_ids if task_id not in current_set]
        if removed:
            released = self.tasks.unassign_from_user(user.id, removed)
            logger.info(f"Released {released} of {len(removed)} tasks dropped by user {user.id}")

        if not current_ids:
            return

        for task in self.tasks.get_many(current_ids):
            previous_owner = task.assigned_user
            if previous_owner and previous_owner != user.id:
                self.detach_task(task.id, previous_owner)
            task.assigned_user = user.id
            task.assigned_user_name = user.name
            if task.completed:
                task.completed = False
            self.tasks.update(task)
        logger.info(f"Assigned {len(current_ids)} pending tasks to user {user.id}")

    def release_user_tasks(self, user_id: str) -> int:
        """Unassign every task owned by a user that is being deleted."""
        released = self.tasks.unassign_from_user(user_id)
        logger.info(f"Released {released} tasks of deleted user {user_id}")
        return released
