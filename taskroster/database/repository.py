"""Repository layer for Task database operations."""

import logging
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session

from taskroster.database.filters import compile_filter, compile_sort
from taskroster.database.models import TaskDB
from taskroster.models.constants import NO_USER, UNASSIGNED_USER_NAME
from taskroster.models.task import Task

logger = logging.getLogger(__name__)


class TaskRepository:
    """Repository for Task database operations.

    Every write commits on its own; a write is atomic for the single task it touches.
    """

    def __init__(self, db: Session):
        self.db = db

    def _query(self, filter_doc: Optional[Dict[str, Any]] = None):
        query = self.db.query(TaskDB)
        clause = compile_filter(TaskDB, filter_doc)
        if clause is not None:
            query = query.filter(clause)
        return query

    def find(
        self,
        filter_doc: Optional[Dict[str, Any]] = None,
        sort: Optional[Dict[str, int]] = None,
        skip: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Task]:
        """Find tasks matching a filter document."""
        query = self._query(filter_doc)
        order_by = compile_sort(TaskDB, sort)
        if order_by:
            query = query.order_by(*order_by)
        if skip:
            query = query.offset(skip)
        if limit is not None:
            query = query.limit(limit)
        return [task_db.to_pydantic() for task_db in query.all()]

    def count(self, filter_doc: Optional[Dict[str, Any]] = None) -> int:
        """Count tasks matching a filter document."""
        return self._query(filter_doc).count()

    def get(self, task_id: str) -> Optional[Task]:
        """Get task by ID."""
        task_db = self.db.query(TaskDB).filter(TaskDB.id == task_id).first()
        return task_db.to_pydantic() if task_db else None

    def get_many(self, task_ids: List[str]) -> List[Task]:
        """Get the tasks whose ids are listed (missing ids are skipped)."""
        if not task_ids:
            return []
        tasks_db = self.db.query(TaskDB).filter(TaskDB.id.in_(list(task_ids))).all()
        return [task_db.to_pydantic() for task_db in tasks_db]

    def validate(self, task: Task) -> None:
        """Run the store's required-field checks without writing.

        Raises:
            DocumentValidationError: If name or deadline is missing
        """
        TaskDB.from_pydantic(task).check_required()

    def create(self, task: Task) -> Task:
        """Create a new task."""
        task_db = TaskDB.from_pydantic(task)
        task_db.check_required()
        try:
            self.db.add(task_db)
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Created task {task.id}: {(task.name or '')[:50]}")
            return task_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create task {task.id}: {type(e).__name__}: {str(e)}")
            raise

    def update(self, task: Task) -> Task:
        """Save every field of an existing task."""
        task_db = self.db.query(TaskDB).filter(TaskDB.id == task.id).with_for_update().first()
        if not task_db:
            raise ValueError(f"Task {task.id} not found")

        task_db.apply(task)
        try:
            task_db.check_required()
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Updated task {task.id}: {(task.name or '')[:50]}")
            return task_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update task {task.id}: {type(e).__name__}: {str(e)}")
            raise

    def unassign_from_user(self, user_id: str, task_ids: Optional[List[str]] = None) -> int:
        """Clear the owner of every task still pointing at `user_id`.

        Args:
            user_id: Owner whose tasks are released
            task_ids: Restrict the update to these tasks (all of the user's tasks if None)

        Returns:
            Number of tasks updated
        """
        if not user_id:
            return 0
        query = self.db.query(TaskDB).filter(TaskDB.assigned_user == user_id)
        if task_ids is not None:
            if not task_ids:
                return 0
            query = query.filter(TaskDB.id.in_(list(task_ids)))
        try:
            affected = query.update(
                {
                    TaskDB.assigned_user: NO_USER,
                    TaskDB.assigned_user_name: UNASSIGNED_USER_NAME,
                },
                synchronize_session=False,
            )
            self.db.commit()
            logger.debug(f"Unassigned {affected} tasks from user {user_id}")
            return int(affected)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to unassign tasks from user {user_id}: {type(e).__name__}: {str(e)}")
            raise

    def delete(self, task_id: str) -> bool:
        """Permanently delete a task by ID."""
        try:
            affected = (
                self.db.query(TaskDB)
                .filter(TaskDB.id == task_id)
                .delete(synchronize_session=False)
            )
            self.db.commit()
            logger.debug(f"Deleted task {task_id}")
            return affected > 0
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete task {task_id}: {type(e).__name__}: {str(e)}")
            raise
