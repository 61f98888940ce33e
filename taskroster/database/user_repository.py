"""Repository for User database operations."""

import logging
from typing import Any, Dict, List, Optional
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from taskroster.database.filters import compile_filter, compile_sort
from taskroster.database.models import UserDB, UserPendingTaskDB
from taskroster.errors import DuplicateKeyError
from taskroster.models.user import User

logger = logging.getLogger(__name__)

# Keep IN (...) lists well under SQLite's bound-parameter limit
_ID_CHUNK_SIZE = 500


def _duplicate_key(error: IntegrityError) -> Optional[DuplicateKeyError]:
    if "email" in str(error.orig).lower():
        return DuplicateKeyError("email")
    return None


class UserRepository:
    """Repository for User database operations.

    A user's pending task list lives in its own table, so adding or removing a
    single entry is one statement and never rewrites the rest of the list.
    """

    def __init__(self, db: Session):
        self.db = db

    def _pending_task_ids(self, user_ids: List[str]) -> Dict[str, List[str]]:
        """Ordered pending task ids for each of the given users."""
        pending: Dict[str, List[str]] = {user_id: [] for user_id in user_ids}
        for start in range(0, len(user_ids), _ID_CHUNK_SIZE):
            chunk = user_ids[start:start + _ID_CHUNK_SIZE]
            rows = (
                self.db.query(UserPendingTaskDB.user_id, UserPendingTaskDB.task_id)
                .filter(UserPendingTaskDB.user_id.in_(chunk))
                .order_by(UserPendingTaskDB.user_id, UserPendingTaskDB.position, UserPendingTaskDB.id)
                .all()
            )
            for user_id, task_id in rows:
                pending[user_id].append(task_id)
        return pending

    def _to_pydantic(self, users_db: List[UserDB]) -> List[User]:
        pending = self._pending_task_ids([user_db.id for user_db in users_db])
        return [user_db.to_pydantic(pending[user_db.id]) for user_db in users_db]

    def _replace_pending_tasks(self, user_id: str, task_ids: List[str]) -> None:
        self.db.query(UserPendingTaskDB).filter(
            UserPendingTaskDB.user_id == user_id
        ).delete(synchronize_session=False)
        self.db.add_all(
            UserPendingTaskDB(user_id=user_id, task_id=task_id, position=position)
            for position, task_id in enumerate(task_ids)
        )

    def _query(self, filter_doc: Optional[Dict[str, Any]] = None):
        query = self.db.query(UserDB)
        clause = compile_filter(UserDB, filter_doc)
        if clause is not None:
            query = query.filter(clause)
        return query

    def find(
        self,
        filter_doc: Optional[Dict[str, Any]] = None,
        sort: Optional[Dict[str, int]] = None,
        skip: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[User]:
        """Find users matching a filter document."""
        query = self._query(filter_doc)
        order_by = compile_sort(UserDB, sort)
        if order_by:
            query = query.order_by(*order_by)
        if skip:
            query = query.offset(skip)
        if limit is not None:
            query = query.limit(limit)
        return self._to_pydantic(query.all())

    def count(self, filter_doc: Optional[Dict[str, Any]] = None) -> int:
        """Count users matching a filter document."""
        return self._query(filter_doc).count()

    def get(self, user_id: str) -> Optional[User]:
        """Get user by ID."""
        user_db = self.db.query(UserDB).filter(UserDB.id == user_id).first()
        return self._to_pydantic([user_db])[0] if user_db else None

    def create(self, user: User) -> User:
        """Create a new user together with its pending task list.

        Raises:
            DocumentValidationError: If name or email is missing
            DuplicateKeyError: If the email is already taken
        """
        user_db = UserDB.from_pydantic(user)
        user_db.check_required()
        try:
            self.db.add(user_db)
            self.db.flush()
            self._replace_pending_tasks(user_db.id, user.pending_tasks)
            self.db.commit()
            logger.debug(f"Created user {user.id}: {user_db.email}")
        except IntegrityError as e:
            self.db.rollback()
            duplicate = _duplicate_key(e)
            if duplicate is not None:
                logger.warning(f"Email already exists: {user_db.email}")
                raise duplicate
            logger.error(f"Failed to create user {user.id}: {type(e).__name__}: {str(e)}")
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create user {user.id}: {type(e).__name__}: {str(e)}")
            raise
        return self.get(user.id)

    def update(self, user: User) -> User:
        """Replace name, email and pending task list of an existing user.

        Raises:
            ValueError: If the user does not exist
            DocumentValidationError: If name or email is missing
            DuplicateKeyError: If the email is already taken by another user
        """
        user_db = self.db.query(UserDB).filter(UserDB.id == user.id).with_for_update().first()
        if not user_db:
            raise ValueError(f"User {user.id} not found")

        user_db.name = user.name
        user_db.email = user.email
        try:
            user_db.check_required()
            self._replace_pending_tasks(user.id, user.pending_tasks)
            self.db.commit()
            logger.debug(f"Updated user {user.id}: {user_db.email}")
        except IntegrityError as e:
            self.db.rollback()
            duplicate = _duplicate_key(e)
            if duplicate is not None:
                logger.warning(f"Email already exists: {user.email}")
                raise duplicate
            logger.error(f"Failed to update user {user.id}: {type(e).__name__}: {str(e)}")
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update user {user.id}: {type(e).__name__}: {str(e)}")
            raise
        return self.get(user.id)

    def delete(self, user_id: str) -> bool:
        """Permanently delete a user and its pending task list."""
        try:
            self.db.query(UserPendingTaskDB).filter(
                UserPendingTaskDB.user_id == user_id
            ).delete(synchronize_session=False)
            affected = self.db.query(UserDB).filter(UserDB.id == user_id).delete(synchronize_session=False)
            self.db.commit()
            logger.debug(f"Deleted user {user_id}")
            return affected > 0
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete user {user_id}: {type(e).__name__}: {str(e)}")
            raise

    def add_pending_task(self, user_id: str, task_id: str) -> bool:
        """Append a task to a user's pending list unless it is already there.

        Returns:
            True if an entry was added; False if it was present or the user does not exist
        """
        present = self.db.query(UserPendingTaskDB.id).filter(
            UserPendingTaskDB.user_id == user_id,
            UserPendingTaskDB.task_id == task_id,
        ).first()
        if present:
            return False
        if not self.db.query(UserDB.id).filter(UserDB.id == user_id).first():
            logger.debug(f"Not adding task {task_id} to missing user {user_id}")
            return False

        last_position = self.db.query(func.max(UserPendingTaskDB.position)).filter(
            UserPendingTaskDB.user_id == user_id
        ).scalar()
        try:
            self.db.add(UserPendingTaskDB(
                user_id=user_id,
                task_id=task_id,
                position=0 if last_position is None else last_position + 1,
            ))
            self.db.commit()
            logger.debug(f"Added task {task_id} to pending tasks of user {user_id}")
            return True
        except IntegrityError:
            # A concurrent request added the same entry first
            self.db.rollback()
            return False
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to add task {task_id} to user {user_id}: {type(e).__name__}: {str(e)}")
            raise

    def remove_pending_task(self, user_id: str, task_id: str) -> bool:
        """Remove a task from a user's pending list (no-op if absent)."""
        try:
            affected = self.db.query(UserPendingTaskDB).filter(
                UserPendingTaskDB.user_id == user_id,
                UserPendingTaskDB.task_id == task_id,
            ).delete(synchronize_session=False)
            self.db.commit()
            if affected:
                logger.debug(f"Removed task {task_id} from pending tasks of user {user_id}")
            return affected > 0
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to remove task {task_id} from user {user_id}: {type(e).__name__}: {str(e)}")
            raise
