"""SQLAlchemy database models for taskroster."""

from datetime import datetime
from typing import Dict, List, Optional
import uuid
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import validates

from taskroster.database.database import Base
from taskroster.errors import DocumentValidationError
from taskroster.models.constants import NO_USER, UNASSIGNED_USER_NAME
from taskroster.models.factory import new_id


def is_valid_id(value) -> bool:
    """Return True if value is a document id in canonical UUID form."""
    if not isinstance(value, str):
        return False
    try:
        return str(uuid.UUID(value)) == value
    except ValueError:
        return False


def _trimmed(value):
    return value.strip() if isinstance(value, str) else value


class UserDB(Base):
    """Database model for User.

    The pending task list is kept in `user_pending_tasks` (see UserPendingTaskDB).
    """

    __tablename__ = "users"

    # Wire field name -> column attribute. `pendingTasks` is an array field
    # backed by UserPendingTaskDB and handled separately by the filter compiler.
    document_fields = {
        "_id": "id",
        "name": "name",
        "email": "email",
        "dateCreated": "date_created",
    }
    array_fields = ("pendingTasks",)
    model_name = "User"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    date_created = Column(DateTime, nullable=False, default=datetime.utcnow)

    @validates("name")
    def _normalize_name(self, key, value):
        return _trimmed(value)

    @validates("email")
    def _normalize_email(self, key, value):
        value = _trimmed(value)
        return value.lower() if isinstance(value, str) else value

    def check_required(self) -> None:
        """Raise DocumentValidationError if a required field is missing or empty."""
        errors: Dict[str, str] = {}
        if not self.name:
            errors["name"] = "User name is required"
        if not self.email:
            errors["email"] = "User email is required"
        if errors:
            raise DocumentValidationError(self.model_name, errors)

    def to_pydantic(self, pending_tasks: Optional[List[str]] = None):
        """Convert database model to Pydantic model."""
        from taskroster.models.user import User
        return User(
            id=self.id,
            name=self.name,
            email=self.email,
            pending_tasks=list(pending_tasks or []),
            date_created=self.date_created,
        )

    @classmethod
    def from_pydantic(cls, user):
        """Create database model from Pydantic model (pending tasks excluded)."""
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            date_created=user.date_created,
        )


class UserPendingTaskDB(Base):
    """One entry of a user's ordered pending task list."""

    __tablename__ = "user_pending_tasks"
    __table_args__ = (
        # A task appears at most once in a given user's pending list.
        UniqueConstraint("user_id", "task_id", name="uq_user_pending_task"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(String, nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)


class TaskDB(Base):
    """Database model for Task."""

    __tablename__ = "tasks"

    document_fields = {
        "_id": "id",
        "name": "name",
        "description": "description",
        "deadline": "deadline",
        "completed": "completed",
        "assignedUser": "assigned_user",
        "assignedUserName": "assigned_user_name",
        "dateCreated": "date_created",
    }
    array_fields = ()
    model_name = "Task"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    description = Column(String, nullable=False, default="")
    deadline = Column(DateTime, nullable=False)
    completed = Column(Boolean, nullable=False, default=False)

    # Owner pointer; no foreign key because "" means unassigned
    assigned_user = Column(String, nullable=False, default=NO_USER, index=True)
    assigned_user_name = Column(String, nullable=False, default=UNASSIGNED_USER_NAME)

    date_created = Column(DateTime, nullable=False, default=datetime.utcnow)

    @validates("name", "description", "assigned_user_name")
    def _normalize_text(self, key, value):
        return _trimmed(value)

    def check_required(self) -> None:
        """Raise DocumentValidationError if a required field is missing or empty."""
        errors: Dict[str, str] = {}
        if not self.name:
            errors["name"] = "Task name is required"
        if self.deadline is None:
            errors["deadline"] = "Task deadline is required"
        if errors:
            raise DocumentValidationError(self.model_name, errors)

    def apply(self, task) -> None:
        """Copy every mutable field of a Pydantic task onto this row."""
        self.name = task.name
        self.description = task.description
        self.deadline = task.deadline
        self.completed = task.completed
        self.assigned_user = task.assigned_user
        self.assigned_user_name = task.assigned_user_name

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from taskroster.models.task import Task
        return Task(
            id=self.id,
            name=self.name,
            description=self.description or "",
            deadline=self.deadline,
            completed=bool(self.completed),
            assigned_user=self.assigned_user or NO_USER,
            assigned_user_name=self.assigned_user_name or UNASSIGNED_USER_NAME,
            date_created=self.date_created,
        )

    @classmethod
    def from_pydantic(cls, task):
        """Create database model from Pydantic model."""
        task_db = cls(id=task.id, date_created=task.date_created)
        task_db.apply(task)
        return task_db
