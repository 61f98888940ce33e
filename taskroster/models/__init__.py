"""Data models for taskroster."""

from taskroster.models.task import Task
from taskroster.models.user import User

__all__ = [
    "Task",
    "User",
]
