"""Task data model for taskroster."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from taskroster.models.constants import NO_USER, UNASSIGNED_USER_NAME


class Task(BaseModel):
    """Canonical Task model.

    `assigned_user` is the owner pointer ("" when unassigned) and
    `assigned_user_name` caches the owner's display name.
    """

    id: str = Field(..., alias="_id", description="Unique task identifier (UUID v4)")
    name: Optional[str] = Field(None, description="Task name (required by the store)")
    description: str = Field("", description="Task description")
    deadline: Optional[datetime] = Field(None, description="Task deadline (required by the store)")
    completed: bool = Field(False, description="Whether the task is done")
    assigned_user: str = Field(NO_USER, alias="assignedUser", description="Owner user id, empty if unassigned")
    assigned_user_name: str = Field(
        UNASSIGNED_USER_NAME,
        alias="assignedUserName",
        description="Owner display name, or 'unassigned'",
    )
    date_created: datetime = Field(..., alias="dateCreated", description="Task creation timestamp")

    class Config:
        """Pydantic configuration."""
        populate_by_name = True
