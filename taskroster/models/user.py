"""User data model for taskroster."""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class User(BaseModel):
    """User model for taskroster.

    `pending_tasks` lists the ids of tasks assigned to this user that are not
    yet completed, in the order they were assigned.
    """

    id: str = Field(..., alias="_id", description="Unique user identifier (UUID v4)")
    name: Optional[str] = Field(None, description="User display name (required by the store)")
    email: Optional[str] = Field(None, description="User email address (unique, lowercased)")
    pending_tasks: List[str] = Field(default_factory=list, alias="pendingTasks", description="Pending task ids")
    date_created: datetime = Field(..., alias="dateCreated", description="User creation timestamp")

    class Config:
        """Pydantic configuration."""
        populate_by_name = True
