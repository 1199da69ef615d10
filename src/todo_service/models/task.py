"""Task model and operation parameter models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TaskFilter(str, Enum):
    """Read-only views over the task collection."""

    ALL = "all"
    IMPORTANT = "important"
    COMPLETED = "completed"


class Task(BaseModel):
    """A single to-do item.

    The wire representation is exactly ``id``, ``description``, ``completed``
    and ``important``. ``metadata`` holds the reserved auxiliary value passed
    at creation; it is kept but never interpreted or serialized.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: int = Field(..., ge=0, description="Store-assigned identifier, never reused")
    description: str = Field(..., description="Task text, immutable after creation")
    completed: bool = Field(default=False, description="Completion flag")
    important: bool = Field(default=False, description="Importance flag")
    metadata: Any = Field(default=None, exclude=True, description="Reserved auxiliary value")

    def matches(self, task_filter: TaskFilter) -> bool:
        """Check whether this task belongs to a filtered view."""
        if task_filter == TaskFilter.IMPORTANT:
            return self.important
        if task_filter == TaskFilter.COMPLETED:
            return self.completed
        return True


class AddTaskParams(BaseModel):
    """Input for ``add_task``."""

    model_config = ConfigDict(extra="forbid")

    description: str = Field(..., description="Task text")
    metadata: Any = Field(default=None, description="Reserved auxiliary value (currently unused)")
    important: bool = Field(default=False, description="Mark the task important on creation")


class TaskIdParams(BaseModel):
    """Input for operations addressing a single task."""

    model_config = ConfigDict(extra="forbid")

    id: int = Field(..., ge=0, strict=True, description="Task ID")


class NoParams(BaseModel):
    """Input for operations that take no arguments."""

    model_config = ConfigDict(extra="forbid")
