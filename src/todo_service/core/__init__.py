"""Core task management."""

from todo_service.core.errors import (
    InvalidInputError,
    StoreClosedError,
    TaskNotFoundError,
    TaskStoreError,
)
from todo_service.core.task_store import TaskStore

__all__ = [
    "TaskStore",
    "TaskStoreError",
    "InvalidInputError",
    "TaskNotFoundError",
    "StoreClosedError",
]
