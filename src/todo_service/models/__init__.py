"""Data models for the task service."""

from todo_service.models.task import (
    AddTaskParams,
    NoParams,
    Task,
    TaskFilter,
    TaskIdParams,
)

__all__ = [
    "Task",
    "TaskFilter",
    # Operation parameters
    "AddTaskParams",
    "TaskIdParams",
    "NoParams",
]
