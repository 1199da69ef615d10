"""Typed failures raised by the task store."""

from typing import Any


class TaskStoreError(Exception):
    """Base exception for task store errors."""

    def __init__(self, message: str, code: str = "TASK_STORE_ERROR") -> None:
        """Initialize the store error.

        Args:
            message: Human-readable error message
            code: Stable error code for programmatic handling
        """
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Render the failure as a JSON-ready result."""
        return {"error": self.message, "code": self.code}


class InvalidInputError(TaskStoreError):
    """Raised when operation input fails validation."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(
            message=f"Invalid {field}: {message}",
            code="INVALID_INPUT",
        )

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "field": self.field}


class TaskNotFoundError(TaskStoreError):
    """Raised when no task has the requested ID."""

    def __init__(self, task_id: int) -> None:
        self.task_id = task_id
        super().__init__(
            message=f"Task with ID {task_id} not found",
            code="NOT_FOUND",
        )

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "task_id": self.task_id}


class StoreClosedError(TaskStoreError):
    """Raised when an operation reaches a store that was already closed."""

    def __init__(self) -> None:
        super().__init__(message="Task store is closed", code="STORE_CLOSED")
