"""Task operations exposed at the API boundary.

Each handler takes the operation parameters plus an injected ``_context``
holding the ``task_store`` and returns a JSON-ready result. Store failures
come back as typed results (``error`` plus ``code``) instead of exceptions,
so callers can tell "not found" apart from a system failure.
"""

from typing import Any

from todo_service.core.errors import TaskStoreError
from todo_service.core.task_store import TaskStore
from todo_service.models import Task
from todo_service.utils.logging import get_logger

logger = get_logger(__name__)


def _store(params: dict[str, Any]) -> TaskStore:
    return params["_context"]["task_store"]


def _task_list(tasks: list[Task]) -> dict[str, Any]:
    return {
        "tasks": [task.model_dump(mode="json") for task in tasks],
        "total": len(tasks),
    }


def _failure(operation: str, error: TaskStoreError) -> dict[str, Any]:
    logger.warning(f"{operation}_failed", code=error.code, error=error.message)
    return error.to_dict()


async def add_task(params: dict[str, Any]) -> dict[str, Any]:
    """Create a task.

    Args:
        params: Tool parameters including:
            - description: Task text
            - metadata: Reserved auxiliary value (optional)
            - important: Initial importance flag (optional)
            - _context: Injected service context

    Returns:
        Result with the created task
    """
    try:
        task = _store(params).add_task(
            description=params["description"],
            metadata=params.get("metadata"),
            important=params.get("important", False),
        )
        return {
            "status": "created",
            "task": task.model_dump(mode="json"),
        }

    except TaskStoreError as e:
        return _failure("add_task", e)


async def get_task(params: dict[str, Any]) -> dict[str, Any]:
    """Retrieve a task by ID.

    Args:
        params: Tool parameters including:
            - id: Task ID
            - _context: Injected service context

    Returns:
        Task data or typed failure
    """
    try:
        task = _store(params).get_task(params["id"])
        return {"task": task.model_dump(mode="json")}

    except TaskStoreError as e:
        return _failure("get_task", e)


async def get_tasks(params: dict[str, Any]) -> dict[str, Any]:
    """List every task in insertion order."""
    try:
        return _task_list(_store(params).get_tasks())
    except TaskStoreError as e:
        return _failure("get_tasks", e)


async def get_important_tasks(params: dict[str, Any]) -> dict[str, Any]:
    """List important tasks in insertion order."""
    try:
        return _task_list(_store(params).get_important_tasks())
    except TaskStoreError as e:
        return _failure("get_important_tasks", e)


async def get_completed_tasks(params: dict[str, Any]) -> dict[str, Any]:
    """List completed tasks in insertion order."""
    try:
        return _task_list(_store(params).get_completed_tasks())
    except TaskStoreError as e:
        return _failure("get_completed_tasks", e)


async def toggle_task_completion(params: dict[str, Any]) -> dict[str, Any]:
    """Flip the completed flag of a task.

    Args:
        params: Tool parameters including:
            - id: Task ID
            - _context: Injected service context

    Returns:
        Result with the updated task or typed failure
    """
    try:
        task = _store(params).toggle_task_completion(params["id"])
        return {
            "status": "updated",
            "task": task.model_dump(mode="json"),
        }

    except TaskStoreError as e:
        return _failure("toggle_task_completion", e)


async def toggle_task_importance(params: dict[str, Any]) -> dict[str, Any]:
    """Flip the important flag of a task.

    Args:
        params: Tool parameters including:
            - id: Task ID
            - _context: Injected service context

    Returns:
        Result with the updated task or typed failure
    """
    try:
        task = _store(params).toggle_task_importance(params["id"])
        return {
            "status": "updated",
            "task": task.model_dump(mode="json"),
        }

    except TaskStoreError as e:
        return _failure("toggle_task_importance", e)


async def delete_task(params: dict[str, Any]) -> dict[str, Any]:
    """Delete a task permanently.

    Args:
        params: Tool parameters including:
            - id: Task ID
            - _context: Injected service context

    Returns:
        Result with deletion status or typed failure
    """
    try:
        task = _store(params).delete_task(params["id"])
        return {
            "task_id": task.id,
            "status": "deleted",
        }

    except TaskStoreError as e:
        return _failure("delete_task", e)
