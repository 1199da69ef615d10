"""Task operation handlers."""

from todo_service.api.tools.tasks import (
    add_task,
    delete_task,
    get_completed_tasks,
    get_important_tasks,
    get_task,
    get_tasks,
    toggle_task_completion,
    toggle_task_importance,
)

__all__ = [
    "add_task",
    "get_task",
    "get_tasks",
    "get_important_tasks",
    "get_completed_tasks",
    "toggle_task_completion",
    "toggle_task_importance",
    "delete_task",
]
