"""In-memory task collection with atomic operations."""

import copy
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from types import TracebackType
from typing import Any

from todo_service.core.errors import (
    InvalidInputError,
    StoreClosedError,
    TaskNotFoundError,
    TaskStoreError,
)
from todo_service.models import Task, TaskFilter
from todo_service.utils.logging import get_logger
from todo_service.utils.metrics import Metrics, get_metrics

logger = get_logger(__name__)


class TaskStore:
    """Owns the task collection and is the sole mutator of task state.

    Provides:
    - Task creation with monotonically assigned, never reused IDs
    - Filtered views (all, important, completed) computed on every query
    - Completion and importance toggles
    - Permanent deletion

    Every operation runs under a single re-entrant lock, so mutations are
    serialized and reads copy a consistent snapshot. Returned tasks are
    copies and never change after being handed out.
    """

    def __init__(
        self,
        allow_empty_description: bool = False,
        metrics: Metrics | None = None,
    ) -> None:
        """Initialize an empty task store.

        Args:
            allow_empty_description: Accept empty or whitespace-only
                descriptions instead of rejecting them
            metrics: Metrics sink (defaults to the process-wide instance).
                The task_count gauges are not labelled per store, so only
                one store per process should use the default; tests and
                embedders running several stores pass their own Metrics.
        """
        self.allow_empty_description = allow_empty_description
        self._metrics = metrics or get_metrics()
        self._tasks: dict[int, Task] = {}
        self._next_id = 0
        self._lock = threading.RLock()
        self._closed = False

        logger.info("task_store_initialized", allow_empty_description=allow_empty_description)

    # ---- lifecycle ----

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._closed

    def close(self) -> None:
        """Drop all tasks and reject further operations."""
        with self._lock:
            if self._closed:
                return
            dropped = len(self._tasks)
            self._tasks.clear()
            self._closed = True
            self._metrics.set_task_counts(0, 0, 0)
        logger.info("task_store_closed", dropped_tasks=dropped)

    def __enter__(self) -> "TaskStore":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # ---- operations ----

    def add_task(
        self,
        description: str,
        metadata: Any = None,
        important: bool = False,
    ) -> Task:
        """Create a task.

        Args:
            description: Task text, stored as given
            metadata: Reserved auxiliary value, stored but not interpreted
            important: Initial importance flag

        Returns:
            The created task

        Raises:
            InvalidInputError: If the description is not text, or is empty
                while empty descriptions are not allowed
        """
        with self._operation("add_task"):
            if not isinstance(description, str):
                raise InvalidInputError("description", "must be a string")
            if not description.strip() and not self.allow_empty_description:
                raise InvalidInputError("description", "must not be empty")

            task = Task(
                id=self._next_id,
                description=description,
                important=bool(important),
                metadata=copy.deepcopy(metadata),
            )
            self._next_id += 1
            self._tasks[task.id] = task
            self._refresh_counts()

            logger.info("task_added", task_id=task.id, important=task.important)
            return task.model_copy(deep=True)

    def get_task(self, task_id: int) -> Task:
        """Get a task by ID.

        Raises:
            TaskNotFoundError: If no task has this ID
        """
        with self._operation("get_task"):
            return self._require(task_id, "get_task").model_copy(deep=True)

    def get_tasks(self) -> list[Task]:
        """Get every task in insertion order."""
        return self.list_tasks(TaskFilter.ALL)

    def get_important_tasks(self) -> list[Task]:
        """Get important tasks in insertion order."""
        return self.list_tasks(TaskFilter.IMPORTANT)

    def get_completed_tasks(self) -> list[Task]:
        """Get completed tasks in insertion order."""
        return self.list_tasks(TaskFilter.COMPLETED)

    def list_tasks(self, task_filter: TaskFilter = TaskFilter.ALL) -> list[Task]:
        """Get the tasks in a filtered view.

        Args:
            task_filter: View to compute

        Returns:
            Copies of the matching tasks in insertion order
        """
        task_filter = TaskFilter(task_filter)
        with self._operation(f"list_{task_filter.value}"):
            return [
                task.model_copy(deep=True)
                for task in self._tasks.values()
                if task.matches(task_filter)
            ]

    def toggle_task_completion(self, task_id: int) -> Task:
        """Flip the completed flag of a task.

        Returns:
            The updated task

        Raises:
            TaskNotFoundError: If no task has this ID
        """
        with self._operation("toggle_task_completion"):
            task = self._require(task_id, "toggle_task_completion")
            task.completed = not task.completed
            self._refresh_counts()

            logger.info("task_completion_toggled", task_id=task_id, completed=task.completed)
            return task.model_copy(deep=True)

    def toggle_task_importance(self, task_id: int) -> Task:
        """Flip the important flag of a task.

        Returns:
            The updated task

        Raises:
            TaskNotFoundError: If no task has this ID
        """
        with self._operation("toggle_task_importance"):
            task = self._require(task_id, "toggle_task_importance")
            task.important = not task.important
            self._refresh_counts()

            logger.info("task_importance_toggled", task_id=task_id, important=task.important)
            return task.model_copy(deep=True)

    def delete_task(self, task_id: int) -> Task:
        """Remove a task permanently. Its ID is never assigned again.

        Returns:
            The removed task

        Raises:
            TaskNotFoundError: If no task has this ID
        """
        with self._operation("delete_task"):
            self._require(task_id, "delete_task")
            task = self._tasks.pop(task_id)
            self._refresh_counts()

            logger.info("task_deleted", task_id=task_id, remaining=len(self._tasks))
            return task

    def count(self) -> int:
        """Number of tasks currently stored."""
        with self._operation("count"):
            return len(self._tasks)

    # ---- helpers ----

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        """Run an operation atomically and record its outcome."""
        start = time.perf_counter()
        status = "success"
        try:
            with self._lock:
                if self._closed:
                    raise StoreClosedError()
                yield
        except TaskStoreError as e:
            status = e.code.lower()
            raise
        except Exception:
            status = "error"
            logger.exception("task_operation_failed", operation=name)
            raise
        finally:
            self._metrics.record_task_operation(name, status, time.perf_counter() - start)

    def _require(self, task_id: int, operation: str) -> Task:
        if isinstance(task_id, bool) or not isinstance(task_id, int):
            raise InvalidInputError("id", "must be an integer")
        task = self._tasks.get(task_id)
        if task is None:
            logger.warning("task_not_found", operation=operation, task_id=task_id)
            raise TaskNotFoundError(task_id)
        return task

    def _refresh_counts(self) -> None:
        tasks = self._tasks.values()
        self._metrics.set_task_counts(
            total=len(self._tasks),
            important=sum(1 for t in tasks if t.important),
            completed=sum(1 for t in tasks if t.completed),
        )
