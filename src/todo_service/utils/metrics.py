"""Prometheus metrics for observability."""

from functools import lru_cache

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram, Info

from todo_service import __version__


class Metrics:
    """Prometheus metrics for the task service."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        """Initialize all metrics.

        Args:
            registry: Registry to register collectors with. Tests pass a
                fresh CollectorRegistry to avoid duplicate registration.
        """
        self.registry = registry

        # Service info
        self.info = Info(
            "todo_service",
            "Task service information",
            registry=registry,
        )
        self.info.info({"version": __version__})

        # Task operations
        self.task_operations_total = Counter(
            "task_operations_total",
            "Total number of task store operations",
            ["operation", "status"],
            registry=registry,
        )

        self.task_operation_duration_seconds = Histogram(
            "task_operation_duration_seconds",
            "Duration of task store operations in seconds",
            ["operation"],
            buckets=[0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1],
            registry=registry,
        )

        # Task counts by view
        self.task_count = Gauge(
            "task_count",
            "Current number of tasks by view",
            ["view"],
            registry=registry,
        )

        # RPC metrics
        self.rpc_calls_total = Counter(
            "rpc_calls_total",
            "Total number of JSON-RPC calls",
            ["method", "status"],
            registry=registry,
        )

        self.rpc_call_duration_seconds = Histogram(
            "rpc_call_duration_seconds",
            "Duration of JSON-RPC calls in seconds",
            ["method"],
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0],
            registry=registry,
        )

    def record_task_operation(
        self,
        operation: str,
        status: str,
        duration: float,
    ) -> None:
        """Record a task store operation metric.

        Args:
            operation: Operation name (add_task, delete_task, ...)
            status: Operation status (success, not_found, invalid_input, error)
            duration: Operation duration in seconds
        """
        self.task_operations_total.labels(
            operation=operation,
            status=status,
        ).inc()
        self.task_operation_duration_seconds.labels(
            operation=operation,
        ).observe(duration)

    def set_task_counts(self, total: int, important: int, completed: int) -> None:
        """Update the task count gauges.

        Args:
            total: Number of tasks in the store
            important: Number of important tasks
            completed: Number of completed tasks
        """
        self.task_count.labels(view="all").set(total)
        self.task_count.labels(view="important").set(important)
        self.task_count.labels(view="completed").set(completed)

    def record_rpc_call(
        self,
        method: str,
        status: str,
        duration: float,
    ) -> None:
        """Record a JSON-RPC call metric.

        Args:
            method: RPC method name
            status: Call status (success, error)
            duration: Call duration in seconds
        """
        self.rpc_calls_total.labels(
            method=method,
            status=status,
        ).inc()
        self.rpc_call_duration_seconds.labels(
            method=method,
        ).observe(duration)


@lru_cache
def get_metrics() -> Metrics:
    """Get cached metrics instance."""
    return Metrics()
