"""FastAPI HTTP server for task endpoints, health checks and metrics."""

import uuid
from typing import Any

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from todo_service import __version__
from todo_service.api.rpc_server import RPCServer
from todo_service.core.errors import TaskStoreError
from todo_service.core.task_store import TaskStore
from todo_service.models import AddTaskParams, Task, TaskFilter
from todo_service.utils.logging import get_logger
from todo_service.utils.metrics import Metrics, get_metrics

logger = get_logger(__name__)

# Typed store failures mapped to HTTP status codes
ERROR_STATUS_CODES = {
    "NOT_FOUND": 404,
    "INVALID_INPUT": 422,
    "STORE_CLOSED": 503,
}


def _task_list(tasks: list[Task]) -> dict[str, Any]:
    return {
        "tasks": [task.model_dump(mode="json") for task in tasks],
        "total": len(tasks),
    }


def create_http_server(
    task_store: TaskStore,
    metrics: Metrics | None = None,
    metrics_enabled: bool = True,
) -> FastAPI:
    """Create FastAPI HTTP server for the task service.

    Args:
        task_store: Store backing every endpoint
        metrics: Metrics instance (defaults to the process-wide instance)
        metrics_enabled: Whether to expose GET /metrics

    Returns:
        FastAPI application
    """
    metrics = metrics or get_metrics()
    rpc_server = RPCServer(task_store, metrics=metrics)

    app = FastAPI(
        title="Todo Service",
        description="Personal task tracking with completion and importance flags",
        version=__version__,
        redoc_url=None,
    )
    app.state.task_store = task_store
    app.state.rpc_server = rpc_server

    @app.middleware("http")
    async def bind_request_context(request: Request, call_next: Any) -> Response:
        """Bind a request ID to every log event emitted for this request."""
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(TaskStoreError)
    async def task_store_error_handler(request: Request, exc: TaskStoreError) -> JSONResponse:
        status_code = ERROR_STATUS_CODES.get(exc.code, 500)
        logger.warning(
            "http_task_error",
            code=exc.code,
            error=exc.message,
            status_code=status_code,
        )
        return JSONResponse(content=exc.to_dict(), status_code=status_code)

    # ---- tasks ----

    @app.get("/tasks")
    async def list_tasks(filter: TaskFilter = TaskFilter.ALL) -> dict[str, Any]:
        """List tasks in a filtered view (all, important or completed)."""
        return _task_list(task_store.list_tasks(filter))

    @app.get("/tasks/important")
    async def list_important_tasks() -> dict[str, Any]:
        """List important tasks."""
        return _task_list(task_store.get_important_tasks())

    @app.get("/tasks/completed")
    async def list_completed_tasks() -> dict[str, Any]:
        """List completed tasks."""
        return _task_list(task_store.get_completed_tasks())

    @app.get("/tasks/{task_id}")
    async def get_task(task_id: int) -> dict[str, Any]:
        """Get a single task."""
        return {"task": task_store.get_task(task_id).model_dump(mode="json")}

    @app.post("/tasks", status_code=201)
    async def add_task(params: AddTaskParams) -> dict[str, Any]:
        """Create a task."""
        task = task_store.add_task(
            description=params.description,
            metadata=params.metadata,
            important=params.important,
        )
        return {"status": "created", "task": task.model_dump(mode="json")}

    @app.post("/tasks/{task_id}/toggle-completion")
    async def toggle_task_completion(task_id: int) -> dict[str, Any]:
        """Flip the completed flag of a task."""
        task = task_store.toggle_task_completion(task_id)
        return {"status": "updated", "task": task.model_dump(mode="json")}

    @app.post("/tasks/{task_id}/toggle-importance")
    async def toggle_task_importance(task_id: int) -> dict[str, Any]:
        """Flip the important flag of a task."""
        task = task_store.toggle_task_importance(task_id)
        return {"status": "updated", "task": task.model_dump(mode="json")}

    @app.delete("/tasks/{task_id}")
    async def delete_task(task_id: int) -> dict[str, Any]:
        """Delete a task permanently."""
        task = task_store.delete_task(task_id)
        return {"task_id": task.id, "status": "deleted"}

    # ---- JSON-RPC ----

    @app.post("/rpc")
    async def rpc(request: Request) -> Response:
        """JSON-RPC 2.0 endpoint sharing the stdio dispatcher.

        Notification-only payloads are answered with 204 No Content.
        """
        response = await rpc_server.handle_payload(await request.body())
        if response is None:
            return Response(status_code=204)
        return JSONResponse(content=response)

    # ---- operations ----

    @app.get("/health")
    async def health() -> JSONResponse:
        """Liveness check endpoint.

        Returns 200 if the service is running.
        """
        return JSONResponse(
            content={"status": "ok", "service": "todo-service"},
            status_code=200,
        )

    @app.get("/health/ready")
    async def readiness() -> JSONResponse:
        """Readiness check endpoint.

        Ready while the task store accepts operations.
        """
        checks = {"task_store": not task_store.closed}
        all_healthy = all(checks.values())

        return JSONResponse(
            content={
                "status": "ready" if all_healthy else "not_ready",
                "checks": checks,
            },
            status_code=200 if all_healthy else 503,
        )

    @app.get("/status")
    async def status() -> JSONResponse:
        """Detailed service status endpoint."""
        status_data: dict[str, Any] = {
            "service": "todo-service",
            "version": __version__,
            "store": {"open": not task_store.closed},
            "operations": rpc_server.operation_names,
        }

        if not task_store.closed:
            # One snapshot so the counts agree with each other
            tasks = task_store.get_tasks()
            status_data["store"]["counts"] = {
                "all": len(tasks),
                "important": sum(1 for t in tasks if t.important),
                "completed": sum(1 for t in tasks if t.completed),
            }

        return JSONResponse(content=status_data)

    if metrics_enabled:

        @app.get("/metrics")
        async def prometheus_metrics() -> Response:
            """Prometheus metrics endpoint.

            Returns metrics in Prometheus exposition format.
            """
            return Response(
                content=generate_latest(metrics.registry),
                media_type=CONTENT_TYPE_LATEST,
            )

    logger.info("http_server_created", metrics_enabled=metrics_enabled)
    return app
