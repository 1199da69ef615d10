"""JSON-RPC 2.0 server exposing the task operations."""

import asyncio
import json
import sys
import time
from collections.abc import Callable, Coroutine
from typing import Any

from pydantic import BaseModel, ValidationError

from todo_service import __version__
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
from todo_service.core.task_store import TaskStore
from todo_service.models import AddTaskParams, NoParams, TaskIdParams
from todo_service.utils.logging import get_logger
from todo_service.utils.metrics import Metrics, get_metrics

logger = get_logger(__name__)

# Operation handler type
OperationHandler = Callable[[dict[str, Any]], Coroutine[Any, Any, dict[str, Any]]]

# Standard JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

OPERATION_DESCRIPTIONS = {
    "add_task": "Create a task with a description and optional importance flag",
    "get_task": "Retrieve a task by ID",
    "get_tasks": "List every task in insertion order",
    "get_important_tasks": "List tasks flagged important",
    "get_completed_tasks": "List tasks flagged completed",
    "toggle_task_completion": "Flip the completed flag of a task",
    "toggle_task_importance": "Flip the important flag of a task",
    "delete_task": "Delete a task permanently",
}


class RPCError(Exception):
    """JSON-RPC protocol error."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


class RPCServer:
    """JSON-RPC 2.0 dispatcher for the task operations.

    Methods are the operation names plus ``initialize``, ``operations/list``
    and ``shutdown``. Typed operation failures (NOT_FOUND, INVALID_INPUT)
    are returned as results; protocol problems are JSON-RPC errors.

    The dispatcher is transport agnostic: ``run()`` serves line-delimited
    messages over stdio and the HTTP server reuses ``handle_payload()``.
    """

    def __init__(self, task_store: TaskStore, metrics: Metrics | None = None) -> None:
        """Initialize RPC server.

        Args:
            task_store: Store the operations act on
            metrics: Metrics sink (defaults to the process-wide instance)
        """
        self.task_store = task_store
        self.metrics = metrics or get_metrics()

        # Operation registry
        self._operations: dict[str, OperationHandler] = {}
        self._param_models: dict[str, type[BaseModel]] = {}

        self._register_operations()

        logger.info("rpc_server_initialized", operations=len(self._operations))

    def _register_operations(self) -> None:
        """Register all task operations."""
        self._register_operation("add_task", add_task, AddTaskParams)
        self._register_operation("get_task", get_task, TaskIdParams)
        self._register_operation("get_tasks", get_tasks, NoParams)
        self._register_operation("get_important_tasks", get_important_tasks, NoParams)
        self._register_operation("get_completed_tasks", get_completed_tasks, NoParams)
        self._register_operation("toggle_task_completion", toggle_task_completion, TaskIdParams)
        self._register_operation("toggle_task_importance", toggle_task_importance, TaskIdParams)
        self._register_operation("delete_task", delete_task, TaskIdParams)

    def _register_operation(
        self,
        name: str,
        handler: OperationHandler,
        params_model: type[BaseModel],
    ) -> None:
        """Register an operation with its handler and parameter model.

        Args:
            name: Operation name (the JSON-RPC method)
            handler: Async handler function
            params_model: Pydantic model validating the parameters
        """
        self._operations[name] = handler
        self._param_models[name] = params_model
        logger.debug("operation_registered", name=name)

    @property
    def operation_names(self) -> list[str]:
        """Registered operation names in registration order."""
        return list(self._operations)

    async def run(self) -> None:
        """Serve line-delimited JSON-RPC over stdin/stdout."""
        logger.info("rpc_server_starting")

        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader()
        protocol = asyncio.StreamReaderProtocol(reader)

        await loop.connect_read_pipe(lambda: protocol, sys.stdin)
        writer_transport, writer_protocol = await loop.connect_write_pipe(
            asyncio.streams.FlowControlMixin, sys.stdout
        )
        writer = asyncio.StreamWriter(writer_transport, writer_protocol, reader, loop)

        try:
            while True:
                line = await reader.readline()
                if not line:
                    break
                if not line.strip():
                    continue

                response = await self.handle_payload(line)
                if response is not None:
                    writer.write((json.dumps(response) + "\n").encode())
                    await writer.drain()

        except asyncio.CancelledError:
            logger.info("rpc_server_cancelled")
        finally:
            writer.close()
            logger.info("rpc_server_stopped")

    async def handle_payload(self, payload: str | bytes) -> dict[str, Any] | list[dict[str, Any]] | None:
        """Handle a raw JSON-RPC payload (single message or batch).

        Args:
            payload: Encoded JSON text

        Returns:
            Response, list of responses for a batch, or None when nothing
            needs answering (notifications only)
        """
        try:
            message = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return self._error_response(None, PARSE_ERROR, f"Parse error: {e}")

        if isinstance(message, list):
            if not message:
                return self._error_response(None, INVALID_REQUEST, "Invalid request: empty batch")
            responses = [await self.handle_message(item) for item in message]
            batch = [r for r in responses if r is not None]
            return batch or None

        return await self.handle_message(message)

    async def handle_message(self, message: Any) -> dict[str, Any] | None:
        """Handle an incoming JSON-RPC message.

        Args:
            message: Decoded JSON-RPC message

        Returns:
            Response message or None for notifications
        """
        if not isinstance(message, dict):
            return self._error_response(None, INVALID_REQUEST, "Invalid request: expected an object")

        msg_id = message.get("id")
        method = message.get("method")
        is_notification = "id" not in message

        if message.get("jsonrpc") != "2.0" or not isinstance(method, str):
            return self._error_response(msg_id, INVALID_REQUEST, "Invalid request")

        try:
            if method == "initialize":
                result = self._handle_initialize()

            elif method == "operations/list":
                result = self._handle_operations_list()

            elif method == "shutdown":
                result = {"status": "ok"}

            elif method in self._operations:
                result = await self._handle_operation_call(method, message.get("params"))

            else:
                raise RPCError(METHOD_NOT_FOUND, f"Method not found: {method}")

        except RPCError as e:
            if is_notification:
                return None
            return self._error_response(msg_id, e.code, e.message, e.data)
        except Exception as e:
            logger.exception("rpc_handler_error", method=method)
            if is_notification:
                return None
            return self._error_response(msg_id, INTERNAL_ERROR, f"Internal error: {e}")

        if is_notification:
            return None
        return self._success_response(msg_id, result)

    def _handle_initialize(self) -> dict[str, Any]:
        """Build the initialize result."""
        return {
            "serverInfo": {
                "name": "todo-service",
                "version": __version__,
            },
            "capabilities": {
                "operations": self.operation_names,
            },
        }

    def _handle_operations_list(self) -> dict[str, Any]:
        """Build the operations/list result."""
        operations = []
        for name, model in self._param_models.items():
            operations.append({
                "name": name,
                "description": OPERATION_DESCRIPTIONS.get(name, f"Execute {name}"),
                "inputSchema": model.model_json_schema(),
            })

        return {"operations": operations}

    async def _handle_operation_call(self, method: str, params: Any) -> dict[str, Any]:
        """Validate parameters and run an operation.

        Args:
            method: Operation name
            params: Raw JSON-RPC params

        Returns:
            Operation result
        """
        start = time.perf_counter()

        if params is None:
            params = {}
        if not isinstance(params, dict):
            self.metrics.record_rpc_call(method, "invalid_params", time.perf_counter() - start)
            raise RPCError(INVALID_PARAMS, "Invalid parameters: expected an object")

        try:
            validated = self._param_models[method].model_validate(params)
        except ValidationError as e:
            self.metrics.record_rpc_call(method, "invalid_params", time.perf_counter() - start)
            raise RPCError(
                INVALID_PARAMS,
                f"Invalid parameters for {method}",
                json.loads(e.json(include_url=False)),
            ) from e

        context = {"task_store": self.task_store}
        handler = self._operations[method]

        try:
            result = await handler({**validated.model_dump(), "_context": context})
        except Exception:
            self.metrics.record_rpc_call(method, "error", time.perf_counter() - start)
            raise

        status = "failure" if "error" in result else "success"
        self.metrics.record_rpc_call(method, status, time.perf_counter() - start)
        return result

    def _success_response(self, msg_id: Any, result: Any) -> dict[str, Any]:
        """Create a success response."""
        return {
            "jsonrpc": "2.0",
            "id": msg_id,
            "result": result,
        }

    def _error_response(
        self,
        msg_id: Any,
        code: int,
        message: str,
        data: Any = None,
    ) -> dict[str, Any]:
        """Create an error response.

        Args:
            msg_id: Message ID
            code: Error code
            message: Error message
            data: Additional error data

        Returns:
            JSON-RPC error response
        """
        error: dict[str, Any] = {
            "code": code,
            "message": message,
        }
        if data:
            error["data"] = data

        return {
            "jsonrpc": "2.0",
            "id": msg_id,
            "error": error,
        }
