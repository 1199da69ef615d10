"""Unit tests for the JSON-RPC server."""

import json

import pytest

from todo_service.api.rpc_server import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    RPCError,
    RPCServer,
)
from todo_service.core.task_store import TaskStore
from todo_service.utils.metrics import Metrics
from tests.fixtures.factories import rpc_request


class TestRPCServerInit:
    """Tests for server construction and discovery methods."""

    def test_all_operations_registered(self, rpc_server: RPCServer) -> None:
        """Test every task operation is exposed."""
        assert rpc_server.operation_names == [
            "add_task",
            "get_task",
            "get_tasks",
            "get_important_tasks",
            "get_completed_tasks",
            "toggle_task_completion",
            "toggle_task_importance",
            "delete_task",
        ]

    @pytest.mark.asyncio
    async def test_initialize(self, rpc_server: RPCServer) -> None:
        """Test initialize reports server info and operations."""
        response = await rpc_server.handle_message(rpc_request("initialize"))

        assert response is not None
        result = response["result"]
        assert result["serverInfo"]["name"] == "todo-service"
        assert "add_task" in result["capabilities"]["operations"]

    @pytest.mark.asyncio
    async def test_operations_list(self, rpc_server: RPCServer) -> None:
        """Test operations/list includes descriptions and input schemas."""
        response = await rpc_server.handle_message(rpc_request("operations/list"))

        assert response is not None
        operations = {op["name"]: op for op in response["result"]["operations"]}
        assert len(operations) == 8
        assert operations["add_task"]["inputSchema"]["required"] == ["description"]
        assert operations["delete_task"]["description"]

    @pytest.mark.asyncio
    async def test_shutdown(self, rpc_server: RPCServer) -> None:
        """Test shutdown acknowledges."""
        response = await rpc_server.handle_message(rpc_request("shutdown", msg_id=9))

        assert response == {"jsonrpc": "2.0", "id": 9, "result": {"status": "ok"}}


class TestOperationCalls:
    """Tests for dispatching task operations."""

    @pytest.mark.asyncio
    async def test_add_task(self, rpc_server: RPCServer) -> None:
        """Test add_task creates a task."""
        response = await rpc_server.handle_message(
            rpc_request("add_task", {"description": "Buy milk", "important": True})
        )

        assert response is not None
        assert response["id"] == 1
        assert response["result"]["status"] == "created"
        assert response["result"]["task"]["important"] is True

    @pytest.mark.asyncio
    async def test_list_without_params(self, rpc_server: RPCServer, populated_store: TaskStore) -> None:
        """Test list operations accept a missing params member."""
        response = await rpc_server.handle_message(rpc_request("get_important_tasks"))

        assert response is not None
        assert response["result"]["total"] == 2

    @pytest.mark.asyncio
    async def test_not_found_is_a_result(self, rpc_server: RPCServer) -> None:
        """Test typed failures are results, not protocol errors."""
        response = await rpc_server.handle_message(rpc_request("delete_task", {"id": 3}))

        assert response is not None
        assert "error" not in response
        assert response["result"]["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_invalid_input_is_a_result(self, rpc_server: RPCServer) -> None:
        """Test an empty description is reported as INVALID_INPUT."""
        response = await rpc_server.handle_message(rpc_request("add_task", {"description": ""}))

        assert response is not None
        assert response["result"]["code"] == "INVALID_INPUT"

    @pytest.mark.asyncio
    async def test_missing_param(self, rpc_server: RPCServer) -> None:
        """Test missing required params are a protocol error."""
        response = await rpc_server.handle_message(rpc_request("toggle_task_completion", {}))

        assert response is not None
        assert response["error"]["code"] == INVALID_PARAMS
        assert response["error"]["data"][0]["loc"] == ["id"]

    @pytest.mark.asyncio
    async def test_wrong_param_type(self, rpc_server: RPCServer) -> None:
        """Test ill-typed params are a protocol error."""
        response = await rpc_server.handle_message(rpc_request("get_task", {"id": "first"}))

        assert response is not None
        assert response["error"]["code"] == INVALID_PARAMS

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["get_task", "toggle_task_completion", "delete_task"])
    async def test_boolean_id_rejected(
        self,
        rpc_server: RPCServer,
        populated_store: TaskStore,
        method: str,
    ) -> None:
        """Test a JSON boolean id is invalid params and touches no task."""
        before = populated_store.get_tasks()

        response = await rpc_server.handle_message(rpc_request(method, {"id": True}))

        assert response is not None
        assert response["error"]["code"] == INVALID_PARAMS
        assert populated_store.get_tasks() == before

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("method", "params"),
        [
            ("delete_task", {"id": 0, "bogus": 1}),
            ("add_task", {"description": "A", "priority": "high"}),
        ],
    )
    async def test_unknown_params_rejected(
        self,
        rpc_server: RPCServer,
        task_store: TaskStore,
        method: str,
        params: dict,
    ) -> None:
        """Test unexpected params fields are invalid params."""
        task_store.add_task("Keep me")

        response = await rpc_server.handle_message(rpc_request(method, params))

        assert response is not None
        assert response["error"]["code"] == INVALID_PARAMS
        assert task_store.count() == 1

    @pytest.mark.asyncio
    async def test_positional_params_rejected(self, rpc_server: RPCServer) -> None:
        """Test params must be an object."""
        response = await rpc_server.handle_message(rpc_request("get_task", [0]))

        assert response is not None
        assert response["error"]["code"] == INVALID_PARAMS

    @pytest.mark.asyncio
    async def test_unexpected_param_on_list(self, rpc_server: RPCServer) -> None:
        """Test list operations reject unknown params."""
        response = await rpc_server.handle_message(rpc_request("get_tasks", {"page": 2}))

        assert response is not None
        assert response["error"]["code"] == INVALID_PARAMS

    @pytest.mark.asyncio
    async def test_unknown_method(self, rpc_server: RPCServer) -> None:
        """Test unknown methods return -32601."""
        response = await rpc_server.handle_message(rpc_request("rename_task", {"id": 0}))

        assert response is not None
        assert response["error"]["code"] == METHOD_NOT_FOUND
        assert "rename_task" in response["error"]["message"]

    @pytest.mark.asyncio
    async def test_handler_exception_is_internal_error(
        self,
        rpc_server: RPCServer,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test unexpected handler failures become -32603."""

        async def broken(params: dict) -> dict:
            raise RuntimeError("boom")

        monkeypatch.setitem(rpc_server._operations, "get_tasks", broken)

        response = await rpc_server.handle_message(rpc_request("get_tasks"))

        assert response is not None
        assert response["error"]["code"] == INTERNAL_ERROR
        assert "boom" in response["error"]["message"]


class TestProtocolHandling:
    """Tests for JSON-RPC framing rules."""

    @pytest.mark.asyncio
    async def test_notification_gets_no_response(
        self,
        rpc_server: RPCServer,
        task_store: TaskStore,
    ) -> None:
        """Test notifications execute but return nothing."""
        message = {"jsonrpc": "2.0", "method": "add_task", "params": {"description": "Silent"}}

        response = await rpc_server.handle_message(message)

        assert response is None
        assert task_store.count() == 1

    @pytest.mark.asyncio
    async def test_wrong_version(self, rpc_server: RPCServer) -> None:
        """Test messages without jsonrpc 2.0 are invalid."""
        response = await rpc_server.handle_message({"jsonrpc": "1.0", "id": 1, "method": "get_tasks"})

        assert response is not None
        assert response["error"]["code"] == INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_non_object_message(self, rpc_server: RPCServer) -> None:
        """Test non-object messages are invalid."""
        response = await rpc_server.handle_message("get_tasks")

        assert response is not None
        assert response["error"]["code"] == INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_parse_error(self, rpc_server: RPCServer) -> None:
        """Test malformed JSON returns -32700 with a null id."""
        response = await rpc_server.handle_payload(b"{not json")

        assert isinstance(response, dict)
        assert response["id"] is None
        assert response["error"]["code"] == PARSE_ERROR

    @pytest.mark.asyncio
    async def test_batch(self, rpc_server: RPCServer) -> None:
        """Test batches answer every request and skip notifications."""
        payload = json.dumps([
            rpc_request("add_task", {"description": "A"}, msg_id=1),
            {"jsonrpc": "2.0", "method": "add_task", "params": {"description": "B"}},
            rpc_request("get_tasks", msg_id=2),
        ])

        responses = await rpc_server.handle_payload(payload)

        assert isinstance(responses, list)
        assert [r["id"] for r in responses] == [1, 2]
        assert responses[1]["result"]["total"] == 2

    @pytest.mark.asyncio
    async def test_empty_batch(self, rpc_server: RPCServer) -> None:
        """Test an empty batch is invalid."""
        response = await rpc_server.handle_payload("[]")

        assert isinstance(response, dict)
        assert response["error"]["code"] == INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_notification_only_batch(self, rpc_server: RPCServer) -> None:
        """Test a batch of notifications returns nothing."""
        payload = json.dumps([{"jsonrpc": "2.0", "method": "get_tasks"}])

        assert await rpc_server.handle_payload(payload) is None


class TestRPCMetrics:
    """Tests for RPC call metrics."""

    @pytest.mark.asyncio
    async def test_calls_recorded_by_status(self, rpc_server: RPCServer, metrics: Metrics) -> None:
        """Test success, failure and invalid params are counted separately."""
        await rpc_server.handle_message(rpc_request("add_task", {"description": "A"}))
        await rpc_server.handle_message(rpc_request("delete_task", {"id": 8}))
        await rpc_server.handle_message(rpc_request("delete_task", {}))

        registry = metrics.registry
        assert registry.get_sample_value(
            "rpc_calls_total", {"method": "add_task", "status": "success"}
        ) == 1.0
        assert registry.get_sample_value(
            "rpc_calls_total", {"method": "delete_task", "status": "failure"}
        ) == 1.0
        assert registry.get_sample_value(
            "rpc_calls_total", {"method": "delete_task", "status": "invalid_params"}
        ) == 1.0


def test_rpc_error_fields() -> None:
    """Test RPCError carries code, message and data."""
    error = RPCError(INVALID_PARAMS, "bad", {"field": "id"})

    assert error.code == INVALID_PARAMS
    assert error.message == "bad"
    assert error.data == {"field": "id"}
    assert str(error) == "bad"
