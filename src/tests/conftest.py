"""Pytest fixtures for the task service tests."""

from collections.abc import Generator
from typing import Any

import pytest
from prometheus_client import CollectorRegistry

from todo_service.api.rpc_server import RPCServer
from todo_service.config import Settings
from todo_service.core.task_store import TaskStore
from todo_service.utils.metrics import Metrics


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with explicit values."""
    return Settings(
        http_host="127.0.0.1",
        http_port=8765,
        log_level="DEBUG",
        log_format="console",
        allow_empty_description=False,
        metrics_enabled=True,
    )


@pytest.fixture
def metrics() -> Metrics:
    """Create metrics bound to a private registry."""
    return Metrics(registry=CollectorRegistry())


@pytest.fixture
def task_store(metrics: Metrics) -> Generator[TaskStore, None, None]:
    """Create an empty task store."""
    store = TaskStore(metrics=metrics)
    yield store
    store.close()


@pytest.fixture
def populated_store(task_store: TaskStore) -> TaskStore:
    """Create a store holding four tasks covering every flag combination.

    IDs 0-3: plain, important, completed, important and completed.
    """
    task_store.add_task("Buy milk")
    task_store.add_task("Pay rent", important=True)
    done = task_store.add_task("Water plants")
    task_store.toggle_task_completion(done.id)
    both = task_store.add_task("File taxes", important=True)
    task_store.toggle_task_completion(both.id)
    return task_store


@pytest.fixture
def rpc_server(task_store: TaskStore, metrics: Metrics) -> RPCServer:
    """Create an RPC server over the task store."""
    return RPCServer(task_store, metrics=metrics)


@pytest.fixture
def context(task_store: TaskStore) -> dict[str, Any]:
    """Create the handler context injected by the RPC server."""
    return {"task_store": task_store}
