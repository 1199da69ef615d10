"""Test fixtures including task data factories."""

from tests.fixtures.factories import (
    TaskFactory,
    populate_store,
    rpc_request,
)

__all__ = [
    "TaskFactory",
    "populate_store",
    "rpc_request",
]
