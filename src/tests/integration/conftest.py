"""Integration test configuration.

Integration tests exercise the store, the RPC dispatcher and the HTTP app
together against real in-memory stores; nothing is mocked. Shared fixtures
come from ``src/tests/conftest.py``.
"""

import pytest


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Mark every test in this directory as an integration test."""
    for item in items:
        if "integration" in item.nodeid.split("/"):
            item.add_marker(pytest.mark.integration)
