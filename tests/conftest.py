"""Pytest configuration and fixtures for browser-repl tests."""

from unittest.mock import AsyncMock

import pytest

from browser_repl.config import Settings
from browser_repl.services import Connection, Registry, RelayRouter


@pytest.fixture
def registry():
    """Create a fresh Registry instance."""
    return Registry()


@pytest.fixture
def router(registry):
    """Create a RelayRouter over the test registry."""
    return RelayRouter(registry)


@pytest.fixture
def make_connection(registry):
    """Factory for registry-tracked connections backed by mock sockets."""

    def _make() -> Connection:
        socket = AsyncMock()
        socket.send_json = AsyncMock()
        socket.close = AsyncMock()
        connection = Connection(socket=socket)
        registry.add(connection)
        return connection

    return _make


@pytest.fixture
def settings():
    """Settings pinned to a known session and short timeouts."""
    return Settings(
        host="localhost",
        port=8080,
        session_id="test-session",
        connect_timeout=0.05,
        execute_timeout=0.2,
    )
