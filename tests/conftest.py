"""
Pytest Configuration and Fixtures

This module provides shared fixtures and configuration for all tests.
"""

import asyncio
import socket
import pytest
import pytest_asyncio
from contextlib import closing
from typing import AsyncGenerator

from netkv.cache.store import KVStore
from netkv.engine import CommandEngine
from netkv.network.tcp_server import KVServer
from netkv.persistence.journal import Journal, open_journal
from netkv.protocol.parser import ProtocolParser


def find_free_port() -> int:
    """Find an available port for testing."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(('', 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# ============================================================================
# Store Fixtures
# ============================================================================

@pytest.fixture
def store() -> KVStore:
    """Create a fresh KVStore without a journal."""
    return KVStore()


# ============================================================================
# Journal Fixtures
# ============================================================================

@pytest.fixture
def journal_path(tmp_path) -> str:
    """Path of a journal file inside the test's temp directory."""
    return str(tmp_path / "data" / "netkv.aof")


@pytest.fixture
def journal(journal_path: str):
    """An opened journal that is closed after the test."""
    j = Journal(journal_path, sync_policy="flush")
    j.open()
    yield j
    j.close()


@pytest.fixture
def journaled_store(store: KVStore, journal: Journal) -> KVStore:
    """A store recording its mutations to the journal fixture."""
    store.attach_journal(journal)
    return store


# ============================================================================
# Protocol / Engine Fixtures
# ============================================================================

@pytest.fixture
def parser() -> ProtocolParser:
    """Create a ProtocolParser instance."""
    return ProtocolParser()


@pytest.fixture
def engine(store: KVStore) -> CommandEngine:
    """Create a CommandEngine around the store fixture."""
    return CommandEngine(store)


# ============================================================================
# Server Fixtures
# ============================================================================

@pytest.fixture
def server_port() -> int:
    """Get a free port for server testing."""
    return find_free_port()


async def start_server(port: int, journal_path: str):
    """
    Replay ``journal_path`` into a new store and serve it on ``port``.

    Returns:
        (server, server_task, journal)
    """
    store = KVStore()
    journal = open_journal(journal_path, store, sync_policy="flush")
    srv = KVServer(host='127.0.0.1', port=port, engine=CommandEngine(store), workers=4)

    server_task = asyncio.create_task(srv.start())

    # Wait for server to be ready
    await asyncio.sleep(0.1)
    return srv, server_task, journal


async def stop_server(srv: KVServer, server_task, journal: Journal) -> None:
    """Stop a server started by ``start_server`` and close its journal."""
    await srv.stop()
    server_task.cancel()
    try:
        await server_task
    except asyncio.CancelledError:
        pass
    journal.close()


@pytest_asyncio.fixture
async def server(server_port: int, journal_path: str) -> AsyncGenerator[KVServer, None]:
    """
    Create and start a server instance for testing.

    This fixture:
    1. Creates a KVServer on a random free port, journaling to tmp_path
    2. Starts it in a background task
    3. Yields the server for testing
    4. Cleans up after the test
    """
    srv, server_task, journal = await start_server(server_port, journal_path)

    yield srv

    await stop_server(srv, server_task, journal)


# ============================================================================
# Client Fixtures
# ============================================================================

class AsyncClient:
    """
    Helper class for testing server interactions.

    Provides a simple async context manager interface for
    sending commands and receiving responses.

    Usage:
        async with AsyncClient('127.0.0.1', 7171) as client:
            response = await client.send_command("set key value")
            assert response == "OK"
    """

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self.reader = None
        self.writer = None

    async def connect(self) -> None:
        """Establish connection to server."""
        self.reader, self.writer = await asyncio.open_connection(
            self.host, self.port
        )

    async def disconnect(self) -> None:
        """Close connection to server."""
        if self.writer:
            self.writer.close()
            try:
                await self.writer.wait_closed()
            except (ConnectionError, OSError):
                pass

    async def read_response(self) -> str:
        """Read response lines up to the terminating empty line."""
        lines = []
        while True:
            line = await self.reader.readline()
            if not line:
                raise ConnectionError("connection closed mid-response")
            line = line.decode().rstrip('\n')
            if not line:
                return "\n".join(lines)
            lines.append(line)

    async def send_command(self, command: str) -> str:
        """
        Send a command and receive the response.

        Args:
            command: Command string (newline will be added if missing)

        Returns:
            Response text, lines joined with newlines, without the
            terminating empty line
        """
        if not command.endswith('\n'):
            command += '\n'

        self.writer.write(command.encode())
        await self.writer.drain()

        return await self.read_response()

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()


@pytest.fixture
def client_factory(server_port: int):
    """
    Factory fixture to create test clients.

    Usage:
        async def test_something(server, client_factory):
            async with client_factory() as client:
                response = await client.send_command("get key")
    """
    def factory() -> AsyncClient:
        return AsyncClient('127.0.0.1', server_port)
    return factory


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )

