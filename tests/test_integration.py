"""
Integration Tests

End-to-end tests that verify the complete system works together,
including recovery of all namespaces across a server restart.

Run with: python -m pytest tests/test_integration.py -v
"""

import asyncio
import pytest
from tests.conftest import AsyncClient, start_server, stop_server

from netkv.client import ClientError, KVClient


@pytest.mark.asyncio
@pytest.mark.integration
class TestEndToEnd:
    """End-to-end integration tests."""

    async def test_complete_workflow(self, server, server_port):
        """Test a complete user workflow."""
        async with AsyncClient('127.0.0.1', server_port) as client:
            assert await client.send_command("set user:1 alice") == "OK"
            assert await client.send_command("set user:2 bob") == "OK"
            assert await client.send_command("get user:1") == "alice"

            assert await client.send_command("rpush queue job1") == "OK"
            assert await client.send_command("rpush queue job2") == "OK"
            assert await client.send_command("lpop queue") == "job1"
            assert await client.send_command("len queue") == "1"

            assert await client.send_command("hset profile:1 name alice") == "OK"
            assert await client.send_command("hset profile:1 city paris") == "OK"
            assert await client.send_command("hget profile:1 city") == "paris"

            assert await client.send_command("del user:2") == "OK"
            assert await client.send_command("get user:2") == "null"

    async def test_concurrent_updates(self, server, server_port):
        """Test concurrent updates from multiple clients."""
        num_clients = 5
        num_operations = 20

        async def client_operations(client_id: int):
            async with AsyncClient('127.0.0.1', server_port) as client:
                for i in range(num_operations):
                    key = f"key:{client_id}:{i}"
                    value = f"value:{client_id}:{i}"

                    assert await client.send_command(f"set {key} {value}") == "OK"
                    assert await client.send_command(f"get {key}") == value
                    assert await client.send_command(f"rpush list:{client_id} {i}") == "OK"

        await asyncio.gather(*(client_operations(i) for i in range(num_clients)))

        async with AsyncClient('127.0.0.1', server_port) as client:
            for client_id in range(num_clients):
                expected = " ".join(str(i) for i in range(num_operations))
                response = await client.send_command(f"range list:{client_id} 0 {num_operations - 1}")
                assert response == expected


@pytest.mark.asyncio
@pytest.mark.integration
class TestRestartRecovery:
    """Test that state survives a server restart through the journal."""

    async def test_state_survives_restart(self, server_port, journal_path):
        srv, task, journal = await start_server(server_port, journal_path)
        try:
            async with AsyncClient('127.0.0.1', server_port) as client:
                await client.send_command("set a 1")
                await client.send_command("set a 2")
                await client.send_command("del b")
                await client.send_command("rpush l x")
                await client.send_command("rpush l y")
                await client.send_command("lpop l")
                await client.send_command("rpush drained z")
                await client.send_command("rpop drained")
                await client.send_command("hset h f1 v1")
                await client.send_command("hset h f2 v2")
                await client.send_command("hdel h f1")
            before = srv.store.snapshot()
        finally:
            await stop_server(srv, task, journal)

        srv, task, journal = await start_server(server_port, journal_path)
        try:
            assert srv.store.snapshot() == before
            async with AsyncClient('127.0.0.1', server_port) as client:
                assert await client.send_command("get a") == "2"
                assert await client.send_command("get b") == "null"
                assert await client.send_command("range l 0 0") == "y"
                assert await client.send_command("len drained") == "0"
                assert await client.send_command("ldel drained") == "OK"
                assert await client.send_command("hget h f1") == "null"
                assert await client.send_command("hget h f2") == "v2"
        finally:
            await stop_server(srv, task, journal)


@pytest.mark.asyncio
@pytest.mark.integration
class TestInteractiveClient:
    """Test the blocking KVClient against a running server."""

    async def test_send_commands(self, server, server_port):
        def session():
            with KVClient('127.0.0.1', server_port) as client:
                return [
                    client.send_command("set a 1"),
                    client.send_command("get a"),
                    client.send_command("help"),
                    client.send_command("ping"),
                ]

        set_reply, get_reply, help_reply, ping_reply = await asyncio.to_thread(session)
        assert set_reply == ["OK"]
        assert get_reply == ["1"]
        assert help_reply[0] == "Available commands:"
        assert len(help_reply) == 17
        assert ping_reply == ["pong"]

    async def test_connect_refused(self, server_port):
        def connect():
            KVClient('127.0.0.1', server_port, timeout=1.0).connect()

        with pytest.raises(ClientError):
            await asyncio.to_thread(connect)

    async def test_send_without_connect(self):
        client = KVClient("127.0.0.1", 1)
        with pytest.raises(ClientError):
            await asyncio.to_thread(client.send_command, "ping")
