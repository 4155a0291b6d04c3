"""
Async TCP Server Module

This module implements the asynchronous TCP server for NetKV.

Each connection is served by its own coroutine. Commands are executed
on a bounded thread pool so that lock waits and journal fsyncs never
stall the event loop; the response is written only after the command
(including its journal append) has completed.
"""

import asyncio
import logging
from asyncio import StreamReader, StreamWriter
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from ..cache.store import KVStore
from ..config.settings import settings
from ..engine import CommandEngine
from ..protocol.commands import Response

logger = logging.getLogger(__name__)


class KVServer:
    """
    Asynchronous TCP server for the NetKV service.

    Features:
    - One coroutine per connection, many commands per connection
    - Commands run on a fixed-size worker pool sharing one KVStore
    - Every response is terminated by an empty line
    - I/O errors close only the affected connection

    Usage:
        server = KVServer(host='0.0.0.0', port=7171)
        await server.start()  # Runs forever

    Attributes:
        host: Server bind address (e.g., '0.0.0.0')
        port: Server port number (e.g., 7171)
        engine: The CommandEngine shared by all connections
        store: The KVStore behind the engine
    """

    def __init__(
            self,
            host: str = None,
            port: int = None,
            store: KVStore = None,
            engine: CommandEngine = None,
            workers: int = None,
            connection_timeout: float = None,
    ):
        """
        Initialize the server.

        Args:
            host: Bind address (default from settings)
            port: Port number (default from settings)
            store: KVStore instance (ignored when engine is given)
            engine: CommandEngine instance (creates one around store if not provided)
            workers: Size of the command worker pool (default from settings)
            connection_timeout: Idle seconds before a connection is dropped, 0 = never
        """
        self.host = host if host is not None else settings.HOST
        self.port = port if port is not None else settings.PORT
        self.engine = engine if engine is not None else CommandEngine(store)
        self.store = self.engine.store
        self.parser = self.engine.parser
        self.workers = workers if workers is not None else settings.WORKERS
        self.connection_timeout = (
            connection_timeout if connection_timeout is not None else settings.CONNECTION_TIMEOUT
        )

        # Server state
        self._server: Optional[asyncio.Server] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._running = False
        self._connection_count = 0
        self._active_connections = 0
        self._total_requests = 0
        self._writers = set()

    async def _readline(self, reader: StreamReader) -> bytes:
        if self.connection_timeout:
            return await asyncio.wait_for(reader.readline(), self.connection_timeout)
        return await reader.readline()

    async def handle_client(
            self,
            reader: StreamReader,
            writer: StreamWriter
    ) -> None:
        """
        Handle a single client connection.

        Reads command lines until the client disconnects, executing each
        one and writing back its response followed by an empty line.

        Args:
            reader: StreamReader for reading from the client
            writer: StreamWriter for writing to the client
        """
        addr = writer.get_extra_info('peername')
        self._connection_count += 1
        self._active_connections += 1
        self._writers.add(writer)
        logger.debug(f"Client connected: {addr}")

        loop = asyncio.get_running_loop()

        try:
            while True:
                data = await self._readline(reader)
                if not data:
                    logger.debug(f"Client disconnected: {addr}")
                    break

                try:
                    line = data.decode('utf-8').rstrip('\r\n')
                except UnicodeDecodeError:
                    response = Response.error("Error: invalid encoding")
                else:
                    self._total_requests += 1
                    response = await loop.run_in_executor(
                        self._executor, self.engine.execute, line
                    )

                writer.write(self.parser.format_response(response).encode('utf-8'))
                await writer.drain()

        except asyncio.TimeoutError:
            logger.debug(f"Closing idle connection: {addr}")
        except ConnectionResetError:
            logger.debug(f"Connection reset by client: {addr}")
        except Exception as exc:  # Log unexpected errors but keep server alive
            logger.exception(f"Error handling client {addr}: {exc}")
        finally:
            self._active_connections -= 1
            self._writers.discard(writer)
            try:
                writer.close()
                await writer.wait_closed()
            except (ConnectionError, OSError):
                pass

    async def start(self) -> None:
        """
        Start the server and begin accepting connections.

        Runs until cancelled or until ``stop`` is called.

        Example:
            server = KVServer(port=7171)
            asyncio.run(server.start())
        """
        if self._running:
            return

        self._executor = ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="netkv-worker"
        )
        self._server = await asyncio.start_server(
            self.handle_client,
            self.host,
            self.port,
            limit=settings.READ_BUFFER_SIZE,
        )
        self._running = True

        addrs = ', '.join(str(sock.getsockname()) for sock in self._server.sockets or [])
        logger.info(f"Serving on {addrs}")

        try:
            async with self._server:
                await self._server.serve_forever()
        except asyncio.CancelledError:
            # Expected during shutdown/fixture cleanup
            logger.debug("Server start cancelled")
        finally:
            self._running = False

    async def stop(self) -> None:
        """
        Stop the server gracefully.

        Closes the listening socket and shuts down the worker pool.
        """
        if self._server is not None:
            self._server.close()
            # wait_closed also waits for open connections
            for writer in list(self._writers):
                writer.close()
            try:
                await self._server.wait_closed()
            finally:
                self._server = None
                self._running = False

        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def is_running(self) -> bool:
        """Check if the server is currently running."""
        return self._running

    def get_stats(self) -> dict:
        """
        Get server statistics.

        Returns:
            Dictionary with server stats including connection counts,
            request counts, and store statistics.
        """
        return {
            "running": self._running,
            "host": self.host,
            "port": self.port,
            "workers": self.workers,
            "total_connections": self._connection_count,
            "active_connections": self._active_connections,
            "total_requests": self._total_requests,
            "store_stats": self.store.get_stats(),
        }
