"""
Command Engine

Routes parsed commands to the KVStore and turns the results into
protocol responses. One call to ``execute`` handles exactly one line.

Every error that a single command can cause is converted into a
response here, so a bad command never closes the connection.
"""

import logging

from .cache.store import InvalidRangeError, KeyNotFoundError, KVStore
from .persistence.journal import JournalError
from .protocol.commands import Command, CommandType, Response
from .protocol.help import help_text
from .protocol.parser import ProtocolParser

logger = logging.getLogger(__name__)


class CommandEngine:
    """
    Executes protocol commands against a shared store.

    The engine holds no per-connection state and may be called from many
    worker threads at once; all synchronization lives in the store and
    journal.

    Attributes:
        store: The KVStore shared by all connections
        parser: The ProtocolParser used to decode lines
    """

    def __init__(self, store: KVStore = None, parser: ProtocolParser = None):
        self.store = store if store is not None else KVStore()
        self.parser = parser if parser is not None else ProtocolParser()

    def execute(self, line: str) -> Response:
        """Parse and execute one raw command line."""
        return self.execute_command(self.parser.parse_request(line))

    def execute_command(self, command: Command) -> Response:
        """
        Execute a parsed command.

        Args:
            command: The Command object to execute

        Returns:
            Response object with the result
        """
        try:
            return self._dispatch(command)
        except JournalError as e:
            logger.error(f"Command {command.raw!r} not applied, journal append failed: {e}")
            return Response.error("Error: failed to persist command")
        except Exception as e:
            logger.exception(f"Error executing {command.raw!r}: {e}")
            return Response.error(f"Error: {e}")

    def _dispatch(self, command: Command) -> Response:
        store = self.store
        ctype = command.type

        if not command.is_valid:
            if ctype == CommandType.UNKNOWN:
                return Response.unknown_command()
            # USAGE and MALFORMED carry their own error text
            return Response.error(command.message)

        if ctype == CommandType.PING:
            return Response.ok("pong")

        if ctype == CommandType.HELP:
            return Response.ok(help_text(command.topic))

        # String namespace
        if ctype == CommandType.SET:
            store.set_string(command.key, command.value)
            return Response.ok()

        if ctype == CommandType.GET:
            return Response.value_response(store.get_string(command.key))

        if ctype == CommandType.DEL:
            removed = store.delete_string(command.key)
            return Response.ok() if removed else Response.key_not_found()

        # List namespace
        if ctype == CommandType.LPUSH:
            store.lpush(command.key, command.value)
            return Response.ok()

        if ctype == CommandType.RPUSH:
            store.rpush(command.key, command.value)
            return Response.ok()

        if ctype == CommandType.RANGE:
            try:
                values = store.range(command.key, command.start, command.end)
            except KeyNotFoundError:
                return Response.key_not_found()
            except InvalidRangeError:
                return Response.invalid_range()
            return Response.ok(" ".join(values))

        if ctype == CommandType.LEN:
            return Response.ok(str(store.length(command.key)))

        if ctype == CommandType.LPOP:
            return Response.value_response(store.lpop(command.key))

        if ctype == CommandType.RPOP:
            return Response.value_response(store.rpop(command.key))

        if ctype == CommandType.LDEL:
            removed = store.ldelete(command.key)
            return Response.ok() if removed else Response.key_not_found()

        # Hash namespace
        if ctype == CommandType.HSET:
            store.hset(command.key, command.field, command.value)
            return Response.ok()

        if ctype == CommandType.HGET:
            return Response.value_response(store.hget(command.key, command.field))

        if ctype == CommandType.HDEL:
            if command.field is None:
                removed = store.hdelete_all(command.key)
                return Response.ok() if removed else Response.key_not_found()
            removed = store.hdel_field(command.key, command.field)
            return Response.ok() if removed else Response.key_or_field_not_found()

        raise ValueError(f"Unhandled command type: {ctype}")
