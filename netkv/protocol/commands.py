"""
Protocol Command and Response Definitions

This module defines the data structures for protocol commands and responses.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class CommandType(Enum):
    """Enumeration of command kinds.

    USAGE, MALFORMED and UNKNOWN are produced by the parser for lines that
    cannot be executed; they carry the text to send back in ``message``.
    """
    SET = auto()
    GET = auto()
    DEL = auto()
    LPUSH = auto()
    RPUSH = auto()
    RANGE = auto()
    LEN = auto()
    LPOP = auto()
    RPOP = auto()
    LDEL = auto()
    PING = auto()
    HELP = auto()
    HSET = auto()
    HGET = auto()
    HDEL = auto()
    USAGE = auto()
    MALFORMED = auto()
    UNKNOWN = auto()


# Wire names of the executable commands (case-sensitive)
COMMAND_NAMES = {
    "set": CommandType.SET,
    "get": CommandType.GET,
    "del": CommandType.DEL,
    "lpush": CommandType.LPUSH,
    "rpush": CommandType.RPUSH,
    "range": CommandType.RANGE,
    "len": CommandType.LEN,
    "lpop": CommandType.LPOP,
    "rpop": CommandType.RPOP,
    "ldel": CommandType.LDEL,
    "ping": CommandType.PING,
    "help": CommandType.HELP,
    "hset": CommandType.HSET,
    "hget": CommandType.HGET,
    "hdel": CommandType.HDEL,
}


class ResponseStatus(Enum):
    """Enumeration of response statuses."""
    OK = "OK"
    ERROR = "ERROR"


@dataclass
class Command:
    """
    Represents a parsed protocol command.

    Attributes:
        type: The kind of command
        key: The key for the operation (empty for ping/help)
        field: Hash field (hset, hget, hdel with two arguments)
        value: Value for set/lpush/rpush/hset
        start: First index for range
        end: Last index for range
        topic: Command name asked about by ``help <command>``
        message: Response text for USAGE and MALFORMED commands
        raw: The original raw command string
    """
    type: CommandType
    key: str = ""
    field: Optional[str] = None
    value: str = ""
    start: int = 0
    end: int = 0
    topic: Optional[str] = None
    message: str = ""
    raw: str = ""

    @property
    def is_valid(self) -> bool:
        """Check if the command can be executed against the store."""
        return self.type not in (CommandType.USAGE, CommandType.MALFORMED, CommandType.UNKNOWN)


@dataclass
class Response:
    """
    Represents a protocol response.

    Attributes:
        status: OK or ERROR
        message: Response text, possibly spanning several lines
    """
    status: ResponseStatus
    message: str = ""

    @classmethod
    def ok(cls, message: str = "OK") -> "Response":
        """Create a successful response."""
        return cls(status=ResponseStatus.OK, message=message)

    @classmethod
    def error(cls, message: str) -> "Response":
        """Create an error response."""
        return cls(status=ResponseStatus.ERROR, message=message)

    @classmethod
    def value_response(cls, value: Optional[str]) -> "Response":
        """Create a response for a read; absent values are sent as ``null``."""
        return cls.ok(message=value if value is not None else "null")

    @classmethod
    def key_not_found(cls) -> "Response":
        """Create a 'Key not found' response."""
        return cls.error("Key not found")

    @classmethod
    def key_or_field_not_found(cls) -> "Response":
        """Create a 'Key or field not found' response for hdel with a field."""
        return cls.error("Key or field not found")

    @classmethod
    def invalid_range(cls) -> "Response":
        """Create an 'Invalid range' response."""
        return cls.error("Invalid range")

    @classmethod
    def unknown_command(cls) -> "Response":
        """Create an 'Unknown command' response."""
        return cls.error("Unknown command")
