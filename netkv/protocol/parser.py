"""
Protocol Parser Module

This module handles parsing of raw protocol lines into commands and
formatting of responses for the wire.
"""

import re
from typing import List

from .commands import COMMAND_NAMES, Command, CommandType, Response
from .help import USAGE

_INTEGER = re.compile(r"^[+-]?[0-9]+$")

# Allowed argument counts of commands with a fixed shape
ARITY = {
    CommandType.SET: (2,),
    CommandType.GET: (1,),
    CommandType.DEL: (1,),
    CommandType.LPUSH: (2,),
    CommandType.RPUSH: (2,),
    CommandType.RANGE: (3,),
    CommandType.LEN: (1,),
    CommandType.LPOP: (1,),
    CommandType.RPOP: (1,),
    CommandType.LDEL: (1,),
    CommandType.HSET: (3,),
    CommandType.HGET: (2,),
    CommandType.HDEL: (1, 2),
}

MALFORMED_RANGE = "Error: start and end must be integers"


class ProtocolParser:
    """
    Parser for the NetKV text protocol.

    Protocol Format:
        Request:  <command> [arg ...]\\n      (single-space separated)
        Response: <line>\\n[<line>\\n ...]\\n  (terminated by an empty line)

    Command names are case-sensitive and lowercase. Arguments cannot
    contain spaces; there is no quoting or escaping.
    """

    def tokenize(self, data: str) -> List[str]:
        """
        Split a raw line into tokens on single spaces.

        Trailing empty tokens (from trailing spaces) are dropped, so
        ``"get a "`` is the same as ``"get a"``.
        """
        parts = data.rstrip("\r\n").split(" ")
        while len(parts) > 1 and parts[-1] == "":
            parts.pop()
        return parts

    def parse_request(self, data: str) -> Command:
        """
        Parse a raw request string into a Command object.

        Args:
            data: Raw request string (may include trailing newline)

        Returns:
            Command object. Lines that cannot be executed produce a command
            of type USAGE (wrong argument count), MALFORMED (bad argument)
            or UNKNOWN (unrecognized name).

        Examples:
            >>> parser = ProtocolParser()
            >>> cmd = parser.parse_request("hset user name alice")
            >>> cmd.type == CommandType.HSET
            True
            >>> (cmd.key, cmd.field, cmd.value)
            ('user', 'name', 'alice')
            >>> parser.parse_request("get").message
            'Usage: get [key]'
        """
        raw = data.rstrip("\r\n")
        parts = self.tokenize(raw)
        name, args = parts[0], parts[1:]

        command_type = COMMAND_NAMES.get(name)
        if command_type is None:
            return Command(type=CommandType.UNKNOWN, raw=raw)

        if command_type == CommandType.PING:
            return Command(type=CommandType.PING, raw=raw)

        if command_type == CommandType.HELP:
            topic = args[0] if args else None
            return Command(type=CommandType.HELP, topic=topic, raw=raw)

        if len(args) not in ARITY[command_type] or "" in args:
            return Command(type=CommandType.USAGE, message=USAGE[name], raw=raw)

        if command_type == CommandType.RANGE:
            return self._parse_range(args, raw)

        if command_type in (CommandType.SET, CommandType.LPUSH, CommandType.RPUSH):
            return Command(type=command_type, key=args[0], value=args[1], raw=raw)

        if command_type == CommandType.HSET:
            return Command(type=command_type, key=args[0], field=args[1], value=args[2], raw=raw)

        if command_type in (CommandType.HGET, CommandType.HDEL):
            field = args[1] if len(args) > 1 else None
            return Command(type=command_type, key=args[0], field=field, raw=raw)

        # get, del, len, lpop, rpop, ldel
        return Command(type=command_type, key=args[0], raw=raw)

    def _parse_range(self, args: List[str], raw: str) -> Command:
        """
        Parse a range command.

        Format: range <key> <start> <end>
        """
        key, start, end = args
        if not (_INTEGER.match(start) and _INTEGER.match(end)):
            return Command(type=CommandType.MALFORMED, message=MALFORMED_RANGE, raw=raw)

        return Command(
            type=CommandType.RANGE,
            key=key,
            start=int(start),
            end=int(end),
            raw=raw,
        )

    def format_response(self, response: Response) -> str:
        """
        Format a Response object into a protocol string.

        Args:
            response: Response object to format

        Returns:
            The response text followed by a newline and the empty
            line that marks the end of the response.

        Examples:
            >>> parser = ProtocolParser()
            >>> parser.format_response(Response.ok())
            'OK\\n\\n'
            >>> parser.format_response(Response.value_response(None))
            'null\\n\\n'
        """
        return f"{response.message}\n\n"
