#!/usr/bin/env python3
"""
Interactive Client for NetKV

A command-line shell that sends each typed line to the server and
prints the response.

Usage:
    netkv-cli                    # Connect to localhost:7171
    netkv-cli --host 1.2.3.4     # Connect to specific host
    netkv-cli --port 8080        # Connect to specific port

Type ``help`` for the server's command list, ``exit`` to leave.
"""

import argparse
import socket
import sys
from typing import List, Optional

# Enable command history with arrow keys (works on Unix systems)
try:
    import readline  # noqa: F401
except ImportError:
    pass  # readline not available on Windows by default


class ClientError(Exception):
    """Raised when the server cannot be reached or closes the connection."""


class KVClient:
    """Simple blocking TCP client for NetKV."""

    def __init__(self, host: str, port: int, timeout: float = 5.0):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.socket = None
        self._file = None

    def connect(self) -> None:
        """
        Connect to the server.

        Raises:
            ClientError: If the connection cannot be established
        """
        try:
            self.socket = socket.create_connection((self.host, self.port), timeout=self.timeout)
        except OSError as e:
            raise ClientError(f"Error connecting to server: {e}") from e
        self._file = self.socket.makefile("r", encoding="utf-8", newline="\n")

    def disconnect(self) -> None:
        """Disconnect from the server."""
        if self._file:
            self._file.close()
            self._file = None
        if self.socket:
            try:
                self.socket.close()
            except OSError:
                pass
            self.socket = None

    def send_command(self, command: str) -> List[str]:
        """
        Send one command and return its response lines.

        The response ends at the first empty line, which is not included.

        Raises:
            ClientError: If not connected, on timeout, or if the server
                closes the connection mid-response
        """
        if not self.socket:
            raise ClientError("Not connected")

        try:
            self.socket.sendall((command.rstrip("\r\n") + "\n").encode("utf-8"))

            lines = []
            while True:
                line = self._file.readline()
                if not line:
                    raise ClientError("Connection closed by server")
                line = line.rstrip("\r\n")
                if not line:
                    return lines
                lines.append(line)
        except socket.timeout as e:
            raise ClientError("Request timed out") from e
        except OSError as e:
            raise ClientError(str(e)) from e

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        description="Interactive client for NetKV"
    )
    parser.add_argument(
        "--host",
        type=str,
        default="localhost",
        help="Server host (default: localhost)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=7171,
        help="Server port (default: 7171)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=5.0,
        help="Socket timeout in seconds (default: 5.0)"
    )

    args = parser.parse_args(argv)

    client = KVClient(args.host, args.port, args.timeout)
    try:
        client.connect()
    except ClientError as e:
        print(e, file=sys.stderr)
        sys.exit(1)

    prompt = f"{args.host}:{args.port}> "

    try:
        while True:
            try:
                command = input(prompt)
            except EOFError:
                print()
                break

            if command.strip() in ("exit", "quit"):
                break

            try:
                for line in client.send_command(command):
                    print(line)
            except ClientError as e:
                print(f"Error: {e}", file=sys.stderr)
                break

    except KeyboardInterrupt:
        print()
    finally:
        client.disconnect()


if __name__ == "__main__":
    main()
