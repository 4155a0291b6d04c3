"""Network module for NetKV."""

from .tcp_server import KVServer

__all__ = ["KVServer"]
