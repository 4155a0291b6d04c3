"""
NetKV: Networked In-Memory Key-Value Store

An in-memory store for strings, lists and hashes, served over a
line-based TCP protocol with Python asyncio and made durable by an
append-only journal that is replayed on startup.
"""

__version__ = "1.0.0"
