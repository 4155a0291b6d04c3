"""
Key-Value Store Module

This module implements the core in-memory storage of NetKV: three
independent namespaces (string, list, hash) shared by every client
connection.

Locking discipline:
    - Each namespace has one RLock guarding its top-level dict, so
      create-or-fetch on first use is atomic.
    - Each list entry carries its own Lock guarding its deque, so push
      and pop on one list never wait on another list.
    - Lock order is always namespace lock -> list entry lock -> journal
      lock.
    - get_string and hget are single dict lookups and take no lock, so
      they never wait for a writer's journal fsync. A writer applies its
      change only after the journal append, so readers see either the old
      or the new value.

Journaling:
    When a journal is attached, every mutation that changes state is
    appended to it *inside* the key's critical section and *before* the
    change is applied. If the append raises, the store is left untouched.
"""

import threading
from collections import deque
from typing import Any, Deque, Dict, List, Optional


class StoreError(Exception):
    """Base class for store errors."""


class KeyNotFoundError(StoreError):
    """Raised when an operation requires a key that is absent."""


class InvalidRangeError(StoreError):
    """Raised when list range bounds fall outside the current list."""


class _ListEntry:
    """A list value together with the lock guarding it."""

    __slots__ = ("items", "lock", "deleted")

    def __init__(self) -> None:
        self.items: Deque[str] = deque()
        self.lock = threading.Lock()
        # Set by ldelete; a writer holding a stale reference must look up again
        self.deleted = False


class KVStore:
    """
    Thread-safe in-memory store with string, list and hash namespaces.

    Keys in different namespaces are unrelated: ``set x 1`` and
    ``lpush x 1`` create two separate entries.

    Absence is always reported as ``None`` (or ``False`` for deletes);
    the textual ``null`` of the wire protocol never reaches this layer.

    Attributes:
        journal: Optional journal receiving ``append(verb, *args)`` for
            every state-changing mutation
    """

    def __init__(self, journal: Any = None):
        """
        Initialize an empty store.

        Args:
            journal: Object with an ``append(verb, *args)`` method, or None
        """
        self.journal = journal

        self._strings: Dict[str, str] = {}
        self._lists: Dict[str, _ListEntry] = {}
        self._hashes: Dict[str, Dict[str, str]] = {}

        self._string_lock = threading.RLock()
        self._list_lock = threading.RLock()
        self._hash_lock = threading.RLock()

    def attach_journal(self, journal: Any) -> None:
        """Start recording mutations to ``journal``."""
        self.journal = journal

    def _record(self, verb: str, *args: str) -> None:
        if self.journal is not None:
            self.journal.append(verb, *args)

    # ------------------------------------------------------------------
    # String namespace
    # ------------------------------------------------------------------

    def set_string(self, key: str, value: str) -> None:
        """Insert or overwrite a string value."""
        with self._string_lock:
            self._record("set", key, value)
            self._strings[key] = value

    def get_string(self, key: str) -> Optional[str]:
        """Return the string value for ``key``, or None if absent."""
        return self._strings.get(key)

    def delete_string(self, key: str) -> bool:
        """
        Delete a string value.

        Returns:
            True if the key was removed, False if it did not exist
        """
        with self._string_lock:
            if key not in self._strings:
                return False
            self._record("del", key)
            del self._strings[key]
            return True

    # ------------------------------------------------------------------
    # List namespace
    # ------------------------------------------------------------------

    def lpush(self, key: str, value: str) -> None:
        """Insert ``value`` at the head of the list, creating it if absent."""
        self._push("lpush", key, value)

    def rpush(self, key: str, value: str) -> None:
        """Append ``value`` at the tail of the list, creating it if absent."""
        self._push("rpush", key, value)

    def _push(self, verb: str, key: str, value: str) -> None:
        while True:
            with self._list_lock:
                entry = self._lists.get(key)
                if entry is None:
                    self._record(verb, key, value)
                    entry = _ListEntry()
                    entry.items.append(value)
                    self._lists[key] = entry
                    return

            with entry.lock:
                if entry.deleted:
                    # ldel won the race; retry against the current map
                    continue
                self._record(verb, key, value)
                if verb == "lpush":
                    entry.items.appendleft(value)
                else:
                    entry.items.append(value)
                return

    def _get_list(self, key: str) -> Optional[_ListEntry]:
        with self._list_lock:
            return self._lists.get(key)

    def range(self, key: str, start: int, end: int) -> List[str]:
        """
        Return a copy of the list elements from ``start`` to ``end`` inclusive.

        Args:
            key: List key
            start: First index (0-based)
            end: Last index (inclusive)

        Returns:
            List of values

        Raises:
            KeyNotFoundError: If the list has never been created (or was deleted)
            InvalidRangeError: Unless 0 <= start <= end < length
        """
        entry = self._get_list(key)
        if entry is None:
            raise KeyNotFoundError(key)

        with entry.lock:
            size = len(entry.items)
            if start < 0 or end < start or end >= size:
                raise InvalidRangeError(f"{start}..{end} outside list of length {size}")
            return [entry.items[i] for i in range(start, end + 1)]

    def length(self, key: str) -> int:
        """Return the list length, 0 if the key is absent."""
        entry = self._get_list(key)
        if entry is None:
            return 0
        with entry.lock:
            return len(entry.items)

    def lpop(self, key: str) -> Optional[str]:
        """Remove and return the head element, None if absent or empty."""
        return self._pop("lpop", key)

    def rpop(self, key: str) -> Optional[str]:
        """Remove and return the tail element, None if absent or empty."""
        return self._pop("rpop", key)

    def _pop(self, verb: str, key: str) -> Optional[str]:
        entry = self._get_list(key)
        if entry is None:
            return None

        with entry.lock:
            if entry.deleted or not entry.items:
                return None
            self._record(verb, key)
            # The key stays present-but-empty after the last pop
            if verb == "lpop":
                return entry.items.popleft()
            return entry.items.pop()

    def ldelete(self, key: str) -> bool:
        """
        Remove a list entirely, including a present-but-empty one.

        Returns:
            True if the list existed, False otherwise
        """
        with self._list_lock:
            entry = self._lists.get(key)
            if entry is None:
                return False
            with entry.lock:
                self._record("ldel", key)
                entry.deleted = True
                del self._lists[key]
            return True

    # ------------------------------------------------------------------
    # Hash namespace
    # ------------------------------------------------------------------

    def hset(self, key: str, field: str, value: str) -> None:
        """Set ``field`` in the hash at ``key``, creating the hash if absent."""
        with self._hash_lock:
            self._record("hset", key, field, value)
            self._hashes.setdefault(key, {})[field] = value

    def hget(self, key: str, field: str) -> Optional[str]:
        """Return the value of ``field``, None if the hash or field is absent."""
        fields = self._hashes.get(key)
        if fields is None:
            return None
        return fields.get(field)

    def hdel_field(self, key: str, field: str) -> bool:
        """
        Remove one field from a hash.

        The hash itself stays present even when its last field is removed.

        Returns:
            True if the field was removed, False if the hash or field is absent
        """
        with self._hash_lock:
            fields = self._hashes.get(key)
            if fields is None or field not in fields:
                return False
            self._record("hdel", key, field)
            del fields[field]
            return True

    def hdelete_all(self, key: str) -> bool:
        """
        Remove a whole hash.

        Returns:
            True if the hash existed, False otherwise
        """
        with self._hash_lock:
            if key not in self._hashes:
                return False
            self._record("hdel", key)
            del self._hashes[key]
            return True

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """
        Return a deep copy of all three namespaces.

        Returns:
            {"string": {key: value}, "list": {key: [values]},
             "hash": {key: {field: value}}}
        """
        with self._string_lock:
            strings = dict(self._strings)

        with self._list_lock:
            lists = {}
            for key, entry in self._lists.items():
                with entry.lock:
                    lists[key] = list(entry.items)

        with self._hash_lock:
            hashes = {key: dict(fields) for key, fields in self._hashes.items()}

        return {"string": strings, "list": lists, "hash": hashes}

    def clear(self) -> None:
        """Remove every entry from every namespace (not journaled)."""
        with self._string_lock:
            self._strings.clear()
        with self._list_lock:
            for entry in self._lists.values():
                entry.deleted = True
            self._lists.clear()
        with self._hash_lock:
            self._hashes.clear()

    def get_stats(self) -> Dict[str, int]:
        """
        Get statistics about the store.

        Returns:
            Dictionary with the key count of each namespace and the total
        """
        with self._string_lock:
            strings = len(self._strings)
        with self._list_lock:
            lists = len(self._lists)
        with self._hash_lock:
            hashes = len(self._hashes)

        return {
            "string_keys": strings,
            "list_keys": lists,
            "hash_keys": hashes,
            "total_keys": strings + lists + hashes,
        }
