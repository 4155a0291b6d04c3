"""
Append-Only Journal

Records every state-changing mutation as one text line and replays the
file on startup to rebuild the store.

Line format:
    <verb> <key> [<field>] [<value>]

Journaled verbs:
    set, del, lpush, rpush, lpop, rpop, ldel, hset, hdel
"""

import logging
import os
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from ..cache.store import KVStore

logger = logging.getLogger(__name__)


class JournalError(Exception):
    """Raised when the journal cannot be opened, written or read."""


class Journal:
    """
    Handles appends to the journal file.

    Appends from all connections are serialized by a single lock, so the
    file is a total order of mutations. Each record is written straight to
    the file descriptor (and, with the ``always`` sync policy, fsync-ed)
    before ``append`` returns; nothing is left in a userspace buffer.

    A failed append truncates the file back to its length before the
    write, so a rejected mutation never reaches disk. If that truncation
    fails as well the journal refuses every later append.

    Usage:
        with Journal("data/netkv.aof") as journal:
            journal.append("set", "key", "value")
    """

    def __init__(self, filename: str, sync_policy: str = "always"):
        """
        Initialize the journal writer.

        Args:
            filename: Path to the journal file
            sync_policy: 'always' (write + fsync) or 'flush' (write only)
        """
        self.filename = filename
        self.sync_policy = sync_policy
        self.fd: Optional[int] = None
        self.failed = False
        self.appended = 0
        self._lock = threading.Lock()

    def open(self) -> None:
        """Open the journal file for appending."""
        try:
            directory = os.path.dirname(self.filename)
            if directory:
                os.makedirs(directory, exist_ok=True)
            self.fd = os.open(self.filename, os.O_WRONLY | os.O_APPEND | os.O_CREAT, 0o644)
        except OSError as e:
            raise JournalError(f"Failed to open journal {self.filename}: {e}") from e

    def close(self) -> None:
        """Close the journal file."""
        with self._lock:
            if self.fd is not None:
                os.close(self.fd)
                self.fd = None

    def _write(self, data: bytes) -> None:
        view = memoryview(data)
        while view:
            written = os.write(self.fd, view)
            view = view[written:]
        if self.sync_policy == "always":
            os.fsync(self.fd)

    def _rollback(self, offset: int) -> None:
        try:
            os.ftruncate(self.fd, offset)
        except OSError as e:
            self.failed = True
            logger.critical(f"Cannot truncate journal {self.filename} after failed append: {e}")

    def append(self, verb: str, *args: str) -> None:
        """
        Append one mutation record.

        Args:
            verb: Command name (e.g. 'set', 'lpush')
            *args: Command arguments

        Raises:
            JournalError: If the journal is closed or failed, or the write fails
        """
        data = (" ".join((verb,) + args) + "\n").encode("utf-8")

        with self._lock:
            if self.fd is None:
                raise JournalError("Journal is not open")
            if self.failed:
                raise JournalError("Journal is in a failed state")
            try:
                offset = os.lseek(self.fd, 0, os.SEEK_END)
            except OSError as e:
                raise JournalError(f"Failed to append to journal: {e}") from e
            try:
                self._write(data)
            except OSError as e:
                logger.error(f"Error writing to journal {self.filename}: {e}")
                self._rollback(offset)
                raise JournalError(f"Failed to append to journal: {e}") from e
            self.appended += 1

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


@dataclass
class ReplayStats:
    """Outcome of a journal replay."""
    total: int = 0
    applied: int = 0
    skipped: int = 0


def _hdel(store: KVStore, key: str, field: Optional[str] = None) -> bool:
    if field is None:
        return store.hdelete_all(key)
    return store.hdel_field(key, field)


# verb -> (allowed argument counts, store operation)
_REPLAY_OPS: Dict[str, Tuple[Tuple[int, ...], Callable]] = {
    "set": ((2,), KVStore.set_string),
    "del": ((1,), KVStore.delete_string),
    "lpush": ((2,), KVStore.lpush),
    "rpush": ((2,), KVStore.rpush),
    "lpop": ((1,), KVStore.lpop),
    "rpop": ((1,), KVStore.rpop),
    "ldel": ((1,), KVStore.ldelete),
    "hset": ((3,), KVStore.hset),
    "hdel": ((1, 2), _hdel),
}


def _apply(store: KVStore, verb: str, args: list) -> bool:
    if verb not in _REPLAY_OPS:
        return False
    arities, operation = _REPLAY_OPS[verb]
    if len(args) not in arities:
        return False
    operation(store, *args)
    return True


def replay(filename: str, store: KVStore) -> ReplayStats:
    """
    Rebuild ``store`` by re-executing the journal in file order.

    The store must not have a journal attached while replaying, otherwise
    every record would be written back to the file.

    Blank lines are ignored. Lines with an unknown verb or a wrong number
    of arguments are skipped and logged with their line number; replay
    continues with the next line.

    Args:
        filename: Path to the journal file
        store: Store to populate

    Returns:
        ReplayStats with total, applied and skipped line counts

    Raises:
        JournalError: If an existing journal cannot be read
    """
    stats = ReplayStats()

    if not os.path.exists(filename):
        logger.info(f"No journal found at {filename}, starting with empty store")
        return stats

    try:
        # Only "\n" ends a record; a "\r" inside a value is data
        with open(filename, "r", encoding="utf-8", newline="\n") as f:
            for lineno, raw in enumerate(f, start=1):
                line = raw.rstrip("\n")
                if not line:
                    continue
                stats.total += 1

                parts = line.split(" ")
                if _apply(store, parts[0], parts[1:]):
                    stats.applied += 1
                else:
                    stats.skipped += 1
                    logger.warning(f"Skipping malformed journal line {lineno}: {line!r}")
    except (OSError, UnicodeDecodeError) as e:
        raise JournalError(f"Failed to read journal {filename}: {e}") from e

    logger.info(
        f"Replayed journal {filename}: total={stats.total} "
        f"applied={stats.applied} skipped={stats.skipped}"
    )
    return stats


def open_journal(filename: str, store: KVStore, sync_policy: str = "always") -> Journal:
    """
    Replay ``filename`` into ``store``, then attach a journal appending to it.

    Returns:
        The opened Journal (caller closes it on shutdown)
    """
    replay(filename, store)
    journal = Journal(filename, sync_policy=sync_policy)
    journal.open()
    store.attach_journal(journal)
    return journal
