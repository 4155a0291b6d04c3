"""
NetKV Persistence Module

Append-only journal of mutations and its replay on startup.
"""

from .journal import Journal, JournalError, ReplayStats, open_journal, replay

__all__ = ["Journal", "JournalError", "ReplayStats", "open_journal", "replay"]
