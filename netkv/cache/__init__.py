"""Cache module for NetKV."""

from .store import InvalidRangeError, KeyNotFoundError, KVStore, StoreError

__all__ = ["KVStore", "StoreError", "KeyNotFoundError", "InvalidRangeError"]
