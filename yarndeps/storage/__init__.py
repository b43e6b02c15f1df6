"""Persistent storage backends."""

from .disk_cache import DiskCache
from .sqlite_store import SQLiteStore

__all__ = ["DiskCache", "SQLiteStore"]
