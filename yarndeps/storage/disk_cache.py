"""Size- and age-bounded text cache persisted on disk.

Entries are keyed text blobs with a write timestamp. Expiry is lazy: an
entry older than the configured maximum age reads as absent but is only
removed once capacity pressure evicts it. Eviction drops the oldest
written entries first.
"""

import logging
import time
from pathlib import Path
from typing import Callable, Optional, Union

from .sqlite_store import SQLiteStore

logger = logging.getLogger("yarndeps.storage.disk_cache")

DB_FILE_NAME = "cache.sqlite3"


class DiskCache(SQLiteStore):
    """Bounded on-disk cache for remote package metadata.

    Concurrent writers to the same key race and the last write wins. This
    is harmless as long as the value for a key is content-stable, which
    holds for package metadata.

    Attributes:
        max_size_bytes: Upper bound of the summed UTF-8 size of all values.
        max_age_seconds: Age after which an entry reads as absent.
    """

    def __init__(
        self,
        directory: Union[str, Path],
        max_size_bytes: int,
        max_age_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the cache.

        Args:
            directory: Directory holding the cache database.
            max_size_bytes: Capacity of the cache in bytes.
            max_age_seconds: Maximum entry age in seconds.
            clock: Source of the current time, in seconds.
        """
        if max_size_bytes <= 0:
            raise ValueError("max_size_bytes must be positive")
        if max_age_seconds <= 0:
            raise ValueError("max_age_seconds must be positive")

        self.max_size_bytes = max_size_bytes
        self.max_age_seconds = max_age_seconds
        self._clock = clock
        super().__init__(Path(directory) / DB_FILE_NAME)

    def _init_db(self) -> None:
        conn = self._get_conn()
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS entries (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                size INTEGER NOT NULL,
                written_at REAL NOT NULL,
                seq INTEGER NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_entries_seq ON entries(seq);
        """
        )
        logger.debug("Disk cache schema initialized at %s", self.path)

    def read(self, key: str) -> Optional[str]:
        """Return the cached value for a key.

        Args:
            key: Cache key.

        Returns:
            Optional[str]: The value, or None if absent or expired.
        """
        row = (
            self._get_conn()
            .execute("SELECT value, written_at FROM entries WHERE key = ?", (key,))
            .fetchone()
        )
        if row is None:
            return None

        age = self._clock() - row["written_at"]
        if age > self.max_age_seconds:
            logger.debug("Cache entry for %s expired (age %.0fs)", key, age)
            return None

        return row["value"]

    def write(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one for the key.

        Oldest-written entries are evicted until the new value fits. A
        value larger than the whole capacity is not stored.

        Args:
            key: Cache key.
            value: Text to store.
        """
        size = len(value.encode("utf-8"))

        with self.transaction() as conn:
            conn.execute("DELETE FROM entries WHERE key = ?", (key,))

            if size > self.max_size_bytes:
                logger.debug(
                    "Not caching %s: %d bytes exceed the capacity of %d bytes",
                    key,
                    size,
                    self.max_size_bytes,
                )
                return

            total = conn.execute("SELECT COALESCE(SUM(size), 0) FROM entries").fetchone()[0]
            if total + size > self.max_size_bytes:
                evicted = []
                for row in conn.execute(
                    "SELECT key, size FROM entries ORDER BY seq"
                ).fetchall():
                    if total + size <= self.max_size_bytes:
                        break
                    evicted.append((row["key"],))
                    total -= row["size"]

                conn.executemany("DELETE FROM entries WHERE key = ?", evicted)
                logger.debug("Evicted %d cache entries to store %s", len(evicted), key)

            seq = conn.execute("SELECT COALESCE(MAX(seq), 0) + 1 FROM entries").fetchone()[0]
            conn.execute(
                "INSERT INTO entries (key, value, size, written_at, seq) VALUES (?, ?, ?, ?, ?)",
                (key, value, size, self._clock(), seq),
            )

    def total_size(self) -> int:
        """Return the summed size in bytes of all stored values."""
        return self._get_conn().execute(
            "SELECT COALESCE(SUM(size), 0) FROM entries"
        ).fetchone()[0]

    def clear(self) -> None:
        """Remove all entries."""
        with self.transaction() as conn:
            conn.execute("DELETE FROM entries")

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.read(key) is not None

    def __len__(self) -> int:
        return self._get_conn().execute("SELECT COUNT(*) FROM entries").fetchone()[0]


__all__ = ["DiskCache"]
