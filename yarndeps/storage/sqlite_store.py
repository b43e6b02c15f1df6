"""Per-thread SQLite connections for the on-disk stores."""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List

logger = logging.getLogger("yarndeps.storage.sqlite_store")


class SQLiteStore:
    """SQLite database file used from several threads.

    Every thread opens its own connection on first use. Writes go through
    ``transaction()``, which takes the database write lock up front.

    Attributes:
        path: Location of the database file.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._local = threading.local()
        self._opened: List[sqlite3.Connection] = []
        self._opened_lock = threading.Lock()
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        # Connections stay with the thread that opened them; close_all() is
        # the only cross-thread use.
        conn = sqlite3.connect(
            str(self.path), timeout=30.0, isolation_level=None, check_same_thread=False
        )
        conn.row_factory = sqlite3.Row
        try:
            mode = conn.execute("PRAGMA journal_mode=WAL").fetchone()[0]
        except sqlite3.OperationalError as e:
            logger.debug("Cannot enable WAL mode for %s: %s", self.path, e)
        else:
            if str(mode).lower() != "wal":
                logger.debug("WAL mode not available for %s, using %s", self.path, mode)
        conn.execute("PRAGMA synchronous=NORMAL")
        return conn

    def _get_conn(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = self._connect()
            self._local.conn = conn
            with self._opened_lock:
                self._opened.append(conn)
        return conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block inside an IMMEDIATE transaction.

        Yields:
            sqlite3.Connection: The calling thread's connection.
        """
        conn = self._get_conn()
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")

    def _init_db(self) -> None:
        """Create the schema. Subclasses override this."""

    def close_all(self) -> None:
        """Close the connections of all threads."""
        with self._opened_lock:
            opened, self._opened = self._opened, []
        for conn in opened:
            conn.close()
        self._local = threading.local()
