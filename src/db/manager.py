"""
Database manager – thin wrapper around sqlite3 providing connection management,
table initialisation, and the like-counter queries.
"""

import sqlite3
import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from .schema import ALL_TABLES, INDEXES

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Thread-safe SQLite connection manager."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._local = threading.local()
        self._init_db()

    # ------------------------------------------------------------------ #
    # Connection helpers                                                   #
    # ------------------------------------------------------------------ #

    def _get_conn(self) -> sqlite3.Connection:
        """Return a per-thread connection, creating one if needed."""
        if not hasattr(self._local, "conn") or self._local.conn is None:
            conn = sqlite3.connect(self.db_path, timeout=10, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL;")
            self._local.conn = conn
        return self._local.conn

    @property
    def conn(self) -> sqlite3.Connection:
        return self._get_conn()

    def close(self):
        if hasattr(self._local, "conn") and self._local.conn:
            self._local.conn.close()
            self._local.conn = None

    # ------------------------------------------------------------------ #
    # Schema initialisation                                                #
    # ------------------------------------------------------------------ #

    def _init_db(self):
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        with self.conn:
            for sql in ALL_TABLES:
                self.conn.execute(sql)
            for idx in INDEXES:
                self.conn.execute(idx)
        logger.info("Database initialised at %s", self.db_path)

    # ------------------------------------------------------------------ #
    # Generic query helpers                                                #
    # ------------------------------------------------------------------ #

    def fetchone(self, sql: str, params: Tuple = ()) -> Optional[sqlite3.Row]:
        return self.conn.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: Tuple = ()) -> List[sqlite3.Row]:
        return self.conn.execute(sql, params).fetchall()

    # ------------------------------------------------------------------ #
    # Likes                                                                #
    # ------------------------------------------------------------------ #

    def get_likes(self, like_ids: Iterable[str]) -> Dict[str, int]:
        """Return {like_id: count} for the ids that have any likes."""
        like_ids = list(dict.fromkeys(like_ids))
        if not like_ids:
            return {}
        placeholders = ",".join(["?"] * len(like_ids))
        rows = self.fetchall(
            f"SELECT like_id, count FROM likes WHERE like_id IN ({placeholders})",
            tuple(like_ids),
        )
        return {r["like_id"]: r["count"] for r in rows}

    def increment_like(self, like_id: str) -> int:
        """Add one like and return the new count, read in the same transaction."""
        with self.conn:
            self.conn.execute(
                """INSERT INTO likes (like_id, count) VALUES (?, 1)
                   ON CONFLICT(like_id) DO UPDATE SET
                       count = count + 1,
                       updated_at = datetime('now')""",
                (like_id,)
            )
            return self.fetchone("SELECT count FROM likes WHERE like_id=?", (like_id,))["count"]

    def delete_likes(self, like_ids: Iterable[str]) -> int:
        like_ids = list(like_ids)
        if not like_ids:
            return 0
        placeholders = ",".join(["?"] * len(like_ids))
        with self.conn:
            cur = self.conn.execute(
                f"DELETE FROM likes WHERE like_id IN ({placeholders})", tuple(like_ids))
            return cur.rowcount
