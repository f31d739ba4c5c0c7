"""
Search statistics log.

Keeps a per-term search count for the admin dashboard. This is separate
from the term library: it is never pruned and can be wiped on demand.
"""
import logging
import sqlite3
from pathlib import Path
from dataclasses import dataclass
from datetime import datetime

logger = logging.getLogger(__name__)


@dataclass
class SearchStat:
    """Search count for one term."""
    term: str
    count: int
    last_searched: datetime

    def to_dict(self) -> dict:
        return {
            "term": self.term,
            "count": self.count,
            "last_searched": self.last_searched.isoformat()
        }


class SearchStatsLog:
    """SQLite-based search counter."""

    def __init__(self, db_path: str | Path = "data/search_stats.db", busy_timeout: float = 5.0):
        """
        Initialize the statistics log.

        Args:
            db_path: Path to SQLite database file
            busy_timeout: Seconds to wait on a locked database
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.busy_timeout = busy_timeout

        self._init_db()
        logger.info(f"SearchStatsLog initialized at {self.db_path}")

    def _init_db(self):
        """Create tables if they don't exist."""
        with sqlite3.connect(self.db_path, timeout=self.busy_timeout) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS search_stats (
                    term TEXT PRIMARY KEY,
                    count INTEGER NOT NULL,
                    last_searched TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_stats_count ON search_stats(count)"
            )
            conn.commit()

    def record(self, term: str, now: datetime | None = None):
        """Count one search for ``term`` (trimmed, case-folded)."""
        normalized = (term or "").strip().casefold()
        if not normalized:
            raise ValueError("Search term must not be empty")

        timestamp = (now or datetime.now()).isoformat()
        with sqlite3.connect(self.db_path, timeout=self.busy_timeout) as conn:
            conn.execute("""
                INSERT INTO search_stats (term, count, last_searched)
                VALUES (?, 1, ?)
                ON CONFLICT(term) DO UPDATE SET
                    count = count + 1,
                    last_searched = excluded.last_searched
            """, (normalized, timestamp))
            conn.commit()

    def get_stats(self, limit: int | None = None) -> list[SearchStat]:
        """Get search counts, most searched first."""
        sql = "SELECT term, count, last_searched FROM search_stats ORDER BY count DESC, term"
        params: tuple = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (limit,)

        with sqlite3.connect(self.db_path, timeout=self.busy_timeout) as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.execute(sql, params)
            return [
                SearchStat(
                    term=row["term"],
                    count=row["count"],
                    last_searched=datetime.fromisoformat(row["last_searched"])
                )
                for row in cursor
            ]

    def count(self) -> int:
        """Number of distinct terms counted."""
        with sqlite3.connect(self.db_path, timeout=self.busy_timeout) as conn:
            return conn.execute("SELECT COUNT(*) FROM search_stats").fetchone()[0]

    def reset(self):
        """Delete every count. Safe to call repeatedly."""
        with sqlite3.connect(self.db_path, timeout=self.busy_timeout) as conn:
            conn.execute("DELETE FROM search_stats")
            conn.commit()
        logger.warning("Search statistics reset")
