"""
Term Library Store backed by SQLite.

Provides:
- Durable storage of learned terms keyed by normalized text
- Atomic per-key increments (no lost updates under concurrent writers)
- Lazy prefix / variant / full scans over consistent snapshots
- Aggregate library statistics
"""
import logging
import sqlite3
import threading
import json
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)

# Highest code point; used as the exclusive upper bound of a prefix range.
_MAX_CHAR = "\U0010ffff"

_MOST_USED_ORDER = "ORDER BY t.frequency DESC, t.last_used_at DESC, t.key"

_STATS_SQL = (
    "SELECT total_searches, unique_term_count, last_updated_at "
    "FROM library_stats WHERE id = 1"
)


@dataclass
class Term:
    """A learned search phrase or word."""
    key: str
    frequency: float
    last_used_at: datetime
    display_variants: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "frequency": self.frequency,
            "last_used_at": self.last_used_at.isoformat(),
            "display_variants": self.display_variants
        }


@dataclass
class LibraryStats:
    """Aggregate counters over the whole library."""
    total_searches: int = 0
    unique_term_count: int = 0
    last_updated_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "total_searches": self.total_searches,
            "unique_term_count": self.unique_term_count,
            "last_updated_at": self.last_updated_at.isoformat() if self.last_updated_at else None
        }


class TermStore:
    """
    SQLite-based term library.

    Writes are serialized through a process-wide lock plus
    ``BEGIN IMMEDIATE`` (which also serializes writers across processes).
    Reads run in WAL mode and see a consistent snapshot; each Term row is
    read together with its variants in a single statement.
    """

    def __init__(self, db_path: str | Path = "data/search_library.db", busy_timeout: float = 5.0):
        """
        Initialize the term store.

        Args:
            db_path: Path to SQLite database file
            busy_timeout: Seconds to wait on a locked database
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.busy_timeout = busy_timeout

        self._write_lock = threading.RLock()
        self._local = threading.local()

        self._init_db()
        logger.info(f"TermStore initialized at {self.db_path}")

    def _connect(self) -> sqlite3.Connection:
        # Autocommit mode: transactions are opened explicitly below.
        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.create_function("casefold", 1, str.casefold, deterministic=True)
        return conn

    def _init_db(self):
        """Create tables if they don't exist."""
        conn = self._connect()
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("""
                CREATE TABLE IF NOT EXISTS terms (
                    key TEXT PRIMARY KEY,
                    frequency REAL NOT NULL CHECK(frequency > 0),
                    last_used_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS term_variants (
                    key TEXT NOT NULL,
                    variant TEXT NOT NULL,
                    PRIMARY KEY (key, variant)
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS library_stats (
                    id INTEGER PRIMARY KEY CHECK(id = 1),
                    total_searches INTEGER NOT NULL,
                    unique_term_count INTEGER NOT NULL,
                    last_updated_at TEXT
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_term_frequency ON terms(frequency)")
        finally:
            conn.close()

    # --------------------------------------------------------
    # Transactions
    # --------------------------------------------------------

    @contextmanager
    def transaction(self):
        """
        Group several writes into one atomic unit.

        Store methods called on this thread inside the block share the
        transaction; it commits on exit and rolls back on error.
        """
        if getattr(self._local, "conn", None) is not None:
            # Nested: the outer block owns commit/rollback.
            yield self
            return

        with self._write_lock:
            conn = self._connect()
            self._local.conn = conn
            try:
                conn.execute("BEGIN IMMEDIATE")
                yield self
                conn.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            finally:
                self._local.conn = None
                conn.close()

    @contextmanager
    def _writing(self) -> Iterator[sqlite3.Connection]:
        """Connection for a write, joining the current transaction if any."""
        with self.transaction():
            yield self._local.conn

    @contextmanager
    def _reading(self) -> Iterator[sqlite3.Connection]:
        """Connection for a point read; inside a transaction, sees its uncommitted writes."""
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            yield conn
            return
        conn = self._connect()
        try:
            yield conn
        finally:
            conn.close()

    # --------------------------------------------------------
    # Terms
    # --------------------------------------------------------

    def get(self, key: str) -> Term | None:
        """Get a term by key."""
        with self._reading() as conn:
            row = conn.execute(self._select_terms("WHERE t.key = ?"), (key,)).fetchone()
        return self._row_to_term(row) if row else None

    def upsert_increment(
        self,
        key: str,
        display_variant: str,
        amount: float,
        now: datetime | None = None
    ) -> bool:
        """
        Add ``amount`` to a term's frequency, creating it if needed.

        Refreshes ``last_used_at`` and records ``display_variant``.

        Returns:
            True if a new term was created
        """
        if not key:
            raise ValueError("Term key must not be empty")
        if amount <= 0:
            raise ValueError(f"Increment must be positive, got {amount}")

        timestamp = (now or datetime.now()).isoformat()
        with self._writing() as conn:
            exists = conn.execute(
                "SELECT 1 FROM terms WHERE key = ?", (key,)
            ).fetchone() is not None

            conn.execute("""
                INSERT INTO terms (key, frequency, last_used_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    frequency = frequency + excluded.frequency,
                    last_used_at = excluded.last_used_at
            """, (key, amount, timestamp))

            conn.execute(
                "INSERT OR IGNORE INTO term_variants (key, variant) VALUES (?, ?)",
                (key, display_variant or key)
            )

        if not exists:
            logger.debug(f"New term learned: {key!r}")
        return not exists

    def remove(self, key: str):
        """Delete a term and its variants (no-op if absent)."""
        with self._writing() as conn:
            conn.execute("DELETE FROM term_variants WHERE key = ?", (key,))
            conn.execute("DELETE FROM terms WHERE key = ?", (key,))

    def remove_if_expired(self, key: str, min_frequency: float, cutoff: datetime) -> bool:
        """
        Delete a term only if it is still rarer than ``min_frequency`` and
        last used before ``cutoff``. The check and the delete are one write,
        so an increment landing after the caller's scan keeps the term.

        Returns:
            True if the term was deleted
        """
        with self._writing() as conn:
            deleted = conn.execute(
                "DELETE FROM terms WHERE key = ? AND frequency < ? AND last_used_at < ?",
                (key, min_frequency, cutoff.isoformat())
            ).rowcount > 0
            if deleted:
                conn.execute("DELETE FROM term_variants WHERE key = ?", (key,))
        return deleted

    def count(self) -> int:
        """Current number of terms."""
        with self._reading() as conn:
            return conn.execute("SELECT COUNT(*) FROM terms").fetchone()[0]

    def clear(self):
        """Remove every term and reset statistics."""
        with self._writing() as conn:
            conn.execute("DELETE FROM term_variants")
            conn.execute("DELETE FROM terms")
            conn.execute("DELETE FROM library_stats")
        logger.warning("Term library cleared")

    # --------------------------------------------------------
    # Scans
    # --------------------------------------------------------

    def scan_matching_prefix(
        self,
        prefix_key: str,
        limit: int | None = None,
        most_used: bool = False
    ) -> Iterator[Term]:
        """
        Lazily yield terms whose key starts with ``prefix_key``.

        Key order by default; with ``most_used`` the most frequent (then most
        recent) terms come first, so a ``limit`` keeps the best candidates.
        """
        return self._scan(
            "WHERE t.key >= ? AND t.key < ?",
            (prefix_key, prefix_key + _MAX_CHAR),
            limit,
            most_used
        )

    def scan_matching_variant(
        self,
        fragment: str,
        limit: int | None = None,
        most_used: bool = False
    ) -> Iterator[Term]:
        """Lazily yield terms with a display variant containing ``fragment`` (case-insensitive)."""
        return self._scan("""
            WHERE t.key IN (
                SELECT v.key FROM term_variants v
                WHERE instr(casefold(v.variant), ?) > 0
            )
        """, (fragment.casefold(),), limit, most_used)

    def scan_all(self) -> Iterator[Term]:
        """Lazily yield every term."""
        return self._scan("", ())

    def top_terms(self, min_frequency: float = 0.0, limit: int = 100) -> list[Term]:
        """Terms at or above ``min_frequency``, most frequent first."""
        return list(self._scan("WHERE t.frequency >= ?", (min_frequency,), limit, most_used=True))

    def _scan(
        self,
        where: str,
        params: tuple,
        limit: int | None = None,
        most_used: bool = False
    ) -> Iterator[Term]:
        clause = f"{where} {_MOST_USED_ORDER if most_used else 'ORDER BY t.key'}"
        if limit is not None:
            clause += " LIMIT ?"
            params = params + (limit,)

        conn = self._connect()
        try:
            # One read transaction = one snapshot for the whole scan
            conn.execute("BEGIN")
            for row in conn.execute(self._select_terms(clause), params):
                yield self._row_to_term(row)
            conn.execute("COMMIT")
        finally:
            conn.close()

    def inspect(
        self,
        min_frequency: float = 0.0,
        limit: int = 100
    ) -> tuple[list[Term], LibraryStats, int]:
        """
        Top terms, library stats and term count read from one snapshot.

        Returns:
            (terms most frequent first, stats, total number of terms)
        """
        conn = self._connect()
        try:
            conn.execute("BEGIN")
            rows = conn.execute(
                self._select_terms(f"WHERE t.frequency >= ? {_MOST_USED_ORDER} LIMIT ?"),
                (min_frequency, limit)
            ).fetchall()
            stats_row = conn.execute(_STATS_SQL).fetchone()
            total = conn.execute("SELECT COUNT(*) FROM terms").fetchone()[0]
            conn.execute("COMMIT")
        finally:
            conn.close()

        return [self._row_to_term(row) for row in rows], self._row_to_stats(stats_row), total

    @staticmethod
    def _select_terms(clause: str) -> str:
        return f"""
            SELECT
                t.key,
                t.frequency,
                t.last_used_at,
                (SELECT json_group_array(v.variant) FROM term_variants v
                 WHERE v.key = t.key) AS variants
            FROM terms t
            {clause}
        """

    @staticmethod
    def _row_to_term(row: sqlite3.Row) -> Term:
        return Term(
            key=row["key"],
            frequency=row["frequency"],
            last_used_at=datetime.fromisoformat(row["last_used_at"]),
            display_variants=json.loads(row["variants"] or "[]")
        )

    # --------------------------------------------------------
    # Statistics
    # --------------------------------------------------------

    def load_stats(self) -> LibraryStats:
        """Get library statistics (zeroed if never saved)."""
        with self._reading() as conn:
            row = conn.execute(_STATS_SQL).fetchone()
        return self._row_to_stats(row)

    @staticmethod
    def _row_to_stats(row: sqlite3.Row | None) -> LibraryStats:
        if not row:
            return LibraryStats()
        return LibraryStats(
            total_searches=row["total_searches"],
            unique_term_count=row["unique_term_count"],
            last_updated_at=datetime.fromisoformat(row["last_updated_at"]) if row["last_updated_at"] else None
        )

    def save_stats(self, stats: LibraryStats):
        """Persist library statistics."""
        with self._writing() as conn:
            conn.execute("""
                INSERT INTO library_stats (id, total_searches, unique_term_count, last_updated_at)
                VALUES (1, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    total_searches = excluded.total_searches,
                    unique_term_count = excluded.unique_term_count,
                    last_updated_at = excluded.last_updated_at
            """, (
                stats.total_searches,
                stats.unique_term_count,
                stats.last_updated_at.isoformat() if stats.last_updated_at else None
            ))
