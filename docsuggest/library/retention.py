"""
Retention sweep for the term library.

Removes terms that are both rarely used and stale. Deletion is per term,
so a failure part-way leaves earlier deletions in place; the next sweep
picks up the rest.
"""
import logging
from datetime import datetime, timedelta

from .term_store import TermStore

logger = logging.getLogger(__name__)


class RetentionSweeper:
    """Prunes low-frequency terms that have not been used recently."""

    def __init__(
        self,
        store: TermStore,
        retention_days: int = 30,
        min_frequency: float = 2.0
    ):
        self.store = store
        self.retention_days = retention_days
        self.min_frequency = min_frequency

    def is_expired(self, frequency: float, last_used_at: datetime, now: datetime) -> bool:
        """A term expires only when it is both rare and stale."""
        cutoff = now - timedelta(days=self.retention_days)
        return frequency < self.min_frequency and last_used_at < cutoff

    def sweep(self, now: datetime | None = None) -> int:
        """
        Delete expired terms and refresh library stats.

        Returns:
            Number of terms removed
        """
        now = now or datetime.now()
        cutoff = now - timedelta(days=self.retention_days)

        candidates = [
            term.key
            for term in self.store.scan_all()
            if self.is_expired(term.frequency, term.last_used_at, now)
        ]

        # Re-checked at delete time: a term used since the scan survives
        removed = sum(
            1 for key in candidates
            if self.store.remove_if_expired(key, self.min_frequency, cutoff)
        )

        with self.store.transaction():
            stats = self.store.load_stats()
            stats.unique_term_count = self.store.count()
            stats.last_updated_at = now
            self.store.save_stats(stats)

        if removed:
            logger.info(f"Retention sweep: {removed} terms removed")
        else:
            logger.debug("Retention sweep: nothing to remove")
        return removed


class SweepTrigger:
    """Decides when the learning pipeline should run a sweep."""

    def __init__(self, interval: int = 100):
        if interval < 1:
            raise ValueError(f"Sweep interval must be >= 1, got {interval}")
        self.interval = interval

    def is_due(self, total_searches: int) -> bool:
        return total_searches > 0 and total_searches % self.interval == 0
