"""
Learning pipeline: turns issued queries into library updates.

Each recorded query increments the full phrase (weight 1.0) and each
constituent word (weight 0.5), bumps the library stats, and every
``SweepTrigger.interval`` searches runs the retention sweep inline.
"""
import logging
from datetime import datetime
from enum import Enum

from .normalizer import normalize, extract_words, is_learnable
from .retention import RetentionSweeper, SweepTrigger
from .term_store import TermStore

logger = logging.getLogger(__name__)

PHRASE_WEIGHT = 1.0
WORD_WEIGHT = 0.5


class RecordOutcome(str, Enum):
    """Result of a best-effort learning event."""
    RECORDED = "recorded"
    IGNORED = "ignored"     # too short to learn from
    FAILED = "failed"       # storage error, event dropped


class LearningPipeline:
    """
    Records search queries into the term library.

    ``record`` never raises: recording is telemetry and must not break
    the search it accompanies.
    """

    def __init__(
        self,
        store: TermStore,
        sweeper: RetentionSweeper | None = None,
        trigger: SweepTrigger | None = None
    ):
        self.store = store
        self.sweeper = sweeper or RetentionSweeper(store)
        self.trigger = trigger or SweepTrigger()

    def record(
        self,
        query: str,
        user_id: str | None = None,
        now: datetime | None = None
    ) -> RecordOutcome:
        """
        Learn from one submitted query.

        Args:
            query: Raw query as typed
            user_id: Submitting user (accepted, not used yet)
            now: Event time, defaults to the call time
        """
        if not is_learnable(query or ""):
            return RecordOutcome.IGNORED

        key = normalize(query)
        now = now or datetime.now()
        try:
            total = self._apply(query, key, now)
        except Exception as e:
            logger.warning(f"Search not recorded ({query[:50]!r}): {e}")
            return RecordOutcome.FAILED

        if self.trigger.is_due(total):
            self.run_sweep(now)
        return RecordOutcome.RECORDED

    def _apply(self, query: str, key: str, now: datetime) -> int:
        """Write the phrase, its words and the stats in one transaction."""
        with self.store.transaction():
            self.store.upsert_increment(key, query.strip(), PHRASE_WEIGHT, now=now)
            # Every word occurrence counts, including the single word
            # of a one-word query (1.0 + 0.5).
            for word in extract_words(query):
                self.store.upsert_increment(word, word, WORD_WEIGHT, now=now)

            stats = self.store.load_stats()
            stats.total_searches += 1
            stats.unique_term_count = self.store.count()
            stats.last_updated_at = now
            self.store.save_stats(stats)

        return stats.total_searches

    def run_sweep(self, now: datetime | None = None) -> int:
        """Run the retention sweep; failures are logged and reported as 0 removals."""
        try:
            return self.sweeper.sweep(now)
        except Exception as e:
            logger.warning(f"Retention sweep failed: {e}")
            return 0
