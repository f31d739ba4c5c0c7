"""
Suggestion service: the boundary used by the web layer and the admin CLI.

Operations:
- record_search: learn from a submitted query (best effort, never raises)
- get_suggestions / get_enhanced_suggestions / submit: ranked suggestions
- inspect_library: read-only view of learned terms and stats
- search_statistics / reset_statistics: per-term search counts
- sweep: manual retention sweep
"""
import logging

from .core.config import Settings, get_settings
from .core.schemas import (
    LibraryReport,
    SearchStatRecord,
    SourceReport,
    StatsRecord,
    SuggestionRecord,
    SuggestionResponse,
    TermRecord,
)
from .library.learning import LearningPipeline, RecordOutcome
from .library.retention import RetentionSweeper, SweepTrigger
from .library.search_stats import SearchStatsLog
from .library.term_store import TermStore
from .suggest.adapters import (
    CompletionAdapter,
    ContextualAdapter,
    LearnedLibraryAdapter,
    PopularTermAdapter,
    SpellingAdapter,
)
from .suggest.completion_client import CompletionClient
from .suggest.ranker import SuggestionRanker, SuggestionRequest

logger = logging.getLogger(__name__)


class SuggestionService:
    """
    Composes the term library, learning pipeline, suggestion sources
    and ranker behind one object.
    """

    def __init__(
        self,
        store: TermStore,
        pipeline: LearningPipeline,
        ranker: SuggestionRanker,
        search_stats: SearchStatsLog | None = None,
        completion_client: CompletionClient | None = None
    ):
        self.store = store
        self.pipeline = pipeline
        self.ranker = ranker
        self.search_stats = search_stats
        self.completion_client = completion_client

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "SuggestionService":
        """Build the full service from configuration."""
        settings = settings or get_settings()
        storage = settings.storage
        engine = settings.search_engine
        tuning = settings.suggestions
        retention = settings.retention

        store = TermStore(storage.term_library_path, busy_timeout=storage.busy_timeout)
        sweeper = RetentionSweeper(
            store,
            retention_days=retention.retention_days,
            min_frequency=retention.min_frequency
        )
        pipeline = LearningPipeline(store, sweeper, SweepTrigger(retention.sweep_interval))

        client = CompletionClient(
            base_url=engine.url,
            index=engine.index,
            username=engine.username,
            password=engine.password,
            field=engine.completion_field,
            scope_field=engine.scope_field,
            size=engine.completion_size,
            timeout=tuning.adapter_timeout,
            cache_dir=engine.cache_dir,
            cache_ttl=engine.cache_ttl
        )

        # Order matters: it is the ranking tie-break order
        adapters = [
            CompletionAdapter(client),
            PopularTermAdapter(),
            ContextualAdapter(),
            SpellingAdapter(),
            LearnedLibraryAdapter(
                store,
                limit=tuning.learned_limit,
                scan_limit=tuning.learned_scan_limit
            ),
        ]
        ranker = SuggestionRanker(
            adapters,
            max_results=tuning.max_results,
            min_query_length=tuning.min_query_length,
            adapter_timeout=tuning.adapter_timeout,
            overall_timeout=tuning.overall_timeout
        )

        return cls(
            store=store,
            pipeline=pipeline,
            ranker=ranker,
            search_stats=SearchStatsLog(storage.search_stats_path, busy_timeout=storage.busy_timeout),
            completion_client=client
        )

    # --------------------------------------------------------
    # Recording
    # --------------------------------------------------------

    def record_search(self, query: str, user_id: str | None = None) -> RecordOutcome:
        """Record a submitted search. Never raises."""
        outcome = self.pipeline.record(query, user_id=user_id)

        if self.search_stats is not None and outcome is not RecordOutcome.IGNORED:
            try:
                self.search_stats.record(query)
            except Exception as e:
                logger.warning(f"Search count not updated: {e}")

        return outcome

    # --------------------------------------------------------
    # Suggestions
    # --------------------------------------------------------

    def submit(self, query: str, scope: str | None = None) -> SuggestionRequest:
        """Start a cancellable suggestion request."""
        return self.ranker.submit(query, scope=scope)

    def get_suggestions(
        self,
        query: str,
        max_results: int | None = None,
        scope: str | None = None
    ) -> list[str]:
        """Ranked suggestion texts. Never raises."""
        return self.ranker.rank(query, max_results=max_results, scope=scope)

    def get_enhanced_suggestions(
        self,
        query: str,
        max_results: int | None = None,
        scope: str | None = None
    ) -> SuggestionResponse:
        """Ranked suggestions with provenance. Never raises."""
        ranked, reports = self.ranker.rank_with_reports(query, max_results=max_results, scope=scope)
        return SuggestionResponse(
            query=query,
            suggestions=[s.text for s in ranked],
            enhanced=[
                SuggestionRecord(
                    text=s.text,
                    type=s.source_kind.value,
                    score=s.score,
                    raw_score=s.raw_score,
                    category=s.category,
                    context=s.context_note,
                    frequency=s.usage_count
                )
                for s in ranked
            ],
            sources=[SourceReport(**report.to_dict()) for report in reports]
        )

    # --------------------------------------------------------
    # Administration
    # --------------------------------------------------------

    def inspect_library(self, min_frequency: float = 1.0, limit: int = 100) -> LibraryReport:
        """Terms at or above ``min_frequency``, most frequent first, with stats."""
        terms, stats, total = self.store.inspect(min_frequency=min_frequency, limit=limit)
        return LibraryReport(
            terms=[
                TermRecord(
                    key=t.key,
                    frequency=t.frequency,
                    last_used_at=t.last_used_at,
                    variants=t.display_variants
                )
                for t in terms
            ],
            stats=StatsRecord(**stats.to_dict()),
            total=total
        )

    def search_statistics(self, limit: int | None = None) -> list[SearchStatRecord]:
        """Per-term search counts, most searched first."""
        if self.search_stats is None:
            return []
        return [
            SearchStatRecord(**stat.to_dict())
            for stat in self.search_stats.get_stats(limit=limit)
        ]

    def reset_statistics(self):
        """Wipe per-term search counts. Idempotent; the term library is untouched."""
        if self.search_stats is not None:
            self.search_stats.reset()

    def sweep(self) -> int:
        """Run the retention sweep now."""
        return self.pipeline.run_sweep()

    def close(self):
        """Release worker threads and HTTP connections."""
        self.ranker.close()
        if self.completion_client is not None:
            self.completion_client.close()
