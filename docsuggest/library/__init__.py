"""
Library module - Learned search vocabulary.

Provides:
- normalize / extract_words: canonical term keys
- TermStore: SQLite term library with atomic increments
- LearningPipeline: records issued queries
- RetentionSweeper: prunes rare, stale terms
- SearchStatsLog: per-term search counts for the admin dashboard
"""
from .normalizer import normalize, extract_words, is_learnable
from .term_store import TermStore, Term, LibraryStats
from .learning import LearningPipeline, RecordOutcome
from .retention import RetentionSweeper, SweepTrigger
from .search_stats import SearchStatsLog, SearchStat

__all__ = [
    "normalize",
    "extract_words",
    "is_learnable",
    "TermStore",
    "Term",
    "LibraryStats",
    "LearningPipeline",
    "RecordOutcome",
    "RetentionSweeper",
    "SweepTrigger",
    "SearchStatsLog",
    "SearchStat"
]
