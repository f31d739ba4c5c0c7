"""
Suggest module - Query suggestions from several sources.

Provides:
- Suggestion / SourceKind: transient ranked candidates
- relevance / learned_score: scoring against the live query
- CompletionClient: filename completion from the document index
- Adapters: completion, popular, contextual, spelling, learned
- SuggestionRanker: concurrent aggregation, dedup and ranking
"""
from .models import Suggestion, SourceKind, CancelToken, SuggestionCancelled
from .relevance import relevance, learned_score, levenshtein
from .completion_client import CompletionClient, CompletionError
from .adapters import (
    SuggestionAdapter,
    CompletionAdapter,
    PopularTermAdapter,
    ContextualAdapter,
    SpellingAdapter,
    LearnedLibraryAdapter,
)
from .ranker import (
    SuggestionRanker,
    SuggestionRequest,
    AdapterReport,
    AggregationError,
    fallback_suggestions,
)

__all__ = [
    "Suggestion",
    "SourceKind",
    "CancelToken",
    "SuggestionCancelled",
    "relevance",
    "learned_score",
    "levenshtein",
    "CompletionClient",
    "CompletionError",
    "SuggestionAdapter",
    "CompletionAdapter",
    "PopularTermAdapter",
    "ContextualAdapter",
    "SpellingAdapter",
    "LearnedLibraryAdapter",
    "SuggestionRanker",
    "SuggestionRequest",
    "AdapterReport",
    "AggregationError",
    "fallback_suggestions"
]
