"""
Suggestion sources.

Each adapter turns a partial query into candidate Suggestions on its own
and may fail on its own; the ranker isolates failures per adapter.

Sources:
- CompletionAdapter: filenames from the document index
- PopularTermAdapter: curated vocabulary
- ContextualAdapter: related phrases for recognised topics
- SpellingAdapter: corrected query for known misspellings
- LearnedLibraryAdapter: terms learned from past searches
"""
import logging
import re
from datetime import datetime

from ..library.normalizer import normalize
from ..library.term_store import TermStore
from .completion_client import CompletionClient
from .models import Suggestion, SourceKind, CancelToken, SuggestionCancelled
from .relevance import learned_score
from .vocabulary import POPULAR_TERMS, CONTEXT_PATTERNS, SPELLING_CORRECTIONS

logger = logging.getLogger(__name__)

VARIANT_PENALTY = 0.8


class SuggestionAdapter:
    """Base class for suggestion sources."""

    name = "adapter"
    timeout: float | None = None  # None: use the ranker's default

    def suggest(
        self,
        query: str,
        scope: str | None = None,
        token: CancelToken | None = None
    ) -> list[Suggestion]:
        raise NotImplementedError


class CompletionAdapter(SuggestionAdapter):
    """Filenames from the external document index."""

    name = "completion"

    def __init__(self, client: CompletionClient, timeout: float | None = None):
        self.client = client
        self.timeout = timeout

    def suggest(self, query, scope=None, token=None):
        if token is not None and token.cancelled:
            raise SuggestionCancelled(self.name)

        filenames = self.client.lookup(query, scope=scope)

        suggestions = []
        seen: set[str] = set()
        for filename in filenames:
            folded = filename.casefold()
            if folded in seen:
                continue
            seen.add(folded)
            suggestions.append(Suggestion(
                text=filename,
                source_kind=SourceKind.COMPLETION,
                raw_score=1.0,
                category="document"
            ))
        return suggestions


def popularity_score(term: str, query: str) -> float:
    """0.9 for a prefix match, 0.6 for a substring match, else 0.3."""
    t = term.casefold()
    q = query.casefold()
    if t.startswith(q):
        return 0.9
    if q in t:
        return 0.6
    return 0.3


class PopularTermAdapter(SuggestionAdapter):
    """Curated vocabulary of frequently searched terms."""

    name = "popular"

    def __init__(self, terms: list[str] | None = None):
        self.terms = list(POPULAR_TERMS if terms is None else terms)

    def suggest(self, query, scope=None, token=None):
        q = query.strip().casefold()
        if not q:
            return []

        suggestions = []
        for term in self.terms:
            t = term.casefold()
            # A whole term inside a longer query also counts:
            # "budget" is worth offering while typing "budget 2024".
            if q not in t and not re.search(rf"\b{re.escape(t)}\b", q):
                continue
            suggestions.append(Suggestion(
                text=term,
                source_kind=SourceKind.POPULAR,
                raw_score=popularity_score(term, q),
                category="populaire"
            ))
        return suggestions


class ContextualAdapter(SuggestionAdapter):
    """Related phrases for queries that hit a known topic."""

    name = "contextual"

    def __init__(self, patterns: dict[str, tuple[list[str], str]] | None = None):
        self.patterns = dict(CONTEXT_PATTERNS if patterns is None else patterns)

    def suggest(self, query, scope=None, token=None):
        q = query.strip().casefold()
        if not q:
            return []

        suggestions = []
        seen: set[str] = set()
        for pattern, (phrases, note) in self.patterns.items():
            # re.error on a malformed pattern propagates to the ranker
            if not re.search(pattern, q, re.IGNORECASE):
                continue
            for phrase in phrases:
                folded = phrase.casefold()
                if q in folded and folded not in seen:
                    seen.add(folded)
                    suggestions.append(Suggestion(
                        text=phrase,
                        source_kind=SourceKind.SEMANTIC,
                        raw_score=0.7,
                        category="contexte",
                        context_note=note
                    ))
        return suggestions


class SpellingAdapter(SuggestionAdapter):
    """The query with known misspellings corrected."""

    name = "spelling"

    def __init__(self, corrections: dict[str, str] | None = None):
        self.corrections = dict(SPELLING_CORRECTIONS if corrections is None else corrections)

    def suggest(self, query, scope=None, token=None):
        text = query.strip()
        folded = text.casefold()
        if not folded:
            return []

        suggestions = []
        seen: set[str] = set()
        for wrong, right in self.corrections.items():
            if wrong not in folded:
                continue
            corrected = re.sub(re.escape(wrong), lambda _: right, text, flags=re.IGNORECASE)
            key = corrected.casefold()
            if key == folded or key in seen:
                continue
            seen.add(key)
            suggestions.append(Suggestion(
                text=corrected,
                source_kind=SourceKind.SEMANTIC,
                raw_score=0.8,
                category="correction",
                context_note=f"Vouliez-vous dire « {right} » ?"
            ))
        return suggestions


class LearnedLibraryAdapter(SuggestionAdapter):
    """
    Terms learned from past searches.

    Key prefix matches are scored with learned_score(); terms reached only
    through a display variant score 80% of that so canonical keys rank
    first. Returns at most ``limit`` suggestions.
    """

    name = "learned"

    def __init__(self, store: TermStore, limit: int = 5, scan_limit: int = 200):
        self.store = store
        self.limit = limit
        self.scan_limit = scan_limit

    def suggest(self, query, scope=None, token=None, now: datetime | None = None):
        key = normalize(query)
        if not key:
            return []
        now = now or datetime.now()

        # casefolded text -> best suggestion for it
        best: dict[str, Suggestion] = {}

        def offer(suggestion: Suggestion):
            folded = suggestion.text.casefold()
            current = best.get(folded)
            if current is None or suggestion.raw_score > current.raw_score:
                best[folded] = suggestion

        matched_keys: set[str] = set()
        # Most used first, so the scan cap keeps the strongest candidates
        for term in self.store.scan_matching_prefix(key, limit=self.scan_limit, most_used=True):
            matched_keys.add(term.key)
            offer(Suggestion(
                text=term.key,
                source_kind=SourceKind.LEARNED,
                raw_score=learned_score(term, query, now),
                category="bibliothèque",
                context_note=f"Recherché {term.frequency:g} fois",
                usage_count=term.frequency
            ))

        if token is not None and token.cancelled:
            raise SuggestionCancelled(self.name)

        fragment = query.strip().casefold()
        for term in self.store.scan_matching_variant(fragment, limit=self.scan_limit, most_used=True):
            if term.key in matched_keys:
                continue
            score = learned_score(term, query, now) * VARIANT_PENALTY
            for variant in term.display_variants:
                if fragment in variant.casefold():
                    offer(Suggestion(
                        text=variant,
                        source_kind=SourceKind.LEARNED,
                        raw_score=score,
                        category="bibliothèque",
                        context_note=f"Variante de « {term.key} »",
                        usage_count=term.frequency
                    ))

        ranked = sorted(best.values(), key=lambda s: s.raw_score, reverse=True)
        return ranked[:self.limit]
