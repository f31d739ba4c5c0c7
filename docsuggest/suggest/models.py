"""
Suggestion records produced by the sources and consumed by the ranker.
"""
import threading
from dataclasses import dataclass
from enum import Enum


class SourceKind(str, Enum):
    """Where a suggestion came from."""
    COMPLETION = "completion"   # document index filenames
    POPULAR = "popular"         # curated vocabulary
    SEMANTIC = "semantic"       # contextual rules, spelling fixes, fallback
    LEARNED = "learned"         # term library


@dataclass
class Suggestion:
    """A candidate completion for one request. Never persisted."""
    text: str
    source_kind: SourceKind
    raw_score: float  # only comparable within one source
    category: str = ""
    context_note: str | None = None
    usage_count: float | None = None  # learned only
    score: float = 0.0  # effective score, set by the ranker

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "type": self.source_kind.value,
            "raw_score": self.raw_score,
            "score": self.score,
            "category": self.category,
            "context": self.context_note,
            "frequency": self.usage_count
        }


class CancelToken:
    """Cooperative cancellation flag shared by the sources of one request."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class SuggestionCancelled(Exception):
    """Raised by a source that noticed its request was abandoned."""
