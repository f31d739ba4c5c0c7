"""
Relevance scoring between a candidate and the live query.

relevance() is a [0, 1] textual closeness used for the final re-weighting;
learned_score() adds usage frequency and recency for library terms.
"""
from datetime import datetime

from ..library.term_store import Term

FREQUENCY_SATURATION = 10.0
FREQUENCY_WEIGHT = 0.6
RELEVANCE_WEIGHT = 0.4
RECENCY_WINDOW_DAYS = 30.0
RECENCY_WEIGHT = 0.2


def levenshtein(a: str, b: str) -> int:
    """Classic edit distance (insert, delete, substitute; unit cost)."""
    if a == b:
        return 0
    # Keep the inner row short
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        curr = [i]
        for j, cb in enumerate(b, 1):
            curr.append(min(
                curr[j - 1] + 1,            # insertion
                prev[j] + 1,                # deletion
                prev[j - 1] + (ca != cb)    # substitution
            ))
        prev = curr
    return prev[-1]


def relevance(candidate: str, query: str) -> float:
    """Score how well ``candidate`` matches ``query`` (case-insensitive)."""
    c = candidate.casefold()
    q = query.casefold()

    if c == q:
        return 1.0
    if c.startswith(q):
        return 0.9
    if q in c:
        return 0.7

    longest = max(len(c), len(q))
    return max(0.0, 1.0 - levenshtein(c, q) / longest)


def days_since(moment: datetime, now: datetime | None = None) -> float:
    now = now or datetime.now()
    return max(0.0, (now - moment).total_seconds() / 86400.0)


def learned_score(term: Term, query: str, now: datetime | None = None) -> float:
    """
    Score a library term for the current query.

    frequency (saturating at 10 uses) * 0.6
    + relevance(key, query) * 0.4
    + recency bonus up to 0.2, decaying to 0 over 30 days
    """
    frequency_component = min(term.frequency / FREQUENCY_SATURATION, 1.0)
    recency_bonus = max(0.0, 1.0 - days_since(term.last_used_at, now) / RECENCY_WINDOW_DAYS) * RECENCY_WEIGHT
    return (
        frequency_component * FREQUENCY_WEIGHT
        + relevance(term.key, query) * RELEVANCE_WEIGHT
        + recency_bonus
    )
