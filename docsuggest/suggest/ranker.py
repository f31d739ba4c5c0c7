"""
Suggestion aggregation and ranking.

Strategy:
1. Run every source concurrently, each under its own timeout, and stop
   waiting at an overall deadline; a failing or slow source contributes
   nothing.
2. Deduplicate case-insensitively, keeping the highest raw score.
3. Re-weight by relevance to the live query, sort, truncate.
4. If ranking itself breaks (or no source answered at all), return a
   generic templated list instead of an error.
"""
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait, FIRST_COMPLETED
from dataclasses import dataclass

from ..library.normalizer import normalize
from .adapters import SuggestionAdapter
from .models import Suggestion, SourceKind, CancelToken, SuggestionCancelled
from .relevance import relevance
from .vocabulary import FALLBACK_TEMPLATES

logger = logging.getLogger(__name__)

# Upper bound on how long the collector sleeps before re-checking
# cancellation and per-source deadlines.
_POLL_INTERVAL = 0.05


class AggregationError(Exception):
    """Ranking could not produce candidates from any source."""


@dataclass
class AdapterReport:
    """How one source behaved for one request."""
    name: str
    status: str  # ok, failed, timeout, cancelled
    count: int = 0
    elapsed_ms: float = 0.0
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "status": self.status,
            "count": self.count,
            "elapsed_ms": self.elapsed_ms,
            "error": self.error
        }


def fallback_suggestions(query: str) -> list[Suggestion]:
    """Generic query-templated suggestions for the degraded mode."""
    text = query.strip()
    suggestions = []
    for template in FALLBACK_TEMPLATES:
        candidate = template.format(query=text)
        if len(candidate) > len(text) + 2:
            suggestions.append(Suggestion(
                text=candidate,
                source_kind=SourceKind.SEMANTIC,
                raw_score=0.0,
                category="fallback"
            ))
    return suggestions


class SuggestionRequest:
    """
    One in-flight suggestion request.

    Sources start running as soon as the request is created; ``result``
    collects them, ``cancel`` abandons the request (e.g. superseded by a
    newer keystroke).
    """

    def __init__(
        self,
        ranker: "SuggestionRanker",
        query: str,
        futures: list[tuple[SuggestionAdapter, Future]],
        token: CancelToken,
        started: float
    ):
        self.query = query
        self.reports: list[AdapterReport] = []
        self._ranker = ranker
        self._futures = futures
        self._token = token
        self._started = started
        self._abandoned = False

    def cancel(self):
        """Abandon the request and stop its sources."""
        self._abandoned = True
        self._token.cancel()
        for _, future in self._futures:
            future.cancel()

    @property
    def cancelled(self) -> bool:
        return self._abandoned

    def result(self, max_results: int | None = None) -> list[Suggestion]:
        """
        Wait for the sources and return ranked suggestions.

        Never raises. Returns an empty list for abandoned requests and
        the fallback list when ranking fails.
        """
        if max_results is None:
            max_results = self._ranker.max_results
        if max_results < 1 or not self._futures:
            return []

        try:
            batches = self._collect()
            if self._abandoned:
                return []
            return self._ranker.merge(self.query, batches, max_results)
        except Exception as e:
            if self._abandoned:
                return []
            logger.error(f"Suggestion ranking failed for {self.query[:50]!r}: {e}")
            return fallback_suggestions(self.query)[:max_results]

    def _collect(self) -> list[list[Suggestion]]:
        """Gather source results in source order, honouring timeouts."""
        ranker = self._ranker
        overall_deadline = self._started + ranker.overall_timeout
        deadlines = {
            future: self._started + min(
                adapter.timeout if adapter.timeout is not None else ranker.adapter_timeout,
                ranker.overall_timeout
            )
            for adapter, future in self._futures
        }
        position = {future: i for i, (_, future) in enumerate(self._futures)}
        batches: list[list[Suggestion] | None] = [None] * len(self._futures)
        pending = set(deadlines)

        try:
            while pending and not self._token.cancelled:
                now = time.monotonic()
                for future in [f for f in pending if now >= deadlines[f] and not f.done()]:
                    pending.discard(future)
                    self._timed_out(future, position[future], now)
                if not pending or now >= overall_deadline:
                    break

                next_deadline = min(overall_deadline, min(deadlines[f] for f in pending))
                done, _ = wait(
                    pending,
                    timeout=max(0.0, min(next_deadline - now, _POLL_INTERVAL)),
                    return_when=FIRST_COMPLETED
                )
                for future in done:
                    pending.discard(future)
                    i = position[future]
                    batches[i] = self._harvest(future, i)

            now = time.monotonic()
            for future in pending:
                if self._token.cancelled:
                    future.cancel()
                elif future.done():
                    batches[position[future]] = self._harvest(future, position[future])
                else:
                    self._timed_out(future, position[future], now)
        finally:
            # Release stragglers still running after we stopped waiting
            self._token.cancel()

        if self._abandoned:
            return []
        answered = [batch for batch in batches if batch is not None]
        if not answered:
            raise AggregationError("no suggestion source answered")
        return answered

    def _harvest(self, future: Future, i: int) -> list[Suggestion] | None:
        adapter = self._futures[i][0]
        elapsed = (time.monotonic() - self._started) * 1000
        try:
            batch = list(future.result())
        except SuggestionCancelled:
            self.reports.append(AdapterReport(adapter.name, "cancelled", elapsed_ms=elapsed))
            return None
        except Exception as e:
            logger.warning(f"Suggestion source '{adapter.name}' failed: {e}")
            self.reports.append(AdapterReport(adapter.name, "failed", elapsed_ms=elapsed, error=str(e)))
            return None

        logger.debug(f"Source '{adapter.name}': {len(batch)} suggestions in {elapsed:.0f}ms")
        self.reports.append(AdapterReport(adapter.name, "ok", count=len(batch), elapsed_ms=elapsed))
        return batch

    def _timed_out(self, future: Future, i: int, now: float):
        adapter = self._futures[i][0]
        future.cancel()
        elapsed = (now - self._started) * 1000
        logger.warning(f"Suggestion source '{adapter.name}' timed out after {elapsed:.0f}ms")
        self.reports.append(AdapterReport(adapter.name, "timeout", elapsed_ms=elapsed))


class SuggestionRanker:
    """
    Merges candidates from all sources into one ranked list.

    Final score = raw score * relevance(text, query); ties keep the order
    in which texts were first produced (source order, then within-source
    order), so identical inputs give identical output.
    """

    def __init__(
        self,
        adapters: list[SuggestionAdapter],
        max_results: int = 8,
        min_query_length: int = 2,
        adapter_timeout: float = 1.5,
        overall_timeout: float = 2.5,
        max_workers: int | None = None
    ):
        """
        Initialize ranker.

        Args:
            adapters: Sources, in tie-break order
            max_results: Default result size
            min_query_length: Shorter (normalized) queries get no suggestions
            adapter_timeout: Default per-source timeout in seconds
            overall_timeout: Seconds after which only finished sources count
            max_workers: Worker threads shared by all requests
        """
        if max_results < 1:
            raise ValueError(f"max_results must be >= 1, got {max_results}")
        self.adapters = list(adapters)
        self.max_results = max_results
        self.min_query_length = min_query_length
        self.adapter_timeout = adapter_timeout
        self.overall_timeout = overall_timeout

        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or max(4, len(self.adapters) * 4),
            thread_name_prefix="suggest"
        )

        logger.info(
            f"SuggestionRanker initialized "
            f"({', '.join(a.name for a in self.adapters)}; "
            f"timeouts {adapter_timeout}s/{overall_timeout}s)"
        )

    def submit(self, query: str, scope: str | None = None) -> SuggestionRequest:
        """Start all sources for ``query`` and return the pending request."""
        token = CancelToken()
        started = time.monotonic()

        if len(normalize(query or "")) < self.min_query_length:
            return SuggestionRequest(self, query or "", [], token, started)

        futures = [
            (adapter, self._executor.submit(adapter.suggest, query, scope=scope, token=token))
            for adapter in self.adapters
        ]
        return SuggestionRequest(self, query, futures, token, started)

    def rank_with_reports(
        self,
        query: str,
        max_results: int | None = None,
        scope: str | None = None
    ) -> tuple[list[Suggestion], list[AdapterReport]]:
        """Ranked suggestions plus how each source behaved. Never raises."""
        try:
            request = self.submit(query, scope=scope)
        except Exception as e:
            logger.error(f"Could not start suggestion sources: {e}")
            limit = self.max_results if max_results is None else max_results
            return fallback_suggestions(query or "")[:max(limit, 0)], []
        return request.result(max_results), request.reports

    def rank_enhanced(
        self,
        query: str,
        max_results: int | None = None,
        scope: str | None = None
    ) -> list[Suggestion]:
        """Ranked suggestions with provenance. Never raises."""
        return self.rank_with_reports(query, max_results, scope)[0]

    def rank(
        self,
        query: str,
        max_results: int | None = None,
        scope: str | None = None
    ) -> list[str]:
        """Ranked suggestion texts. Never raises."""
        return [s.text for s in self.rank_enhanced(query, max_results, scope)]

    def merge(
        self,
        query: str,
        batches: list[list[Suggestion]],
        max_results: int
    ) -> list[Suggestion]:
        """Deduplicate, re-score and truncate source batches (given in source order)."""
        # casefolded text -> (first position, best suggestion)
        best: dict[str, tuple[int, Suggestion]] = {}
        position = 0
        for batch in batches:
            for suggestion in batch:
                folded = suggestion.text.strip().casefold()
                if not folded:
                    continue
                current = best.get(folded)
                if current is None:
                    best[folded] = (position, suggestion)
                elif suggestion.raw_score > current[1].raw_score:
                    best[folded] = (current[0], suggestion)
                position += 1

        ranked = []
        for first_seen, suggestion in best.values():
            suggestion.score = suggestion.raw_score * relevance(suggestion.text, query)
            ranked.append((first_seen, suggestion))

        ranked.sort(key=lambda item: (-item[1].score, item[0]))
        return [suggestion for _, suggestion in ranked[:max_results]]

    def close(self):
        """Stop the worker pool (running sources finish in the background)."""
        self._executor.shutdown(wait=False, cancel_futures=True)
