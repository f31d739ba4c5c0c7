"""
Unit tests for the per-term search statistics log.
"""
from datetime import timedelta

import pytest

from docsuggest.library.search_stats import SearchStatsLog


@pytest.fixture
def stats_log(tmp_path):
    return SearchStatsLog(tmp_path / "stats.db")


class TestRecord:

    def test_counts_per_term(self, stats_log, now):
        stats_log.record("Décret", now=now)
        stats_log.record("  décret ", now=now)
        stats_log.record("loi", now=now)

        counts = {s.term: s.count for s in stats_log.get_stats()}
        assert counts == {"décret": 2, "loi": 1}

    def test_last_searched_updated(self, stats_log, now):
        stats_log.record("budget", now=now)
        later = now + timedelta(days=1)
        stats_log.record("budget", now=later)

        assert stats_log.get_stats()[0].last_searched == later

    def test_empty_term_rejected(self, stats_log):
        with pytest.raises(ValueError):
            stats_log.record("   ")


class TestGetStats:

    def test_sorted_by_count_then_term(self, stats_log, now):
        for term in ["loi", "budget", "arrêté", "budget", "loi", "loi"]:
            stats_log.record(term, now=now)

        assert [s.term for s in stats_log.get_stats()] == ["loi", "budget", "arrêté"]

    def test_limit(self, stats_log, now):
        for term in ["loi", "budget", "arrêté"]:
            stats_log.record(term, now=now)

        assert len(stats_log.get_stats(limit=2)) == 2


class TestReset:

    def test_reset_clears_counts(self, stats_log, now):
        stats_log.record("loi", now=now)
        stats_log.reset()

        assert stats_log.count() == 0
        assert stats_log.get_stats() == []

    def test_reset_idempotent(self, stats_log):
        stats_log.reset()
        stats_log.reset()
        assert stats_log.count() == 0

    def test_counting_resumes_after_reset(self, stats_log, now):
        stats_log.record("loi", now=now)
        stats_log.reset()
        stats_log.record("loi", now=now)

        assert stats_log.get_stats()[0].count == 1


def test_to_dict(stats_log, now):
    stats_log.record("loi", now=now)
    assert stats_log.get_stats()[0].to_dict() == {
        "term": "loi",
        "count": 1,
        "last_searched": now.isoformat()
    }
