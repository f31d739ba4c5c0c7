"""
DocSuggest - Integration Tests

Tests the assembled service:
1. Configuration from environment variables
2. Learning from searches through to ranked suggestions
3. Library inspection and search statistics
4. Degraded mode when sources fail
5. Admin CLI

Run:
    python tests/test_integration.py           # All tests
    python tests/test_integration.py -v        # Verbose
"""
import io
import json
import os
import sys
import tempfile
import threading
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch

import httpx

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from docsuggest.library.learning import LearningPipeline, RecordOutcome
from docsuggest.library.retention import RetentionSweeper, SweepTrigger
from docsuggest.library.search_stats import SearchStatsLog
from docsuggest.library.term_store import TermStore
from docsuggest.service import SuggestionService
from docsuggest.suggest.adapters import (
    CompletionAdapter,
    ContextualAdapter,
    LearnedLibraryAdapter,
    PopularTermAdapter,
    SpellingAdapter,
)
from docsuggest.suggest.completion_client import CompletionClient
from docsuggest.suggest.ranker import SuggestionRanker


def build_service(root: Path, es_handler) -> SuggestionService:
    """Full service over temporary storage and a mocked search engine."""
    store = TermStore(root / "library.db")
    pipeline = LearningPipeline(store, RetentionSweeper(store), SweepTrigger(100))
    client = CompletionClient(transport=httpx.MockTransport(es_handler))
    ranker = SuggestionRanker(
        [
            CompletionAdapter(client),
            PopularTermAdapter(),
            ContextualAdapter(),
            SpellingAdapter(),
            LearnedLibraryAdapter(store),
        ],
        adapter_timeout=1.0,
        overall_timeout=2.0
    )
    return SuggestionService(
        store=store,
        pipeline=pipeline,
        ranker=ranker,
        search_stats=SearchStatsLog(root / "stats.db"),
        completion_client=client
    )


def filenames(*names):
    def handler(request):
        return httpx.Response(200, json={
            "hits": {"hits": [{"_source": {"file_name": n}} for n in names]}
        })
    return handler


# ============================================================
# 1. Configuration
# ============================================================

class TestConfig(unittest.TestCase):
    """Settings come from environment variables."""

    def test_defaults(self):
        from docsuggest.core.config import Settings
        with patch.dict(os.environ, {}, clear=True):
            s = Settings()
        self.assertEqual(s.suggestions.max_results, 8)
        self.assertEqual(s.suggestions.adapter_timeout, 1.5)
        self.assertEqual(s.retention.sweep_interval, 100)
        self.assertEqual(s.retention.retention_days, 30)
        self.assertEqual(s.retention.min_frequency, 2.0)
        self.assertIsNone(s.search_engine.cache_dir)

    def test_env_overrides(self):
        from docsuggest.core.config import Settings
        env = {
            "TERM_LIBRARY_PATH": "/tmp/lib.db",
            "ELASTICSEARCH_URL": "http://search:9200",
            "ELASTICSEARCH_INDEX": "documents",
            "SUGGEST_MAX_RESULTS": "12",
            "SUGGEST_OVERALL_TIMEOUT": "4",
            "SWEEP_INTERVAL": "50",
        }
        with patch.dict(os.environ, env, clear=True):
            s = Settings()
        self.assertEqual(s.storage.term_library_path, Path("/tmp/lib.db"))
        self.assertEqual(s.search_engine.url, "http://search:9200")
        self.assertEqual(s.search_engine.index, "documents")
        self.assertEqual(s.suggestions.max_results, 12)
        self.assertEqual(s.suggestions.overall_timeout, 4.0)
        self.assertEqual(s.retention.sweep_interval, 50)

    def test_from_settings_wires_storage(self):
        from docsuggest.core.config import Settings
        with tempfile.TemporaryDirectory() as tmp:
            env = {
                "TERM_LIBRARY_PATH": str(Path(tmp) / "lib.db"),
                "SEARCH_STATS_PATH": str(Path(tmp) / "stats.db"),
                "LEARNED_RESULT_LIMIT": "3",
            }
            with patch.dict(os.environ, env, clear=True):
                service = SuggestionService.from_settings(Settings())
            try:
                self.assertEqual(service.store.db_path, Path(tmp) / "lib.db")
                self.assertEqual(len(service.ranker.adapters), 5)
                self.assertEqual(service.ranker.adapters[-1].limit, 3)
                self.assertIs(service.record_search("loi de finances"), RecordOutcome.RECORDED)
                self.assertEqual(service.search_statistics()[0].term, "loi de finances")
            finally:
                service.close()


# ============================================================
# 2. Learning to suggestions
# ============================================================

class TestLearningToSuggestions(unittest.TestCase):
    """Recorded searches feed the learned source."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.service = build_service(Path(self._tmp.name), filenames())

    def tearDown(self):
        self.service.close()
        self._tmp.cleanup()

    def test_decree_scenario(self):
        for _ in range(3):
            self.service.record_search("décret ministériel")
        self.service.record_search("décret présidentiel")

        store = self.service.store
        self.assertEqual(store.get("décret ministériel").frequency, 3.0)
        self.assertEqual(store.get("décret présidentiel").frequency, 1.0)
        # 0.5 per query containing the word
        self.assertEqual(store.get("décret").frequency, 2.0)

        results = self.service.get_suggestions("décret", max_results=20)
        self.assertIn("décret ministériel", results)
        self.assertLess(results.index("décret ministériel"), results.index("projet de décret"))
        self.assertIn("décret ministériel", self.service.get_suggestions("décret", max_results=8))

    def test_no_duplicate_texts(self):
        self.service.record_search("Budget prévisionnel")
        results = self.service.get_suggestions("budget")
        self.assertEqual(len(results), len({r.casefold() for r in results}))

    def test_enhanced_response(self):
        self.service.record_search("arrêté préfectoral")
        response = self.service.get_enhanced_suggestions("arrêté", max_results=5)

        self.assertEqual(response.query, "arrêté")
        self.assertEqual(response.suggestions, [s.text for s in response.enhanced])
        self.assertLessEqual(len(response.enhanced), 5)
        scores = [s.score for s in response.enhanced]
        self.assertEqual(scores, sorted(scores, reverse=True))
        types = {s.type for s in response.enhanced}
        self.assertTrue(types <= {"completion", "popular", "semantic", "learned"})
        sources = {s.name: s for s in response.sources}
        self.assertEqual(set(sources), {"completion", "popular", "contextual", "spelling", "learned"})
        self.assertEqual(sources["learned"].status, "ok")
        self.assertGreaterEqual(sources["learned"].count, 1)

    def test_short_queries(self):
        self.assertIs(self.service.record_search("a"), RecordOutcome.IGNORED)
        self.assertEqual(self.service.get_suggestions("a"), [])
        self.assertEqual(self.service.search_statistics(), [])


# ============================================================
# 3. Completion source
# ============================================================

class TestCompletionSource(unittest.TestCase):
    """Filenames from the document index reach the ranking."""

    def test_filenames_ranked(self):
        with tempfile.TemporaryDirectory() as tmp:
            service = build_service(Path(tmp), filenames("Rapport annuel 2024.pdf"))
            try:
                results = service.get_suggestions("rapport annuel")
            finally:
                service.close()
        self.assertIn("Rapport annuel 2024.pdf", results)

    def test_engine_down_degrades(self):
        def down(request):
            raise httpx.ConnectError("refused", request=request)

        with tempfile.TemporaryDirectory() as tmp:
            service = build_service(Path(tmp), down)
            try:
                results = service.get_suggestions("loi")
            finally:
                service.close()
        self.assertIn("loi", results)


# ============================================================
# 4. Administration
# ============================================================

class TestAdministration(unittest.TestCase):
    """Library inspection and search statistics."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.service = build_service(Path(self._tmp.name), filenames())
        for query in ["Loi de finances", "loi de finances", "arrêté", "budget 2024"]:
            self.service.record_search(query)

    def tearDown(self):
        self.service.close()
        self._tmp.cleanup()

    def test_inspect_library(self):
        report = self.service.inspect_library(min_frequency=1.0)

        self.assertEqual(report.stats.total_searches, 4)
        self.assertEqual(report.stats.unique_term_count, report.total)
        self.assertEqual(report.terms[0].key, "loi de finances")
        self.assertEqual(report.terms[0].frequency, 2.0)
        self.assertEqual(sorted(report.terms[0].variants), ["Loi de finances", "loi de finances"])
        self.assertTrue(all(t.frequency >= 1.0 for t in report.terms))

    def test_inspect_consistent_during_writes(self):
        stop = threading.Event()

        def record_loop():
            i = 0
            while not stop.is_set():
                self.service.record_search(f"requête numéro {i}")
                i += 1

        writer = threading.Thread(target=record_loop)
        writer.start()
        try:
            for _ in range(30):
                report = self.service.inspect_library(min_frequency=0.0, limit=5)
                self.assertEqual(report.total, report.stats.unique_term_count)
        finally:
            stop.set()
            writer.join()

    def test_inspect_is_read_only(self):
        before = self.service.inspect_library().model_dump()
        self.service.inspect_library()
        self.assertEqual(self.service.inspect_library().model_dump(), before)

    def test_search_statistics(self):
        stats = self.service.search_statistics()
        self.assertEqual(stats[0].term, "loi de finances")
        self.assertEqual(stats[0].count, 2)

    def test_reset_statistics_keeps_library(self):
        self.service.reset_statistics()
        self.service.reset_statistics()

        self.assertEqual(self.service.search_statistics(), [])
        self.assertIsNotNone(self.service.store.get("loi de finances"))

    def test_manual_sweep(self):
        self.assertEqual(self.service.sweep(), 0)


# ============================================================
# 5. CLI
# ============================================================

class TestCli(unittest.TestCase):
    """The admin script runs against configured storage."""

    def setUp(self):
        import importlib.util
        from docsuggest.core.config import get_settings

        self._tmp = tempfile.TemporaryDirectory()
        self._env = patch.dict(os.environ, {
            "TERM_LIBRARY_PATH": str(Path(self._tmp.name) / "lib.db"),
            "SEARCH_STATS_PATH": str(Path(self._tmp.name) / "stats.db"),
        })
        self._env.start()
        get_settings.cache_clear()
        self.addCleanup(get_settings.cache_clear)

        spec = importlib.util.spec_from_file_location(
            "suggest_cli",
            Path(__file__).parent.parent / "scripts" / "suggest_cli.py"
        )
        self.cli = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(self.cli)

    def tearDown(self):
        self._env.stop()
        self._tmp.cleanup()

    def run_cli(self, *argv) -> str:
        out = io.StringIO()
        with redirect_stdout(out):
            code = self.cli.main(list(argv))
        self.assertEqual(code, 0)
        return out.getvalue()

    def test_record_and_inspect(self):
        output = self.run_cli("record", "décret ministériel", "x")
        self.assertIn("recorded", output)
        self.assertIn("ignored", output)

        report = json.loads(self.run_cli("inspect", "--json", "--min-frequency", "0.5"))
        keys = {t["key"] for t in report["terms"]}
        self.assertEqual(keys, {"décret ministériel", "décret", "ministériel"})

    def test_stats_and_reset(self):
        self.run_cli("record", "budget")
        self.assertIn("budget", self.run_cli("stats"))
        self.run_cli("reset-stats")
        self.assertEqual(self.run_cli("stats").strip(), "")


# ============================================================
# Run
# ============================================================

if __name__ == "__main__":
    print("=" * 60)
    print("DocSuggest Integration Tests")
    print("=" * 60)
    print()
    unittest.main(verbosity=2)
