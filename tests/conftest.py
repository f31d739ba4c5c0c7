"""
Pytest configuration and fixtures.
"""
import pytest
import sys
from datetime import datetime
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from docsuggest.library.term_store import TermStore
from docsuggest.library.learning import LearningPipeline
from docsuggest.library.retention import RetentionSweeper, SweepTrigger


@pytest.fixture
def now():
    """A fixed clock reading."""
    return datetime(2026, 3, 15, 10, 30, 0)


@pytest.fixture
def store(tmp_path):
    """Empty term library in a temporary directory."""
    return TermStore(tmp_path / "library.db")


@pytest.fixture
def pipeline(store):
    """Learning pipeline over the temporary library."""
    return LearningPipeline(store, RetentionSweeper(store), SweepTrigger(100))


@pytest.fixture
def sample_queries():
    """Searches as users type them on the portal."""
    return [
        "Décret ministériel",
        "décret ministériel",
        "arrêté préfectoral 2024",
        "Budget prévisionnel",
        "loi de finances",
    ]
