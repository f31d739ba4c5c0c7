"""
Core module - Configuration and response schemas.
"""
from .config import Settings, get_settings
from .schemas import (
    TermRecord,
    StatsRecord,
    LibraryReport,
    SuggestionRecord,
    SuggestionResponse,
    SourceReport,
    SearchStatRecord,
)

__all__ = [
    "Settings",
    "get_settings",
    "TermRecord",
    "StatsRecord",
    "LibraryReport",
    "SuggestionRecord",
    "SuggestionResponse",
    "SourceReport",
    "SearchStatRecord",
]
