"""
Pydantic schemas for the service boundary.

These are the shapes handed to the web layer (JSON) and the admin tools;
internal components work with plain dataclasses.
"""
from datetime import datetime
from pydantic import BaseModel, Field


# ============================================================
# Term library
# ============================================================

class TermRecord(BaseModel):
    """A learned term as shown in the admin library view."""
    key: str = Field(..., min_length=1, description="Normalized term")
    frequency: float = Field(..., gt=0, description="Weighted usage count")
    last_used_at: datetime
    variants: list[str] = Field(default_factory=list, description="Original spellings seen")


class StatsRecord(BaseModel):
    """Aggregate library counters."""
    total_searches: int = Field(default=0, ge=0)
    unique_term_count: int = Field(default=0, ge=0)
    last_updated_at: datetime | None = None


class LibraryReport(BaseModel):
    """Read-only snapshot of the term library."""
    terms: list[TermRecord] = Field(default_factory=list)
    stats: StatsRecord = Field(default_factory=StatsRecord)
    total: int = Field(default=0, ge=0, description="Terms in the library, before filtering")


# ============================================================
# Suggestions
# ============================================================

class SuggestionRecord(BaseModel):
    """A ranked suggestion with provenance."""
    text: str
    type: str = Field(..., description="completion, popular, semantic or learned")
    score: float = Field(default=0.0, description="Effective score after relevance re-weighting")
    raw_score: float = 0.0
    category: str = ""
    context: str | None = None
    frequency: float | None = None


class SourceReport(BaseModel):
    """How one suggestion source behaved for a request."""
    name: str
    status: str = Field(..., description="ok, failed, timeout or cancelled")
    count: int = Field(default=0, ge=0)
    elapsed_ms: float = 0.0
    error: str | None = None


class SuggestionResponse(BaseModel):
    """Suggestions for one query, plain and enhanced."""
    query: str
    suggestions: list[str] = Field(default_factory=list)
    enhanced: list[SuggestionRecord] = Field(default_factory=list)
    sources: list[SourceReport] = Field(default_factory=list, description="Per-source diagnostics")


# ============================================================
# Search statistics
# ============================================================

class SearchStatRecord(BaseModel):
    """Search count for one term."""
    term: str
    count: int = Field(..., ge=1)
    last_searched: datetime
