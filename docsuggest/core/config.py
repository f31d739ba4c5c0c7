"""
Central configuration management for DocSuggest.

Loads settings from environment variables and provides typed access.
"""
from pathlib import Path
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class StorageSettings(BaseSettings):
    """Where the learned term library and the search statistics live."""
    term_library_path: Path = Field(
        default=Path("data/search_library.db"),
        alias="TERM_LIBRARY_PATH",
        description="SQLite file holding learned terms and library stats"
    )
    search_stats_path: Path = Field(
        default=Path("data/search_stats.db"),
        alias="SEARCH_STATS_PATH",
        description="SQLite file holding per-term search counts"
    )
    busy_timeout: float = Field(default=5.0, alias="STORE_BUSY_TIMEOUT")


class SearchEngineSettings(BaseSettings):
    """Elasticsearch document index used for filename completion."""
    url: str = Field(default="http://localhost:9200", alias="ELASTICSEARCH_URL")
    index: str = Field(default="search_index", alias="ELASTICSEARCH_INDEX")
    username: str = Field(default="", alias="ELASTICSEARCH_USERNAME")
    password: str = Field(default="", alias="ELASTICSEARCH_PASSWORD")

    completion_field: str = Field(default="file_name", alias="COMPLETION_FIELD")
    scope_field: str = Field(default="division", alias="COMPLETION_SCOPE_FIELD")
    completion_size: int = Field(default=5, alias="COMPLETION_SIZE")

    # Response cache (disabled when no directory is set)
    cache_dir: Path | None = Field(default=None, alias="COMPLETION_CACHE_DIR")
    cache_ttl: float = Field(default=300.0, alias="COMPLETION_CACHE_TTL")


class SuggestionSettings(BaseSettings):
    """Aggregation and ranking parameters."""
    max_results: int = Field(default=8, alias="SUGGEST_MAX_RESULTS")
    min_query_length: int = Field(default=2, alias="SUGGEST_MIN_QUERY_LENGTH")
    adapter_timeout: float = Field(
        default=1.5,
        alias="SUGGEST_ADAPTER_TIMEOUT",
        description="Seconds a single source may take before it is dropped"
    )
    overall_timeout: float = Field(
        default=2.5,
        alias="SUGGEST_OVERALL_TIMEOUT",
        description="Seconds after which only completed sources are used"
    )
    learned_limit: int = Field(default=5, alias="LEARNED_RESULT_LIMIT")
    learned_scan_limit: int = Field(default=200, alias="LEARNED_SCAN_LIMIT")


class RetentionSettings(BaseSettings):
    """Pruning of stale, rarely used terms."""
    sweep_interval: int = Field(default=100, alias="SWEEP_INTERVAL")
    retention_days: int = Field(default=30, alias="RETENTION_DAYS")
    min_frequency: float = Field(default=2.0, alias="RETENTION_MIN_FREQUENCY")


class Settings(BaseSettings):
    """Main settings aggregator."""
    storage: StorageSettings = Field(default_factory=StorageSettings)
    search_engine: SearchEngineSettings = Field(default_factory=SearchEngineSettings)
    suggestions: SuggestionSettings = Field(default_factory=SuggestionSettings)
    retention: RetentionSettings = Field(default_factory=RetentionSettings)

    # Project root
    project_root: Path = Field(default_factory=lambda: Path(__file__).parent.parent.parent)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def load_dotenv_if_exists():
    """Load the project .env file into the process environment if present."""
    from dotenv import load_dotenv
    env_path = Path(__file__).parent.parent.parent / ".env"
    if env_path.exists():
        load_dotenv(env_path)
