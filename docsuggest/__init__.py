"""
DocSuggest - Adaptive query suggestions for a document-search portal

Learns from the searches users actually run and merges several
suggestion sources into one ranked list:
- Term library (SQLite) that learns phrases and words from each search
- Filename completion from the Elasticsearch document index
- Curated popular terms, contextual phrases and spelling corrections
- Relevance re-scoring, deduplication and periodic retention sweeps

Modules:
    core     - Configuration, response schemas
    library  - Normalization, term store, learning pipeline, retention, search stats
    suggest  - Suggestion sources, relevance scoring, ranking
    service  - SuggestionService facade used by the web layer and the CLI
"""

__version__ = "1.0.0"
