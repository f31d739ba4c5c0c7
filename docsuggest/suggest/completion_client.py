"""
Elasticsearch client for filename completion.

Provides:
- Prefix lookup of document filenames in the portal's search index
- Optional scope filter (division / tenant) from the authorization layer
- Response caching to avoid hammering the engine on every keystroke
"""
import logging
from pathlib import Path

import httpx
from diskcache import Cache

from ..library.normalizer import normalize

logger = logging.getLogger(__name__)


class CompletionError(Exception):
    """The search engine could not answer a completion lookup."""


class CompletionClient:
    """
    Client for the document index ``_search`` endpoint.

    Features:
    - Bounded phrase-prefix query on the filename field
    - Basic auth when credentials are configured
    - Caching with a TTL
    """

    def __init__(
        self,
        base_url: str = "http://localhost:9200",
        index: str = "search_index",
        username: str = "",
        password: str = "",
        field: str = "file_name",
        scope_field: str = "division",
        size: int = 5,
        timeout: float = 1.5,
        cache_dir: str | Path | None = None,
        cache_ttl: float = 300.0,
        transport: httpx.BaseTransport | None = None
    ):
        """
        Initialize completion client.

        Args:
            base_url: Elasticsearch node URL
            index: Index holding the documents
            username: Basic auth user (empty disables auth)
            password: Basic auth password
            field: Filename field to complete on
            scope_field: Field used to restrict results to one scope
            size: Maximum filenames per lookup
            timeout: Request timeout in seconds
            cache_dir: Directory for caching responses (None disables)
            cache_ttl: Seconds a cached lookup stays valid
            transport: Custom httpx transport (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.index = index
        self.field = field
        self.scope_field = scope_field
        self.size = size
        self.cache_ttl = cache_ttl

        auth = httpx.BasicAuth(username, password) if username and password else None
        self._client = httpx.Client(timeout=timeout, auth=auth, transport=transport)

        self.cache = Cache(str(cache_dir)) if cache_dir else None

        logger.info(
            f"CompletionClient initialized ({self.base_url}/{self.index}, "
            f"cache={'enabled' if self.cache is not None else 'disabled'})"
        )

    def lookup(self, prefix: str, scope: str | None = None, size: int | None = None) -> list[str]:
        """
        Find filenames matching a query prefix.

        Args:
            prefix: Partial query typed by the user
            scope: Optional division/tenant restriction
            size: Maximum results (defaults to the client size)

        Returns:
            Distinct filenames in engine order

        Raises:
            CompletionError: on transport errors, bad status or bad payload
        """
        size = size or self.size
        key = normalize(prefix)
        if not key:
            return []

        cache_key = f"completion:{scope or '*'}:{size}:{key}"
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Cache hit for completion: {key!r}")
                return cached

        data = self._search(self.build_query(prefix, scope, size))
        filenames = self._parse_filenames(data)[:size]

        if self.cache is not None:
            self.cache.set(cache_key, filenames, expire=self.cache_ttl)
        return filenames

    def build_query(self, prefix: str, scope: str | None, size: int) -> dict:
        """Build the Elasticsearch request body."""
        query: dict = {
            "bool": {
                "must": {
                    "match_phrase_prefix": {
                        self.field: {"query": prefix.strip()}
                    }
                }
            }
        }
        if scope:
            query["bool"]["filter"] = [{"term": {self.scope_field: scope}}]

        return {
            "size": size,
            "_source": [self.field],
            "query": query,
        }

    def _search(self, body: dict) -> dict:
        url = f"{self.base_url}/{self.index}/_search"
        try:
            response = self._client.post(url, json=body)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise CompletionError(f"Search engine returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise CompletionError(f"Search engine unreachable: {e}") from e
        except ValueError as e:
            raise CompletionError(f"Malformed search engine response: {e}") from e

    def _parse_filenames(self, data: dict) -> list[str]:
        try:
            hits = data["hits"]["hits"]
        except (KeyError, TypeError) as e:
            raise CompletionError("Search engine response has no hits") from e

        filenames: list[str] = []
        seen: set[str] = set()
        for hit in hits:
            name = (hit.get("_source") or {}).get(self.field)
            if not isinstance(name, str) or not name.strip():
                continue
            if name not in seen:
                seen.add(name)
                filenames.append(name)
        return filenames

    def close(self):
        self._client.close()
        if self.cache is not None:
            self.cache.close()
