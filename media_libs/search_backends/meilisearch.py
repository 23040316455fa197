"""Meilisearch primary index client."""

import time
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
import structlog

from ..common.metrics import measure_time
from .base import PrimaryQueryRejected, PrimaryUnavailable, SearchBackend

logger = structlog.get_logger("search_backends.meilisearch")


class MeilisearchIndex(SearchBackend):
    """Full-text search against one Meilisearch index per media type."""

    name = "meilisearch"

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the Meilisearch client.

        Args:
            base_url: Meilisearch host URL
            api_key: Key sent as a bearer token
            timeout: Per-request timeout in seconds
            transport: Optional transport override (used by tests)
        """
        super().__init__(base_url, timeout=timeout, transport=transport)
        self.api_key = api_key

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    @measure_time("primary_search", backend="meilisearch")
    async def search(
        self,
        index: str,
        query: str,
        limit: int,
        offset: int,
        filter_expression: str = "",
    ) -> Dict[str, Any]:
        """Run a paginated search and return Meilisearch's response body.

        The body is returned untouched; it already has the envelope shape
        ``{hits, query, processingTimeMs, limit, offset, estimatedTotalHits}``.

        Raises:
            PrimaryQueryRejected: on 4xx responses.
            PrimaryUnavailable: on transport errors, other non-2xx responses,
                or a body without a ``hits`` list.
        """
        url = f"{self.base_url}/indexes/{quote(index, safe='')}/search"
        payload = {
            "q": query,
            "limit": limit,
            "offset": offset,
            "filter": filter_expression,
        }

        start_time = time.time()
        try:
            response = await self._client().post(url, json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            raise PrimaryUnavailable(f"Meilisearch request failed: {e}") from e

        if 400 <= response.status_code < 500:
            # e.g. invalid_search_filter, index_not_found
            raise PrimaryQueryRejected(
                f"Meilisearch rejected the query with HTTP {response.status_code}",
                status_code=response.status_code,
            )
        if response.status_code >= 300:
            raise PrimaryUnavailable(
                f"Meilisearch returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise PrimaryUnavailable("Meilisearch returned a non-JSON body") from e

        if not isinstance(data, dict) or not isinstance(data.get("hits"), list):
            raise PrimaryUnavailable("Meilisearch response has no hits list")

        logger.debug(
            "Meilisearch query completed",
            index=index,
            hits=len(data["hits"]),
            latency_ms=(time.time() - start_time) * 1000,
        )
        return data

    async def health_check(self) -> bool:
        """Probe ``GET /health``; Meilisearch answers ``{"status": "available"}``."""
        try:
            response = await self._client().get(f"{self.base_url}/health")
            if response.status_code != 200:
                return False
            return response.json().get("status") == "available"
        except Exception as e:
            logger.warning("Meilisearch health check failed", error=str(e))
            return False
