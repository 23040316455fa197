"""Backend API client used as the fallback search source.

The backend exposes ``POST /search-advanced`` which returns a flat JSON array
of media records rather than a paginated envelope.
"""

from typing import Any, Dict, List, Optional, Sequence

import httpx
import structlog

from ..common.metrics import measure_time
from .base import SearchBackend, SecondaryBackendError

logger = structlog.get_logger("search_backends.backend_api")

NOVEL_FORMAT = "NOVEL"


def resolve_backend_type(media_type: str, formats: Sequence[str]) -> str:
    """Map a request media type onto the backend's search type.

    Manga searches that include the ``NOVEL`` format are novel searches;
    any type other than ``manga`` is searched as anime.
    """
    if media_type == "manga":
        return "novel" if NOVEL_FORMAT in formats else "manga"
    return "anime"


class BackendSearchAPI(SearchBackend):
    """Client for the backend's advanced search operation."""

    name = "backend"

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        bearer_token: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(base_url, timeout=timeout, transport=transport)
        self.api_key = api_key
        self.bearer_token = bearer_token

    @measure_time("fallback_search", backend="backend")
    async def search_advanced(
        self,
        media_type: str,
        query: str,
        formats: Sequence[str],
        page: int,
        per_page: int,
        genres: Sequence[str],
        genres_excluded: Sequence[str],
        tags: Sequence[str],
        tags_excluded: Sequence[str],
        year: int = 0,
    ) -> List[Any]:
        """Run an advanced search and return the raw list of media records.

        Raises:
            SecondaryBackendError: on transport errors, non-2xx responses, or
                a body that is not a JSON array.
        """
        payload: Dict[str, Any] = {
            "type": resolve_backend_type(media_type, formats),
            "query": query,
            "format": list(formats),
            "page": page,
            "perPage": per_page,
            "genres": list(genres),
            "genresExcluded": list(genres_excluded),
            "tags": list(tags),
            "tagsExcluded": list(tags_excluded),
            "year": year,
        }

        try:
            response = await self._client().post(
                f"{self.base_url}/search-advanced",
                params={"apikey": self.api_key},
                json=payload,
                headers={"Authorization": f"Bearer {self.bearer_token}"},
            )
        except httpx.HTTPError as e:
            raise SecondaryBackendError(f"Backend request failed: {e}") from e

        if response.status_code >= 300:
            raise SecondaryBackendError(
                f"Backend returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise SecondaryBackendError("Backend returned a non-JSON body") from e

        if not isinstance(data, list):
            raise SecondaryBackendError("Backend search response is not a list")

        logger.debug("Backend search completed", type=payload["type"], results_count=len(data))
        return data

    async def health_check(self) -> bool:
        """The backend has no health route; report whether the client is ready."""
        return self.http_client is not None
