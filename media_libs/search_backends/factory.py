"""Search backend factory.

Centralizes creation of the concrete backends so callers don't depend on
constructor details. Both are built from a ``SearchConfig``.
"""

from enum import Enum
from typing import Optional, Tuple

import httpx
import structlog

from ..common.config import SearchConfig
from .backend_api import BackendSearchAPI
from .base import SearchBackend
from .meilisearch import MeilisearchIndex

logger = structlog.get_logger("search_backends.factory")


class SearchBackendType(Enum):
    """Supported search backend types."""
    MEILISEARCH = "meilisearch"
    BACKEND_API = "backend"


class SearchBackendFactory:
    """Factory for creating search backend instances."""

    @staticmethod
    def create(
        backend_type: SearchBackendType,
        config: SearchConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> SearchBackend:
        """Create a backend instance.

        Parameters
        - backend_type: A ``SearchBackendType`` enum value
        - config: Service configuration carrying URLs, keys and timeout
        - transport: Optional ``httpx`` transport override
        """
        if backend_type == SearchBackendType.MEILISEARCH:
            return MeilisearchIndex(
                base_url=config.meilisearch_url,
                api_key=config.meilisearch_key,
                timeout=config.http_timeout,
                transport=transport,
            )

        elif backend_type == SearchBackendType.BACKEND_API:
            return BackendSearchAPI(
                base_url=config.backend_url,
                api_key=config.api_key,
                bearer_token=config.backend_bearer_token,
                timeout=config.http_timeout,
                transport=transport,
            )

        else:
            raise ValueError(f"Unsupported search backend type: {backend_type}")


def create_backends_from_config(
    config: SearchConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Tuple[Optional[MeilisearchIndex], BackendSearchAPI]:
    """Create the primary index (if enabled) and the fallback backend.

    Returns ``(primary, secondary)``; ``primary`` is ``None`` when
    ``USE_MEILISEARCH`` is off.
    """
    primary = None
    if config.use_meilisearch:
        primary = SearchBackendFactory.create(SearchBackendType.MEILISEARCH, config, transport)
        logger.info("Primary index enabled", url=config.meilisearch_url)
    else:
        logger.info("Primary index disabled; all searches use the backend API")

    secondary = SearchBackendFactory.create(SearchBackendType.BACKEND_API, config, transport)
    return primary, secondary
