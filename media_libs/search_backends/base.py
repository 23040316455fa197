"""Base search backend interface.

Defines the contract the search service depends on, independent of which
upstream answers (the Meilisearch primary index or the backend API).

All methods are asynchronous; each backend owns one ``httpx.AsyncClient``.
"""

from abc import ABC, abstractmethod
from typing import Optional

import httpx


class SearchBackend(ABC):
    """Abstract base class for upstream search backends.

    Implementations raise a ``SearchBackendError`` subclass for every upstream
    failure (transport error, bad status, unparseable body) so callers never
    have to know about ``httpx`` exception types.
    """

    name: str = "backend"

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self.http_client: Optional[httpx.AsyncClient] = None

    async def initialize(self) -> None:
        """Create the HTTP client. Safe to call more than once."""
        if self.http_client is None:
            self.http_client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            )

    async def cleanup(self) -> None:
        """Close the HTTP client."""
        if self.http_client is not None:
            await self.http_client.aclose()
            self.http_client = None

    def _client(self) -> httpx.AsyncClient:
        if self.http_client is None:
            raise SearchBackendError(f"{self.name} backend is not initialized")
        return self.http_client

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the backend is reachable/usable."""
        pass


class SearchBackendError(Exception):
    """Base exception for upstream search failures."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PrimaryIndexError(SearchBackendError):
    """The primary index failed to answer a query."""
    pass


class PrimaryUnavailable(PrimaryIndexError):
    """The primary index is unreachable or malfunctioning.

    Transport errors, 5xx responses and unusable bodies. These count against
    the primary circuit breaker.
    """
    pass


class PrimaryQueryRejected(PrimaryIndexError):
    """The primary index answered and refused this particular query (4xx).

    Still triggers the fallback, but says nothing about the index's health.
    """
    pass


class SecondaryBackendError(SearchBackendError):
    """The fallback backend failed to answer a query."""
    pass
