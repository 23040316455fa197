"""Search manager for the two-stage media search.

Stage one queries the Meilisearch primary index (when enabled). Its result is
classified into a ``PrimaryOutcome``; a hit is returned as is, anything else
sends the request to the backend API, whose flat result list is wrapped into
the same envelope shape.
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

import httpx
import structlog

from media_libs.common.config import SearchConfig
from media_libs.common.logging import log_performance
from media_libs.common.metrics import MetricsCollector
from media_libs.search_backends.base import (
    PrimaryIndexError,
    PrimaryQueryRejected,
    PrimaryUnavailable,
    SecondaryBackendError,
)
from media_libs.search_backends.factory import create_backends_from_config
from media_libs.search_backends.filters import build_filter
from ..adapters.circuit_breaker import CircuitBreaker, CircuitBreakerError
from .envelope import fallback_envelope
from .outcomes import (
    PrimaryEmpty,
    PrimaryError,
    PrimaryHit,
    PrimaryOutcome,
    PrimarySkipped,
)

logger = structlog.get_logger("search_service.search_manager")

FALLBACK_YEAR = 0


@dataclass
class SearchResult:
    """Envelope to send back plus where it came from."""

    envelope: Dict[str, Any]
    source: str
    primary_outcome: PrimaryOutcome


class SearchManager:
    """Runs media searches against the primary index and the fallback.

    Responsibilities
    - Own the backend clients and their HTTP connections
    - Build the primary index filter expression
    - Decide on fallback from a typed primary outcome
    - Shape fallback results into a search envelope
    """

    def __init__(
        self,
        config: SearchConfig,
        metrics_collector: Optional[MetricsCollector] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Construct a search manager.

        Parameters
        - config: ``SearchConfig`` providing upstream URLs, keys and policy
        - metrics_collector: Optional collector for outcome/latency metrics
        - transport: Optional ``httpx`` transport shared by both backends
        """
        self.config = config
        self.metrics_collector = metrics_collector
        self.primary, self.secondary = create_backends_from_config(config, transport)

        self.primary_breaker = CircuitBreaker(
            failure_threshold=config.primary_failure_threshold,
            recovery_timeout=config.primary_recovery_timeout,
            expected_exception=PrimaryUnavailable,
            ignored_exception=PrimaryQueryRejected,
            name="meilisearch",
        )

    async def initialize(self) -> None:
        """Open HTTP clients for the configured backends."""
        if self.primary is not None:
            await self.primary.initialize()
        await self.secondary.initialize()
        logger.info(
            "Search manager initialized",
            primary_enabled=self.primary is not None,
            fallback_on_empty=self.config.fallback_on_empty,
        )

    async def cleanup(self) -> None:
        """Close HTTP clients."""
        if self.primary is not None:
            await self.primary.cleanup()
        await self.secondary.cleanup()

    def build_filter_expression(
        self,
        formats: Sequence[str] = (),
        genres: Sequence[str] = (),
        genres_excluded: Sequence[str] = (),
        tags: Sequence[str] = (),
        tags_excluded: Sequence[str] = (),
    ) -> str:
        """Serialize the primary index filter for a request."""
        return build_filter(
            formats=formats,
            genres=genres,
            genres_excluded=genres_excluded,
            tags=tags,
            tags_excluded=tags_excluded,
        ).to_expression()

    async def search(
        self,
        query: str,
        media_type: str,
        page: int = 0,
        per_page: int = 10,
        genres: Sequence[str] = (),
        genres_excluded: Sequence[str] = (),
        tags: Sequence[str] = (),
        tags_excluded: Sequence[str] = (),
        formats: Sequence[str] = (),
    ) -> SearchResult:
        """Search the primary index, falling back to the backend API.

        Raises ``SecondaryBackendError`` when the fallback is needed and fails.
        """
        start_time = time.time()

        filter_expression = self.build_filter_expression(
            formats=formats,
            genres=genres,
            genres_excluded=genres_excluded,
            tags=tags,
            tags_excluded=tags_excluded,
        )

        outcome = await self.query_primary(
            query=query,
            media_type=media_type,
            page=page,
            per_page=per_page,
            filter_expression=filter_expression,
        )
        if self.metrics_collector:
            self.metrics_collector.record_primary_outcome(outcome.outcome)

        if self.should_fall_back(outcome):
            envelope = await self.query_fallback(
                query=query,
                media_type=media_type,
                page=page,
                per_page=per_page,
                genres=genres,
                genres_excluded=genres_excluded,
                tags=tags,
                tags_excluded=tags_excluded,
                formats=formats,
            )
            source = "fallback"
        else:
            envelope = outcome.envelope
            source = "primary"

        log_performance(
            "media_search",
            (time.time() - start_time) * 1000,
            source=source,
            primary_outcome=outcome.outcome,
        )
        return SearchResult(envelope=envelope, source=source, primary_outcome=outcome)

    async def query_primary(
        self,
        query: str,
        media_type: str,
        page: int,
        per_page: int,
        filter_expression: str,
    ) -> PrimaryOutcome:
        """Query the primary index and classify the result."""
        if self.primary is None:
            return PrimarySkipped()

        start_time = time.time()
        try:
            envelope = await self.primary_breaker.call(
                self.primary.search,
                index=media_type,
                query=query,
                limit=per_page,
                offset=page * per_page,
                filter_expression=filter_expression,
            )
        except CircuitBreakerError as e:
            logger.info("Primary index circuit open, skipping", query=query)
            return PrimaryError(e)
        except PrimaryIndexError as e:
            self._record_upstream("meilisearch", start_time)
            logger.warning(
                "Primary index query failed, falling back",
                query=query,
                type=media_type,
                status_code=e.status_code,
                error=str(e),
            )
            return PrimaryError(e)

        self._record_upstream("meilisearch", start_time)

        if not envelope["hits"]:
            logger.info("Primary index returned no hits", query=query, type=media_type)
            return PrimaryEmpty(envelope)
        return PrimaryHit(envelope)

    def should_fall_back(self, outcome: PrimaryOutcome) -> bool:
        """Whether a primary outcome needs the backend API to answer instead."""
        if isinstance(outcome, PrimaryHit):
            return False
        if isinstance(outcome, PrimaryEmpty):
            return self.config.fallback_on_empty
        return True

    async def query_fallback(
        self,
        query: str,
        media_type: str,
        page: int,
        per_page: int,
        genres: Sequence[str] = (),
        genres_excluded: Sequence[str] = (),
        tags: Sequence[str] = (),
        tags_excluded: Sequence[str] = (),
        formats: Sequence[str] = (),
    ) -> Dict[str, Any]:
        """Query the backend API and wrap its results in an envelope."""
        start_time = time.time()
        try:
            hits = await self.secondary.search_advanced(
                media_type=media_type,
                query=query,
                formats=formats,
                page=page,
                per_page=per_page,
                genres=genres,
                genres_excluded=genres_excluded,
                tags=tags,
                tags_excluded=tags_excluded,
                year=FALLBACK_YEAR,
            )
        except SecondaryBackendError as e:
            logger.error(
                "Fallback search failed",
                query=query,
                type=media_type,
                status_code=e.status_code,
                error=str(e),
            )
            raise
        finally:
            self._record_upstream("backend", start_time)

        return fallback_envelope(hits, query=query, page=page, per_page=per_page)

    def _record_upstream(self, backend: str, start_time: float) -> None:
        if self.metrics_collector:
            self.metrics_collector.record_upstream_call(backend, time.time() - start_time)

    async def health_check(self) -> Dict[str, Any]:
        """Report backend readiness.

        The service is healthy as long as the fallback can answer; the
        primary index status is informational.
        """
        secondary_ok = await self.secondary.health_check()

        if self.primary is None:
            primary_status = "disabled"
        elif await self.primary.health_check():
            primary_status = "available"
        else:
            primary_status = "unavailable"

        return {
            "healthy": secondary_ok,
            "primary": primary_status,
            "primary_circuit": self.primary_breaker.get_stats(),
        }
