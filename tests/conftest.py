"""Shared fixtures for the media search tests."""

from typing import Any, List, Optional

import pytest
import pytest_asyncio
from prometheus_client import CollectorRegistry

from media_libs.common.config import SearchConfig
from media_libs.common.metrics import MetricsCollector
from media_search.pipeline.search_manager import SearchManager
from tests.fakes import FakeUpstreams, make_config


@pytest.fixture
def upstreams() -> FakeUpstreams:
    return FakeUpstreams()


@pytest.fixture
def metrics_collector() -> MetricsCollector:
    return MetricsCollector("test-service", registry=CollectorRegistry())


@pytest.fixture
def config() -> SearchConfig:
    return make_config()


@pytest_asyncio.fixture
async def manager_factory(upstreams, metrics_collector):
    """Build initialized ``SearchManager`` instances wired to fake upstreams."""
    created: List[SearchManager] = []

    async def factory(config: Optional[SearchConfig] = None, **overrides: Any) -> SearchManager:
        manager = SearchManager(
            config or make_config(**overrides),
            metrics_collector=metrics_collector,
            transport=upstreams.transport(),
        )
        await manager.initialize()
        created.append(manager)
        return manager

    yield factory

    for manager in created:
        await manager.cleanup()


@pytest_asyncio.fixture
async def manager(manager_factory, config) -> SearchManager:
    return await manager_factory(config)
