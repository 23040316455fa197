"""Tests for the search HTTP API."""

import httpx
import pytest
import pytest_asyncio

from media_search.main import app
from tests.fakes import SAMPLE_ITEM, meili_envelope


@pytest_asyncio.fixture
async def client(manager, metrics_collector):
    """ASGI client with the app state wired to fake upstreams."""
    app.state.search_manager = manager
    app.state.metrics_collector = metrics_collector
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.mark.asyncio
async def test_missing_query(client, upstreams):
    response = await client.post("/api/v1/search", json={"type": "anime"})
    assert response.status_code == 400
    assert response.json() == {"message": "Missing query."}
    assert upstreams.requests == []


@pytest.mark.asyncio
async def test_empty_query_counts_as_missing(client):
    response = await client.post("/api/v1/search", json={"query": "", "type": "anime"})
    assert response.status_code == 400
    assert response.json() == {"message": "Missing query."}


@pytest.mark.asyncio
async def test_missing_body_counts_as_missing_query(client):
    response = await client.post("/api/v1/search")
    assert response.status_code == 400
    assert response.json() == {"message": "Missing query."}


@pytest.mark.asyncio
async def test_missing_type(client, upstreams):
    response = await client.post("/api/v1/search", json={"query": "one piece"})
    assert response.status_code == 400
    assert response.json() == {"message": "Missing type (anime/manga)."}
    assert upstreams.requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body,message",
    [
        ({"type": "anime", "page": "x"}, "Missing query."),
        ({"query": "", "type": "anime", "genres": "Action"}, "Missing query."),
        ({"query": "one piece", "perPage": "ten"}, "Missing type (anime/manga)."),
    ],
)
async def test_missing_fields_win_over_malformed_ones(client, upstreams, body, message):
    response = await client.post("/api/v1/search", json=body)
    assert response.status_code == 400
    assert response.json() == {"message": message}
    assert upstreams.requests == []


@pytest.mark.asyncio
async def test_malformed_field_is_rejected(client, upstreams):
    response = await client.post(
        "/api/v1/search", json={"query": "one piece", "type": "anime", "page": "first"}
    )
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Invalid request body."
    assert body["detail"][0]["loc"] == ["body", "page"]
    assert upstreams.requests == []


@pytest.mark.asyncio
async def test_primary_envelope_returned_verbatim(client, upstreams):
    raw = meili_envelope([SAMPLE_ITEM], limit=5, offset=5)
    upstreams.primary = (200, raw)

    response = await client.post(
        "/api/v1/search",
        json={"query": "one piece", "type": "anime", "page": 1, "perPage": 5, "formats": ["TV", "OVA"], "genres": ["Action"]},
    )

    assert response.status_code == 200
    assert response.json() == raw
    assert upstreams.body(upstreams.primary_requests()[0]) == {
        "q": "one piece",
        "limit": 5,
        "offset": 5,
        "filter": "(format = TV OR format = OVA) AND (genres = Action)",
    }


@pytest.mark.asyncio
async def test_fallback_envelope_on_empty_primary(client, upstreams):
    backend_hits = [{"id": "1"}, {"id": "2"}, {"id": "3"}]
    upstreams.primary = (200, meili_envelope([]))
    upstreams.backend = (200, backend_hits)

    response = await client.post(
        "/api/v1/search", json={"query": "bleach", "type": "anime", "page": 2, "perPage": 3}
    )

    assert response.status_code == 200
    assert response.json() == {
        "hits": backend_hits,
        "query": "bleach",
        "processingTimeMs": 0,
        "limit": 3,
        "offset": 6,
        "estimatedTotalHits": 3,
    }


@pytest.mark.asyncio
async def test_defaults_and_nulls(client, upstreams):
    upstreams.primary = httpx.ConnectError("refused")
    upstreams.backend = (200, [])

    response = await client.post(
        "/api/v1/search",
        json={"query": "x", "type": "manga", "page": None, "perPage": None, "formats": None},
    )

    assert response.status_code == 200
    assert response.json()["limit"] == 10
    assert response.json()["offset"] == 0
    body = upstreams.body(upstreams.backend_requests()[0])
    assert body["page"] == 0
    assert body["perPage"] == 10
    assert body["format"] == []
    assert body["genres"] == []
    assert body["type"] == "manga"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "media_type,formats,expected",
    [
        ("manga", ["NOVEL"], "novel"),
        ("manga", ["MANGA"], "manga"),
        ("anime", ["TV"], "anime"),
    ],
)
async def test_backend_type_mapping(client, upstreams, media_type, formats, expected):
    upstreams.primary = (200, meili_envelope([]))
    upstreams.backend = (200, [])

    response = await client.post(
        "/api/v1/search", json={"query": "x", "type": media_type, "formats": formats}
    )

    assert response.status_code == 200
    assert upstreams.body(upstreams.backend_requests()[0])["type"] == expected


@pytest.mark.asyncio
async def test_backend_failure_is_bad_gateway(client, upstreams):
    upstreams.primary = (500, {"message": "down"})
    upstreams.backend = httpx.ConnectError("refused")

    response = await client.post("/api/v1/search", json={"query": "x", "type": "anime"})

    assert response.status_code == 502
    assert response.json() == {"message": "Search backend unavailable."}


@pytest.mark.asyncio
async def test_legacy_path(client):
    response = await client.post("/api/search", json={"query": "one piece", "type": "anime"})
    assert response.status_code == 200
    assert response.json()["hits"] == [SAMPLE_ITEM]


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "service": "media-search-service",
        "primary": "available",
        "primary_circuit": {
            "name": "meilisearch",
            "state": "closed",
            "failure_count": 0,
            "failure_threshold": 5,
            "last_failure_time": None,
            "recovery_timeout": 30.0,
        },
    }


@pytest.mark.asyncio
async def test_metrics_endpoint(client):
    await client.post("/api/v1/search", json={"query": "one piece", "type": "anime"})
    response = await client.get("/metrics")

    assert response.status_code == 200
    assert 'media_search_requests_total{media_type="anime",source="primary"} 1.0' in response.text
    assert "http_requests_total" in response.text


@pytest.mark.asyncio
async def test_process_time_header_and_root(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["endpoints"]["search"] == "/api/v1/search"
    assert "X-Process-Time" in response.headers
