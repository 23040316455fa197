"""API routes for the media search service."""

import time
from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Body, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from media_libs.search_backends.base import SecondaryBackendError
from ..pipeline.envelope import SearchEnvelope
from ..pipeline.search_manager import SearchManager

logger = structlog.get_logger("search_service.api")

router = APIRouter()

MISSING_QUERY_MESSAGE = "Missing query."
MISSING_TYPE_MESSAGE = "Missing type (anime/manga)."
KNOWN_MEDIA_TYPES = ("anime", "manga")


class SearchRequest(BaseModel):
    """Request model for the search endpoint.

    ``null`` for any optional field means its default.
    """

    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(..., description="Search query")
    type: str = Field(..., description="Media type: anime or manga")
    page: int = Field(0, description="Zero-based page number")
    per_page: int = Field(10, alias="perPage", description="Results per page")
    genres: List[str] = Field(default_factory=list, description="Genres to include")
    genres_excluded: List[str] = Field(default_factory=list, alias="genresExcluded", description="Genres to exclude")
    tags: List[str] = Field(default_factory=list, description="Tags to include")
    tags_excluded: List[str] = Field(default_factory=list, alias="tagsExcluded", description="Tags to exclude")
    formats: List[str] = Field(default_factory=list, description="Media formats, e.g. TV, OVA, NOVEL")

    @field_validator(
        "page", "per_page", "genres", "genres_excluded", "tags", "tags_excluded", "formats",
        mode="before",
    )
    @classmethod
    def _null_means_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)
        return value


class ErrorMessage(BaseModel):
    """Error body returned for rejected or failed searches."""
    message: str = Field(..., description="Human-readable error")


def get_search_manager(request: Request) -> SearchManager:
    """Get search manager from application state."""
    return request.app.state.search_manager


def get_metrics(request: Request):
    """Get metrics collector from application state."""
    return request.app.state.metrics_collector


@router.post(
    "/search",
    responses={
        200: {"model": SearchEnvelope},
        400: {"model": ErrorMessage},
        502: {"model": ErrorMessage},
    },
    openapi_extra={
        "requestBody": {
            "content": {"application/json": {"schema": SearchRequest.model_json_schema()}}
        }
    },
)
async def search(
    payload: Optional[Dict[str, Any]] = Body(None),
    search_manager: SearchManager = Depends(get_search_manager),
    metrics_collector = Depends(get_metrics)
):
    """Search anime or manga.

    Answers from the primary index when it has hits, otherwise from the
    backend API. Either way the body is a search envelope.

    ``query`` and ``type`` are checked on the raw body first, so a request
    missing either gets its own message even if other fields are malformed.
    """
    payload = payload or {}

    if not payload.get("query"):
        return JSONResponse(status_code=400, content={"message": MISSING_QUERY_MESSAGE})
    if not payload.get("type"):
        return JSONResponse(status_code=400, content={"message": MISSING_TYPE_MESSAGE})

    try:
        request = SearchRequest.model_validate(payload)
    except ValidationError as e:
        errors = [
            {**error, "loc": ("body", *error["loc"])}
            for error in e.errors(include_url=False)
        ]
        raise RequestValidationError(errors, body=payload) from e

    start_time = time.time()

    try:
        result = await search_manager.search(
            query=request.query,
            media_type=request.type,
            page=request.page,
            per_page=request.per_page,
            genres=request.genres,
            genres_excluded=request.genres_excluded,
            tags=request.tags,
            tags_excluded=request.tags_excluded,
            formats=request.formats,
        )
    except SecondaryBackendError as e:
        logger.error("Search failed", query=request.query, type=request.type, error=str(e))
        raise

    duration = time.time() - start_time
    media_type_label = request.type if request.type in KNOWN_MEDIA_TYPES else "other"
    metrics_collector.record_search(
        media_type=media_type_label,
        source=result.source,
        duration=duration
    )

    logger.info(
        "Search completed",
        query=request.query,
        type=request.type,
        source=result.source,
        primary_outcome=result.primary_outcome.outcome,
        results_count=len(result.envelope.get("hits") or []),
        latency_ms=duration * 1000
    )

    return JSONResponse(status_code=200, content=result.envelope)
