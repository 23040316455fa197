"""The paginated search envelope returned by the search endpoint."""

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class SearchEnvelope(BaseModel):
    """Paginated search response.

    This is Meilisearch's native response shape; results from the fallback
    backend are wrapped into it. ``hits`` are media records passed through
    without inspection.
    """

    model_config = ConfigDict(populate_by_name=True)

    hits: List[Any] = Field(default_factory=list, description="Media records")
    query: str = Field(..., description="Original query")
    processing_time_ms: int = Field(0, alias="processingTimeMs", description="Upstream processing time")
    limit: int = Field(..., description="Page size")
    offset: int = Field(..., description="Index of the first hit")
    estimated_total_hits: int = Field(..., alias="estimatedTotalHits", description="Estimated number of matches")


def fallback_envelope(hits: List[Any], query: str, page: int, per_page: int) -> Dict[str, Any]:
    """Wrap the backend's flat result list into a search envelope.

    The backend reports no timing or totals, so ``processingTimeMs`` is 0 and
    ``estimatedTotalHits`` is the length of the returned page.
    """
    envelope = SearchEnvelope(
        hits=hits,
        query=query,
        processing_time_ms=0,
        limit=per_page,
        offset=page * per_page,
        estimated_total_hits=len(hits),
    )
    return envelope.model_dump(by_alias=True)
