"""
Read API View Models

These are the shapes handed to the transport layer. Rows are plain Python
values (decoded from tagged attribute values) and the continuation key is
reduced to an opaque token, so callers never see the backend key schema.

Field aliases match the JSON the HTTP layer returns (``items``,
``hasMoreResults``, ``totalItems``, ``continuationToken``); dump with
``model_dump(by_alias=True)``.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .results import AggregatedResult, PageResult, PaginationStopReason


class QueryResponse(BaseModel):
    """One page of query results."""

    items: List[Dict[str, Any]] = Field(default_factory=list, description="Decoded result rows")
    has_more_results: bool = Field(False, alias="hasMoreResults", description="Whether another page is available")
    total_items: int = Field(0, alias="totalItems", description="Number of rows in this response")
    continuation_token: Optional[str] = Field(None, alias="continuationToken", description="Opaque token for the next page")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_page(cls, page: PageResult) -> 'QueryResponse':
        return cls(
            items=page.to_python_items(),
            has_more_results=page.has_more_results,
            total_items=page.total_items,
            continuation_token=page.continuation_token,
        )


class QueryAllResponse(QueryResponse):
    """Rows accumulated across pages by ``query_all``."""

    pages_fetched: int = Field(0, alias="pagesFetched", description="Backend round trips (cached pages included)")
    stop_reason: PaginationStopReason = Field(
        PaginationStopReason.EXHAUSTED, alias="stopReason", description="Why pagination stopped"
    )

    @classmethod
    def from_aggregate(cls, result: AggregatedResult) -> 'QueryAllResponse':
        return cls(
            items=result.to_python_items(),
            has_more_results=result.has_more_results,
            total_items=result.total_items,
            continuation_token=result.continuation_token,
            pages_fetched=result.pages_fetched,
            stop_reason=result.stop_reason,
        )
