"""
Query descriptor and result models.

- ``QueryDescriptor``: everything needed for one low-level DynamoDB Query call
- ``PageResult``: one backend round trip, normalized
- ``AggregatedResult``: several pages concatenated by the pagination driver

Rows and keys stay in tagged ``AttributeValue`` form inside the core; they
are decoded to plain Python values only at the read API boundary.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .attribute_value import AttributeValue, deserialize_item, item_to_dynamodb

Row = Dict[str, AttributeValue]


class QueryDescriptor(BaseModel):
    """Backend query derived deterministically from a filter."""

    table_name: str
    index_name: str
    key_condition_expression: str
    filter_expression: Optional[str] = None
    expression_attribute_values: Dict[str, AttributeValue] = Field(default_factory=dict)
    expression_attribute_names: Optional[Dict[str, str]] = None
    limit: Optional[int] = None
    exclusive_start_key: Optional[Row] = None
    scan_index_forward: bool = True
    projection_expression: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    def to_query_kwargs(self) -> Dict[str, Any]:
        """Render as keyword arguments for ``client.query``."""
        kwargs: Dict[str, Any] = {
            'TableName': self.table_name,
            'IndexName': self.index_name,
            'KeyConditionExpression': self.key_condition_expression,
            'ExpressionAttributeValues': item_to_dynamodb(self.expression_attribute_values),
            'ScanIndexForward': self.scan_index_forward,
        }
        if self.filter_expression:
            kwargs['FilterExpression'] = self.filter_expression
        if self.expression_attribute_names:
            kwargs['ExpressionAttributeNames'] = dict(self.expression_attribute_names)
        if self.limit:
            kwargs['Limit'] = self.limit
        if self.exclusive_start_key:
            kwargs['ExclusiveStartKey'] = item_to_dynamodb(self.exclusive_start_key)
        if self.projection_expression:
            kwargs['ProjectionExpression'] = self.projection_expression
        return kwargs


class PageResult(BaseModel):
    """Items from a single backend round trip."""

    items: List[Row] = Field(default_factory=list)
    last_evaluated_key: Optional[Row] = None
    has_more_results: bool = False
    total_items: int = 0

    model_config = ConfigDict(frozen=True)

    @property
    def continuation_token(self) -> Optional[str]:
        """Opaque token for the next page, or None when exhausted."""
        from ..utils import encode_cursor
        return encode_cursor(self.last_evaluated_key) if self.last_evaluated_key else None

    def to_python_items(self) -> List[Dict[str, Any]]:
        return [deserialize_item(row) for row in self.items]


class PaginationStopReason(str, Enum):
    """Why the pagination driver stopped fetching pages."""
    EXHAUSTED = "exhausted"
    CAP_REACHED = "cap_reached"


class AggregatedResult(PageResult):
    """Pages concatenated up to an item cap.

    Whole pages are kept, so ``total_items`` can exceed the requested cap by
    at most one page.
    """

    pages_fetched: int = 0
    stop_reason: PaginationStopReason = PaginationStopReason.EXHAUSTED
