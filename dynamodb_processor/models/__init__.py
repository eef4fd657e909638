# Attribute codec (tagged DynamoDB values)
from .attribute_value import (
    AttributeType,
    AttributeValue,
    deserialize_item,
    from_wire,
    item_from_dynamodb,
    item_to_dynamodb,
    serialize_item,
    to_wire,
)

# Filter request
from .filters import QueryFilter

# Descriptor and results
from .results import (
    AggregatedResult,
    PageResult,
    PaginationStopReason,
    QueryDescriptor,
    Row,
)

# Read API views
from .views import QueryAllResponse, QueryResponse

__all__ = [
    # Attribute codec
    "AttributeType",
    "AttributeValue",
    "deserialize_item",
    "from_wire",
    "item_from_dynamodb",
    "item_to_dynamodb",
    "serialize_item",
    "to_wire",

    # Filter request
    "QueryFilter",

    # Descriptor and results
    "AggregatedResult",
    "PageResult",
    "PaginationStopReason",
    "QueryDescriptor",
    "Row",

    # Views
    "QueryAllResponse",
    "QueryResponse",
]
