"""
Query Builder

Turns a ``QueryFilter`` into a ``QueryDescriptor`` for the audit records
table. The index is chosen from which key fields are present:

    subjectId + systemId  -> SubjectSystemIndex  (PK=subjectId, SK=systemId)
    subjectId only        -> SubjectIndex        (PK=subjectId, SK=timestamp)
    systemId only         -> SystemIndex         (PK=systemId,  SK=timestamp)

Key fields go into the KeyConditionExpression; the time range and resource
id are residual FilterExpression clauses, applied by DynamoDB after the key
lookup. Building is pure: the same filter always yields the same descriptor.
"""

import logging
from typing import Dict, List, Optional

from ..models.attribute_value import AttributeValue, to_wire
from ..models.filters import DEFAULT_MAX_IDENTIFIER_LENGTH, QueryFilter
from ..models.results import QueryDescriptor
from ..utils import build_projection_expression, format_timestamp

logger = logging.getLogger(__name__)

SUBJECT_SYSTEM_INDEX = "SubjectSystemIndex"
SUBJECT_INDEX = "SubjectIndex"
SYSTEM_INDEX = "SystemIndex"

SUBJECT_ID_ATTR = "subjectId"
SYSTEM_ID_ATTR = "systemId"
RESOURCE_ID_ATTR = "resourceId"
TIMESTAMP_ATTR = "timestamp"

# "timestamp" is a DynamoDB reserved word
TIMESTAMP_PLACEHOLDER = "#timestamp"


class QueryBuilder:
    """Builds backend query descriptors for one table."""

    def __init__(self, table_name: str, max_identifier_length: int = DEFAULT_MAX_IDENTIFIER_LENGTH):
        """Initialize builder.

        Args:
            table_name: Fully qualified table name
            max_identifier_length: Longest subject/system/resource id accepted
        """
        self.table_name = table_name
        self.max_identifier_length = max_identifier_length

    def build(self, query_filter: QueryFilter) -> QueryDescriptor:
        """Build the descriptor for ``query_filter``.

        Raises:
            InvalidFilterError: If the filter breaks the key or time-range rules
        """
        query_filter.validate_for_query(self.max_identifier_length)

        values: Dict[str, AttributeValue] = {}
        names: Dict[str, str] = {}

        index_name = self.select_index(query_filter)
        key_condition = self._build_key_condition(query_filter, values)
        filter_expression = self._build_filter_expression(query_filter, values, names)
        projection_expression = self._build_projection(query_filter.projection, names)

        descriptor = QueryDescriptor(
            table_name=self.table_name,
            index_name=index_name,
            key_condition_expression=key_condition,
            filter_expression=filter_expression,
            expression_attribute_values=values,
            expression_attribute_names=names or None,
            limit=query_filter.limit,
            exclusive_start_key=query_filter.exclusive_start_key,
            scan_index_forward=True if query_filter.scan_forward is None else query_filter.scan_forward,
            projection_expression=projection_expression,
        )
        logger.debug(
            f"Built query on {self.table_name} index={index_name} "
            f"key='{key_condition}' filter='{filter_expression}'"
        )
        return descriptor

    @staticmethod
    def select_index(query_filter: QueryFilter) -> str:
        if query_filter.subject_id and query_filter.system_id:
            return SUBJECT_SYSTEM_INDEX
        if query_filter.subject_id:
            return SUBJECT_INDEX
        return SYSTEM_INDEX

    @staticmethod
    def _build_key_condition(query_filter: QueryFilter, values: Dict[str, AttributeValue]) -> str:
        clauses: List[str] = []

        if query_filter.subject_id:
            clauses.append(f"{SUBJECT_ID_ATTR} = :subjectId")
            values[':subjectId'] = to_wire(query_filter.subject_id)

        if query_filter.system_id:
            clauses.append(f"{SYSTEM_ID_ATTR} = :systemId")
            values[':systemId'] = to_wire(query_filter.system_id)

        return " AND ".join(clauses)

    @staticmethod
    def _build_filter_expression(
        query_filter: QueryFilter,
        values: Dict[str, AttributeValue],
        names: Dict[str, str],
    ) -> Optional[str]:
        clauses: List[str] = []

        if query_filter.start_date is not None:
            clauses.append(f"{TIMESTAMP_PLACEHOLDER} >= :startDate")
            values[':startDate'] = to_wire(format_timestamp(query_filter.start_date))

        if query_filter.end_date is not None:
            clauses.append(f"{TIMESTAMP_PLACEHOLDER} <= :endDate")
            values[':endDate'] = to_wire(format_timestamp(query_filter.end_date))

        if query_filter.resource_id:
            clauses.append(f"{RESOURCE_ID_ATTR} = :resourceId")
            values[':resourceId'] = to_wire(query_filter.resource_id)

        if not clauses:
            return None

        if query_filter.start_date is not None or query_filter.end_date is not None:
            names[TIMESTAMP_PLACEHOLDER] = TIMESTAMP_ATTR
        return " AND ".join(clauses)

    @staticmethod
    def _build_projection(projection, names: Dict[str, str]) -> Optional[str]:
        # A string is a caller-written expression and passes through untouched
        if not projection:
            return None
        if isinstance(projection, str):
            return projection

        expression, projection_names = build_projection_expression(projection)
        names.update(projection_names or {})
        return expression
