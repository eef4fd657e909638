"""
Filter request model for audit record queries.

A ``QueryFilter`` is built once per incoming request and never mutated.
Field-level rules (types, blank ids, UTC normalization) run at construction
through pydantic; the cross-field invariant and the configured identifier
length limit are checked by ``validate_for_query``,
which the query builder calls before producing a descriptor.
"""

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..exceptions import AttributeCodecError, InvalidFilterError
from ..utils import to_utc
from .attribute_value import AttributeValue, item_from_dynamodb

logger = logging.getLogger(__name__)

DEFAULT_MAX_IDENTIFIER_LENGTH = 100


class QueryFilter(BaseModel):
    """Partially-populated filter over the audit records table.

    At least one of ``subject_id`` / ``system_id`` must be present, and the
    time range must be given as both bounds or not at all.
    """

    subject_id: Optional[str] = Field(None, alias="subjectId", description="Identity that performed the action")
    system_id: Optional[str] = Field(None, alias="systemId", description="Owning system identity")
    resource_id: Optional[str] = Field(None, alias="resourceId", description="Affected resource identity")

    start_date: Optional[datetime] = Field(None, alias="startDate", description="Inclusive lower time bound (UTC)")
    end_date: Optional[datetime] = Field(None, alias="endDate", description="Inclusive upper time bound (UTC)")

    limit: Optional[int] = Field(None, gt=0, description="Requested page size")
    scan_forward: Optional[bool] = Field(None, alias="scanForward", description="Ascending sort-key order when true")
    projection: Optional[Union[str, List[str]]] = Field(None, description="Projection expression or attribute names")
    exclusive_start_key: Optional[Dict[str, AttributeValue]] = Field(
        None, alias="exclusiveStartKey", description="Backend continuation key to resume from"
    )

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator('subject_id', 'system_id', 'resource_id', mode='before')
    @classmethod
    def normalize_identifier(cls, v):
        """Strip identifiers and treat blank values as absent."""
        if v is None:
            return None
        if not isinstance(v, str):
            raise ValueError("Identifier must be a string")
        v = v.strip()
        return v or None

    @field_validator('start_date', 'end_date')
    @classmethod
    def normalize_timestamp(cls, v):
        # Naive datetimes are taken as UTC
        return to_utc(v)

    @field_validator('exclusive_start_key', mode='before')
    @classmethod
    def parse_start_key(cls, v):
        """Accept a wire-form key as returned by the low-level client."""
        if not v:
            return None
        if isinstance(v, Mapping) and all(isinstance(x, Mapping) and 'type' not in x for x in v.values()):
            try:
                return item_from_dynamodb(v)
            except AttributeCodecError as e:
                raise ValueError(str(e)) from e
        return v

    @field_validator('projection')
    @classmethod
    def normalize_projection(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        if isinstance(v, list):
            fields = [f.strip() for f in v if f and f.strip()]
            return fields or None
        return v

    @classmethod
    def parse(cls, data: Union['QueryFilter', Mapping]) -> 'QueryFilter':
        """Build a filter from a request mapping (camelCase or snake_case keys).

        Raises:
            InvalidFilterError: If any field fails validation
        """
        if isinstance(data, cls):
            return data
        if not isinstance(data, Mapping):
            raise InvalidFilterError(f"Filter must be a mapping, got {type(data).__name__}")
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            errors = {".".join(str(p) for p in err['loc']) or "filter": err['msg'] for err in e.errors()}
            logger.debug(f"Rejected filter request: {errors}")
            raise InvalidFilterError("Invalid filter request", errors=errors, original_error=e) from e

    def validate_for_query(self, max_identifier_length: int = DEFAULT_MAX_IDENTIFIER_LENGTH) -> None:
        """Check the cross-field invariant.

        Args:
            max_identifier_length: Configured identifier length limit

        Raises:
            InvalidFilterError: If neither subject nor system id is present,
                only one time bound is present, or end precedes start
        """
        errors: Dict[str, Any] = {}

        if not self.subject_id and not self.system_id:
            errors['subjectId'] = "Either subjectId or systemId is required"

        if (self.start_date is None) != (self.end_date is None):
            errors['dateRange'] = "startDate and endDate must be provided together"
        elif self.start_date is not None and self.end_date < self.start_date:
            errors['endDate'] = "endDate must be on or after startDate"

        for field_name, alias in (('subject_id', 'subjectId'), ('system_id', 'systemId'), ('resource_id', 'resourceId')):
            value = getattr(self, field_name)
            if value and len(value) > max_identifier_length:
                errors[alias] = f"Must be at most {max_identifier_length} characters"

        if errors:
            raise InvalidFilterError("Invalid filter request", errors=errors)

    def with_page(self, limit: Optional[int] = None, exclusive_start_key: Optional[Dict[str, AttributeValue]] = None) -> 'QueryFilter':
        """Return a copy with a different page size and/or start key."""
        update: Dict[str, Any] = {}
        if limit is not None:
            update['limit'] = limit
        if exclusive_start_key is not None:
            update['exclusive_start_key'] = exclusive_start_key
        return self.model_copy(update=update) if update else self
