"""
Tests for the filter request model (models/filters.py)
"""

from datetime import datetime, timedelta, timezone

import pytest

from dynamodb_processor.exceptions import InvalidFilterError
from dynamodb_processor.models import AttributeValue, QueryFilter


class TestParse:
    """Request mapping -> QueryFilter."""

    def test_camel_case_keys(self):
        query_filter = QueryFilter.parse({
            'subjectId': 'user123',
            'systemId': 'billing',
            'resourceId': 'invoice-1',
            'startDate': '2024-01-01T00:00:00Z',
            'endDate': '2024-01-02T00:00:00Z',
            'limit': 50,
            'scanForward': False,
            'projection': ['recordId', 'timestamp'],
        })

        assert query_filter.subject_id == 'user123'
        assert query_filter.system_id == 'billing'
        assert query_filter.resource_id == 'invoice-1'
        assert query_filter.start_date == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert query_filter.limit == 50
        assert query_filter.scan_forward is False
        assert query_filter.projection == ['recordId', 'timestamp']

    def test_snake_case_keys(self):
        query_filter = QueryFilter.parse({'subject_id': 'user123', 'scan_forward': True})

        assert query_filter.subject_id == 'user123'
        assert query_filter.scan_forward is True

    def test_instance_passes_through(self):
        query_filter = QueryFilter(subject_id='user123')
        assert QueryFilter.parse(query_filter) is query_filter

    def test_non_mapping_rejected(self):
        with pytest.raises(InvalidFilterError, match="must be a mapping"):
            QueryFilter.parse(["user123"])

    @pytest.mark.parametrize("data,field", [
        ({'subjectId': 'u', 'limit': 0}, 'limit'),
        ({'subjectId': 'u', 'limit': 'many'}, 'limit'),
        ({'subjectId': 'u', 'startDate': 'yesterday'}, 'startDate'),
        ({'subjectId': 42}, 'subjectId'),
    ])
    def test_field_errors(self, data, field):
        with pytest.raises(InvalidFilterError) as exc_info:
            QueryFilter.parse(data)

        assert any(field in key for key in exc_info.value.errors)
        assert exc_info.value.status_code == 400

    def test_wire_form_start_key(self):
        query_filter = QueryFilter.parse({
            'subjectId': 'user123',
            'exclusiveStartKey': {'recordId': {'S': 'rec-1'}, 'subjectId': {'S': 'user123'}},
        })

        assert query_filter.exclusive_start_key == {
            'recordId': AttributeValue.string('rec-1'),
            'subjectId': AttributeValue.string('user123'),
        }

    def test_malformed_start_key_rejected(self):
        with pytest.raises(InvalidFilterError):
            QueryFilter.parse({'subjectId': 'u', 'exclusiveStartKey': {'recordId': {'Q': 'x'}}})

    @pytest.mark.parametrize("key", [
        {'recordId': {'L': 5}},
        {'recordId': {'SS': 5}},
        {'recordId': {'M': [1]}},
    ])
    def test_start_key_with_wrong_payload_shape_rejected(self, key):
        with pytest.raises(InvalidFilterError) as exc_info:
            QueryFilter.parse({'subjectId': 'u', 'exclusiveStartKey': key})

        assert exc_info.value.errors


class TestNormalization:
    def test_identifiers_are_stripped(self):
        query_filter = QueryFilter(subject_id='  user123 ', system_id='   ')

        assert query_filter.subject_id == 'user123'
        assert query_filter.system_id is None

    def test_naive_timestamps_are_utc(self):
        query_filter = QueryFilter(subject_id='u', start_date=datetime(2024, 5, 1, 12, 0))
        assert query_filter.start_date.tzinfo == timezone.utc

    def test_aware_timestamps_are_converted(self):
        eastern = timezone(timedelta(hours=-5))
        query_filter = QueryFilter(subject_id='u', end_date=datetime(2024, 5, 1, 12, 0, tzinfo=eastern))
        assert query_filter.end_date == datetime(2024, 5, 1, 17, 0, tzinfo=timezone.utc)

    def test_blank_projection_is_absent(self):
        assert QueryFilter(subject_id='u', projection='  ').projection is None
        assert QueryFilter(subject_id='u', projection=['', ' ']).projection is None

    def test_filter_is_immutable(self):
        query_filter = QueryFilter(subject_id='u')
        with pytest.raises(Exception):
            query_filter.subject_id = 'other'


class TestValidateForQuery:
    def test_valid_filter(self):
        QueryFilter(system_id='billing').validate_for_query()

    def test_equal_bounds_are_valid(self):
        moment = datetime(2024, 1, 1, tzinfo=timezone.utc)
        QueryFilter(subject_id='u', start_date=moment, end_date=moment).validate_for_query()

    def test_collects_every_error(self):
        query_filter = QueryFilter(resource_id='x' * 101, start_date=datetime(2024, 1, 1))

        with pytest.raises(InvalidFilterError) as exc_info:
            query_filter.validate_for_query()

        assert set(exc_info.value.errors) == {'subjectId', 'dateRange', 'resourceId'}

    def test_with_page(self):
        query_filter = QueryFilter(subject_id='u', limit=10)
        key = {'recordId': AttributeValue.string('rec-1')}

        assert query_filter.with_page() is query_filter
        paged = query_filter.with_page(limit=25, exclusive_start_key=key)
        assert paged.limit == 25
        assert paged.exclusive_start_key == key
        assert query_filter.limit == 10
