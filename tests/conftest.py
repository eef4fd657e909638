"""
Test configuration and fixtures for the query processor.

Provides configuration, fake collaborators and moto-mocked AWS resources.
"""

import sys
from pathlib import Path

# Add parent directory to path so we can import dynamodb_processor
sys.path.insert(0, str(Path(__file__).parent.parent))

import boto3
import pytest
from moto import mock_aws

from dynamodb_processor import DynamoDBConfig, InMemoryResultCache, QueryLimits
from dynamodb_processor.core import reset_shared_cache
from tests.helpers import FakeClock, RecordingMetricsSink, ScriptedStoreClient

AUDIT_TABLE_NAME = 'test_audit_records'


@pytest.fixture(autouse=True)
def aws_test_environment(monkeypatch):
    """Keep tests away from real credentials and the shared cache of other tests."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')
    for name in ('DYNAMODB_ENDPOINT_URL', 'DYNAMODB_TABLE_PREFIX', 'ENVIRONMENT',
                 'DYNAMODB_DEBUG_LOGGING', 'DYNAMODB_METRICS_ENABLED', 'DYNAMODB_METRICS_NAMESPACE'):
        monkeypatch.delenv(name, raising=False)
    reset_shared_cache()
    yield
    reset_shared_cache()


@pytest.fixture
def mock_dynamodb_config():
    """Configuration for moto-backed tests (table name: test_audit_records)."""
    return DynamoDBConfig(
        aws_access_key_id="test_key",
        aws_secret_access_key="test_secret",
        region_name="us-east-1",
        endpoint_url=None,  # Use default AWS endpoint for moto
        environment="test",
        table_prefix="",
        enable_metrics=False,
        limits=QueryLimits(page_delay_ms=0)
    )


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def metrics_sink():
    return RecordingMetricsSink()


@pytest.fixture
def result_cache(fake_clock):
    return InMemoryResultCache(max_size=100, default_ttl_seconds=300.0, clock=fake_clock)


@pytest.fixture
def scripted_store():
    return ScriptedStoreClient()


@pytest.fixture
def mock_dynamodb_client():
    """Mock DynamoDB client."""
    with mock_aws():
        yield boto3.client('dynamodb', region_name='us-east-1')


@pytest.fixture
def audit_records_table(mock_dynamodb_client):
    """Create the audit records table with its three GSIs."""
    throughput = {'ReadCapacityUnits': 5, 'WriteCapacityUnits': 5}
    mock_dynamodb_client.create_table(
        TableName=AUDIT_TABLE_NAME,
        KeySchema=[
            {'AttributeName': 'recordId', 'KeyType': 'HASH'}
        ],
        AttributeDefinitions=[
            {'AttributeName': 'recordId', 'AttributeType': 'S'},
            {'AttributeName': 'subjectId', 'AttributeType': 'S'},
            {'AttributeName': 'systemId', 'AttributeType': 'S'},
            {'AttributeName': 'timestamp', 'AttributeType': 'S'}
        ],
        GlobalSecondaryIndexes=[
            {
                'IndexName': 'SubjectSystemIndex',
                'KeySchema': [
                    {'AttributeName': 'subjectId', 'KeyType': 'HASH'},
                    {'AttributeName': 'systemId', 'KeyType': 'RANGE'}
                ],
                'Projection': {'ProjectionType': 'ALL'},
                'ProvisionedThroughput': throughput
            },
            {
                'IndexName': 'SubjectIndex',
                'KeySchema': [
                    {'AttributeName': 'subjectId', 'KeyType': 'HASH'},
                    {'AttributeName': 'timestamp', 'KeyType': 'RANGE'}
                ],
                'Projection': {'ProjectionType': 'ALL'},
                'ProvisionedThroughput': throughput
            },
            {
                'IndexName': 'SystemIndex',
                'KeySchema': [
                    {'AttributeName': 'systemId', 'KeyType': 'HASH'},
                    {'AttributeName': 'timestamp', 'KeyType': 'RANGE'}
                ],
                'Projection': {'ProjectionType': 'ALL'},
                'ProvisionedThroughput': throughput
            }
        ],
        BillingMode='PROVISIONED',
        ProvisionedThroughput=throughput
    )
    return AUDIT_TABLE_NAME
