"""
Observability sink for query metrics.

``MetricsSink`` is fire-and-forget: the base class records nothing, and
``CloudWatchMetricsSink`` publishes to CloudWatch but logs and swallows every
failure, so metrics can never change the outcome of a query.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

import boto3
from botocore.config import Config

from ..config import DynamoDBConfig

logger = logging.getLogger(__name__)


class MetricsSink:
    """No-op metrics sink; subclasses publish somewhere."""

    def record_count(self, name: str, value: float = 1, dimensions: Optional[Dict[str, str]] = None) -> None:
        pass

    def record_latency(self, name: str, duration_ms: float, dimensions: Optional[Dict[str, str]] = None) -> None:
        pass

    def record_gauge(self, name: str, value: float, dimensions: Optional[Dict[str, str]] = None) -> None:
        pass


class CloudWatchMetricsSink(MetricsSink):
    """Publishes metrics with CloudWatch ``PutMetricData``."""

    def __init__(self, config: DynamoDBConfig, namespace: Optional[str] = None):
        """Initialize CloudWatch sink.

        Args:
            config: Connection configuration (credentials, region)
            namespace: CloudWatch namespace; defaults to ``config.metrics_namespace``
        """
        self.config = config
        self.namespace = namespace or config.metrics_namespace
        self._client = None

    @property
    def client(self):
        """Lazy initialization of the CloudWatch client."""
        if self._client is None:
            session = boto3.Session(
                aws_access_key_id=self.config.aws_access_key_id,
                aws_secret_access_key=self.config.aws_secret_access_key,
                region_name=self.config.region_name
            )
            self._client = session.client(
                'cloudwatch',
                region_name=self.config.region_name,
                config=Config(
                    retries={'max_attempts': 1},
                    connect_timeout=self.config.timeout_seconds,
                    read_timeout=self.config.timeout_seconds
                )
            )
        return self._client

    def record_count(self, name: str, value: float = 1, dimensions: Optional[Dict[str, str]] = None) -> None:
        self._put(name, value, 'Count', dimensions)

    def record_latency(self, name: str, duration_ms: float, dimensions: Optional[Dict[str, str]] = None) -> None:
        self._put(name, duration_ms, 'Milliseconds', dimensions)

    def record_gauge(self, name: str, value: float, dimensions: Optional[Dict[str, str]] = None) -> None:
        self._put(name, value, 'None', dimensions)

    def _put(self, name: str, value: float, unit: str, dimensions: Optional[Dict[str, str]]) -> None:
        datum = {
            'MetricName': name,
            'Value': float(value),
            'Unit': unit,
            'Timestamp': datetime.now(timezone.utc),
            'Dimensions': _convert_dimensions(dimensions),
        }
        try:
            self.client.put_metric_data(Namespace=self.namespace, MetricData=[datum])
            logger.debug(f"Recorded metric: {name} = {value} {unit}")
        except Exception as e:
            logger.error(f"Error recording metric {name}: {e}")


def _convert_dimensions(dimensions: Optional[Dict[str, str]]) -> List[Dict[str, str]]:
    if not dimensions:
        return []
    # CloudWatch rejects empty dimension values
    return [{'Name': k, 'Value': str(v)} for k, v in dimensions.items() if v not in (None, "")]


def create_metrics_sink(config: DynamoDBConfig) -> MetricsSink:
    """CloudWatch sink when metrics are enabled, otherwise a no-op sink."""
    if config.enable_metrics:
        return CloudWatchMetricsSink(config)
    return MetricsSink()
