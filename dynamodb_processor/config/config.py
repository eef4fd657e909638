import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Load environment variables from .env file if it exists
load_dotenv()


class QueryLimits(BaseModel):
    """Limits applied by the query core.

    Page size and item caps keep every DynamoDB call under the 1MB response
    ceiling; concurrency is enforced by the transport layer and only carried
    here so both sides read one value.
    """

    max_page_size: int = Field(default=1000, gt=0, description="Maximum items requested per DynamoDB call")
    default_max_items: int = Field(default=10000, gt=0, description="Item cap for query_all when none is given")
    max_concurrent_queries: int = Field(default=50, gt=0, description="Outstanding queries allowed by the transport layer")

    max_retries: int = Field(default=3, ge=0, description="Retries after a throttled DynamoDB call")
    retry_base_delay_ms: int = Field(default=100, ge=0, description="Delay before the first retry")
    retry_backoff_factor: float = Field(default=2.0, ge=1.0, description="Multiplier applied to the delay per retry")

    cache_max_size: int = Field(default=1000, gt=0, description="Maximum number of cached pages")
    cache_ttl_seconds: float = Field(default=300.0, gt=0, description="Time-to-live of a cached page")

    page_delay_ms: int = Field(default=100, ge=0, description="Pause between consecutive pages in query_all")

    max_identifier_length: int = Field(default=100, gt=0, description="Maximum length of subject/system/resource ids")

    model_config = ConfigDict(validate_assignment=True)


class DynamoDBConfig(BaseModel):
    """Configuration for DynamoDB connection and query operations."""

    aws_access_key_id: Optional[str] = Field(
        default_factory=lambda: os.getenv("AWS_ACCESS_KEY_ID"),
        description="AWS access key ID"
    )

    aws_secret_access_key: Optional[str] = Field(
        default_factory=lambda: os.getenv("AWS_SECRET_ACCESS_KEY"),
        description="AWS secret access key"
    )

    region_name: str = Field(
        default_factory=lambda: os.getenv("AWS_REGION", "us-east-1"),
        description="AWS region name"
    )

    # DynamoDB specific settings
    endpoint_url: Optional[str] = Field(
        default_factory=lambda: os.getenv("DYNAMODB_ENDPOINT_URL"),
        description="DynamoDB endpoint URL (for local development)"
    )

    # Table configuration
    table_prefix: str = Field(
        default_factory=lambda: os.getenv("DYNAMODB_TABLE_PREFIX", ""),
        description="Prefix to add to all table names"
    )

    # Connection settings
    max_pool_connections: int = Field(
        default=50,
        description="Maximum number of connections in the connection pool"
    )

    retries: int = Field(
        default=0,
        description="botocore-level retry attempts; throttling is retried by the query executor"
    )

    timeout_seconds: float = Field(
        default=30.0,
        description="Request timeout in seconds"
    )

    # Environment settings
    environment: str = Field(
        default_factory=lambda: os.getenv("ENVIRONMENT", "dev"),
        description="Current environment (dev, test, staging, prod)"
    )

    # Logging settings
    enable_debug_logging: bool = Field(
        default_factory=lambda: os.getenv("DYNAMODB_DEBUG_LOGGING", "false").lower() == "true",
        description="Enable debug logging for DynamoDB operations"
    )

    # Metrics settings
    enable_metrics: bool = Field(
        default_factory=lambda: os.getenv("DYNAMODB_METRICS_ENABLED", "false").lower() == "true",
        description="Publish query metrics to CloudWatch"
    )

    metrics_namespace: str = Field(
        default_factory=lambda: os.getenv("DYNAMODB_METRICS_NAMESPACE", "DynamoDBProcessor"),
        description="CloudWatch namespace for query metrics"
    )

    limits: QueryLimits = Field(
        default_factory=QueryLimits,
        description="Page, retry, cache and pacing limits for the query core"
    )

    @field_validator('region_name')
    @classmethod
    def validate_region(cls, v):
        """Validate AWS region name."""
        if not v:
            raise ValueError("AWS region name is required")
        return v

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v):
        """Validate environment value."""
        valid_environments = ['dev', 'test', 'staging', 'prod']
        if v not in valid_environments:
            raise ValueError(f"Environment must be one of: {valid_environments}")
        return v

    def get_table_name(self, base_name: str) -> str:
        """Get the full table name with prefix and environment.

        Args:
            base_name: Base table name

        Returns:
            Full table name with prefix and environment
        """
        parts = []

        if self.table_prefix:
            parts.append(self.table_prefix)

        if self.environment != "prod":
            parts.append(self.environment)

        parts.append(base_name)

        return "_".join(parts)

    @classmethod
    def from_env(cls) -> 'DynamoDBConfig':
        """Create configuration from environment variables.

        Returns:
            DynamoDBConfig instance
        """
        return cls()

    @classmethod
    def for_local_development(cls) -> 'DynamoDBConfig':
        """Create configuration for local DynamoDB development.

        Returns:
            DynamoDBConfig instance configured for local development
        """
        return cls(
            aws_access_key_id="local",
            aws_secret_access_key="local",
            region_name="us-east-1",
            endpoint_url="http://localhost:8000",
            environment="dev",
            enable_debug_logging=True
        )

    model_config = ConfigDict(
        validate_assignment=True,
        use_enum_values=True
    )
