from .config import DynamoDBConfig, QueryLimits

__all__ = ["DynamoDBConfig", "QueryLimits"]
