"""
Handler Layer for the Query Processor

Application layer read APIs consumed by the HTTP layer. Handlers wire the
core collaborators (store client, cache, metrics sink, clock) into the
query builder, executor and pagination driver, and turn internal page
results into response views.

Architecture:
handlers/ (this layer) -> query/ (builder, executor, paginator) -> core/ -> DynamoDB
handlers/ (this layer) <- models/ (filters, results, views)
"""

from .audit_records.queries import AuditRecordsReadApi

__all__ = [
    'AuditRecordsReadApi',
]
