"""
Audit Records Read API

Read-only query surface over the audit records table. Three operations:
- query: one page for a filter
- query_page: one page resumed from an opaque continuation token
- query_all: pages accumulated up to an item cap

Usage:
    from .queries import AuditRecordsReadApi

    read_api = AuditRecordsReadApi(config)
    page = read_api.query({'subjectId': 'user123'})
"""

from .queries import AUDIT_RECORDS_TABLE, AuditRecordsReadApi

__all__ = [
    "AUDIT_RECORDS_TABLE",
    "AuditRecordsReadApi",
]
