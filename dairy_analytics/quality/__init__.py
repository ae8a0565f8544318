"""
Data Quality Module
"""
from .auditor import AuditFinding, AuditReport, RecordAuditor, audit_records

__all__ = [
    "AuditFinding",
    "AuditReport",
    "RecordAuditor",
    "audit_records",
]
