"""
Audit Module

Append-only ledger of pipeline actions.
"""

from clinical_transcriber.audit.audit_log import AuditLog, AuditEntry, AUDIT_COLUMNS

__all__ = [
    "AuditLog",
    "AuditEntry",
    "AUDIT_COLUMNS",
]
