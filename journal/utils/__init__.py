"""Shared utilities for the journal client.

Convenience re-exports so consumers can ``from journal.utils import
log_audit_event``; full module imports remain supported.
"""

from journal.utils.audit import AuditEvent, log_audit_event, persist_audit_event

__all__ = [
    "AuditEvent",
    "log_audit_event",
    "persist_audit_event",
]
