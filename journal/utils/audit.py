"""
Structured Audit Logging Utility.

Account-level actions (sign-in, registration, sign-out, password change,
data export, account deletion) are logged as one validated JSON object
each, optionally also written to the local ``audit_log`` table.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel, Field

from journal.logger import StructuredLogger

__all__ = ["AuditEvent", "DetailValue", "log_audit_event", "persist_audit_event"]

# Flat scalar values only; nested structures do not belong in the audit log.
DetailValue = Union[str, int, float, bool, None]


class AuditEvent(BaseModel):
    """Schema-validated representation of a single audit trail entry."""

    timestamp: str
    action: str
    entity_type: str
    entity_id: str
    user_id: str
    details: dict[str, DetailValue] = Field(default_factory=dict)


def _build_event(
    action: str,
    entity_type: str,
    entity_id: str,
    user_id: str,
    details: Optional[dict[str, DetailValue]],
) -> AuditEvent:
    return AuditEvent(
        timestamp=datetime.now(timezone.utc).isoformat(),
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=user_id,
        details=details or {},
    )


def log_audit_event(
    logger: StructuredLogger,
    action: str,
    entity_type: str,
    entity_id: str,
    user_id: str,
    details: Optional[dict[str, DetailValue]] = None,
    conn: Optional[sqlite3.Connection] = None,
) -> None:
    """Log a structured JSON audit event, with optional SQLite persistence.

    Args:
        logger: The logger instance to write to.
        action: What happened (``"LOGIN"``, ``"LOGOUT"``, ``"EXPORT"``...).
        entity_type: Type of entity affected (``"Session"``, ``"User"``).
        entity_id: Identifier of the affected entity.
        user_id: ID of the user who performed the action.
        details: Optional flat key/value context.
        conn: Optional SQLite connection.  When given, the event is also
            written to ``audit_log``; a failed write is logged and
            never propagated to the calling operation.
    """
    event = _build_event(action, entity_type, entity_id, user_id, details)
    logger.info(
        "AUDIT: %s",
        json.dumps(event.model_dump(), default=str),
        extra={"event": action},
    )

    if conn is not None:
        try:
            persist_audit_event(conn, event)
        except Exception as db_err:
            logger.warning("Failed to persist audit event to SQLite: %s", db_err)


def persist_audit_event(conn: sqlite3.Connection, event: AuditEvent) -> None:
    """Write *event* to the ``audit_log`` table and commit."""
    conn.execute(
        """
        INSERT INTO audit_log (timestamp, action, entity_type, entity_id, user_id, details)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            event.timestamp,
            event.action,
            event.entity_type,
            event.entity_id,
            event.user_id,
            json.dumps(event.details, default=str),
        ),
    )
    conn.commit()
