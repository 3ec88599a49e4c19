"""
Audit trail seam. Recording an event is fire-and-forget: a failing sink is
logged and never interrupts the operation being audited.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

from loguru import logger

from listing_pipeline.models import AuditEvent

IMPORT_CSV = "IMPORT_CSV"
IMPORT_CSV_DRY_RUN = "IMPORT_CSV_DRY_RUN"
EXPORT_CSV = "EXPORT_CSV"
BUSINESS_APPROVAL_EVALUATION = "BUSINESS_APPROVAL_EVALUATION"
DUPLICATE_SWEEP = "DUPLICATE_SWEEP"


class AuditSink(Protocol):
    def record(self, event: AuditEvent) -> None:
        ...


class LoggingAuditSink:
    """Writes audit events to the application log."""

    def record(self, event: AuditEvent) -> None:
        logger.bind(audit=True).info(
            f"AUDIT {event.action} target={event.target} actor={event.actor_id or 'SYSTEM'} meta={event.meta}"
        )


class InMemoryAuditSink:
    """Keeps events in a list; used by tests and dry runs."""

    def __init__(self):
        self.events: List[AuditEvent] = []

    def record(self, event: AuditEvent) -> None:
        self.events.append(event)


def log_audit_event(
    sink: Optional[AuditSink],
    action: str,
    target: Optional[str] = None,
    meta: Optional[Dict[str, Any]] = None,
    actor_id: Optional[str] = None,
) -> None:
    if sink is None:
        sink = LoggingAuditSink()
    event = AuditEvent(
        action=action,
        target=target,
        meta=dict(meta or {}),
        actor_id=actor_id,
        created_at=datetime.now(timezone.utc),
    )
    try:
        sink.record(event)
    except Exception as e:
        logger.warning(f"⚠️ Failed to log audit event {action}: {e}")
