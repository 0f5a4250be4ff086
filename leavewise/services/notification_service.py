"""
Notification / audit emitter.

Each successful leave or claim transition calls emit() inside the same
transaction as the status change. emit() writes a Notification row for the
recipient and an audit entry; the WebSocket push happens only after the
caller commits, via publish_pending().
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from leavewise.core.connection_manager import manager as connection_manager
from leavewise.core.errors import NotFound
from leavewise.models.audit_log import AuditAction
from leavewise.models.notification import Notification
from leavewise.services.audit_service import log_audit
from leavewise.utils.datetime_utils import iso_8601_utc, now_utc
from leavewise.utils.json_serializer import sanitize_for_json

logger = logging.getLogger(__name__)

EVENT_KINDS = (
    "leave:submitted",
    "leave:approved",
    "leave:rejected",
    "leave:cancelled",
    "leave:expired",
    "reimbursement:submitted",
    "reimbursement:manager_approved",
    "reimbursement:approved",
    "reimbursement:rejected",
    "reimbursement:cancelled",
)

_PENDING_KEY = "pending_pushes"


def emit(
    db: Session,
    kind: str,
    subject_employee_id: int,
    actor_id: Optional[int],
    message: str,
    target_model: str,
    target_id: int,
    data: Optional[Dict[str, Any]] = None,
    recipient_id: Optional[int] = None,
    changes: Optional[Dict[str, Any]] = None,
    audit_action: str = AuditAction.UPDATE.value,
) -> Notification:
    """
    Record one transition event. Does not commit.

    Args:
        kind: one of EVENT_KINDS, e.g. "leave:approved"
        subject_employee_id: employee the event is about
        actor_id: who caused it (None for the expiry sweep)
        recipient_id: who is notified; defaults to the subject
        changes: before/after values for the audit entry
    """
    if kind not in EVENT_KINDS:
        raise ValueError(f"Unknown event kind: {kind}")

    payload_data = sanitize_for_json(data or {})
    notification = Notification(
        recipient_id=recipient_id or subject_employee_id,
        subject_employee_id=subject_employee_id,
        kind=kind,
        message=message,
        data=payload_data,
        is_read=False,
        created_at=now_utc(),
    )
    db.add(notification)

    log_audit(
        db,
        actor_id=actor_id,
        action=audit_action,
        target_model=target_model,
        target_id=target_id,
        changes={"event": kind, **(changes or {})},
        commit=False,
    )
    db.flush()

    db.info.setdefault(_PENDING_KEY, []).append((
        notification.recipient_id,
        {
            "id": notification.id,
            "kind": kind,
            "subject_employee_id": subject_employee_id,
            "message": message,
            "data": payload_data,
            "created_at": iso_8601_utc(notification.created_at),
        },
    ))
    logger.info(
        "Event emitted: kind=%s subject_employee_id=%s recipient_id=%s target=%s:%s",
        kind, subject_employee_id, notification.recipient_id, target_model, target_id,
    )
    return notification


def publish_pending(db: Session) -> int:
    """Push events queued by emit() over WebSocket. Call after commit. Returns the count queued."""
    pending: List[Tuple[int, dict]] = db.info.pop(_PENDING_KEY, [])
    for recipient_id, payload in pending:
        connection_manager.push(recipient_id, {"type": "notification", **payload})
    return len(pending)


def discard_pending(db: Session) -> None:
    """Drop queued pushes after a rollback"""
    db.info.pop(_PENDING_KEY, None)


def list_notifications(
    db: Session,
    recipient_id: int,
    unread_only: bool = False,
    limit: int = 50,
) -> List[Notification]:
    query = db.query(Notification).filter(Notification.recipient_id == recipient_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def unread_count(db: Session, recipient_id: int) -> int:
    return (
        db.query(Notification)
        .filter(Notification.recipient_id == recipient_id, Notification.is_read.is_(False))
        .count()
    )


def mark_read(db: Session, notification_id: int, recipient_id: int) -> Notification:
    notification = db.query(Notification).filter(Notification.id == notification_id).first()
    if not notification or notification.recipient_id != recipient_id:
        raise NotFound("Notification not found")
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification


def mark_all_read(db: Session, recipient_id: int) -> int:
    updated = (
        db.query(Notification)
        .filter(Notification.recipient_id == recipient_id, Notification.is_read.is_(False))
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    db.commit()
    return updated
