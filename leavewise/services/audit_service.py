"""
Audit logging service
"""
from datetime import date, timedelta
from typing import Optional, Dict, Any, List, Tuple

from sqlalchemy.orm import Session

from leavewise.models.audit_log import AuditLog, AuditAction
from leavewise.utils.datetime_utils import now_utc
from leavewise.utils.json_serializer import sanitize_for_json


def log_audit(
    db: Session,
    actor_id: Optional[int],
    action: str,
    target_model: str,
    target_id: Optional[int] = None,
    changes: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    commit: bool = True,
) -> AuditLog:
    """
    Create an audit log entry

    Args:
        db: Database session
        actor_id: ID of the user performing the action (None for the system sweep)
        action: One of CREATE, UPDATE, DELETE, LOGIN, LOGOUT
        target_model: Model name of the affected record (e.g. "LeaveRequest")
        target_id: ID of the affected record (optional)
        changes: before/after values or other context (optional)
        ip_address: Client address when known
        commit: False when the entry must land in the caller's transaction

    Returns:
        Created AuditLog instance
    """
    action = AuditAction(action).value
    safe_changes = sanitize_for_json(changes) if changes is not None else None

    # Explicitly set created_at to avoid SQLite issues with server_default
    audit_log = AuditLog(
        actor_id=actor_id,
        action=action,
        target_model=target_model,
        target_id=target_id,
        changes=safe_changes,
        ip_address=ip_address,
        created_at=now_utc(),
    )
    db.add(audit_log)
    if commit:
        db.commit()
        db.refresh(audit_log)
    else:
        db.flush()
    return audit_log


def list_audit_logs(
    db: Session,
    actor_id: Optional[int] = None,
    action: Optional[str] = None,
    target_model: Optional[str] = None,
    target_id: Optional[int] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    page: int = 1,
    page_size: int = 50,
) -> Tuple[List[AuditLog], int]:
    """Filtered, newest-first page of audit entries plus the total count"""
    query = db.query(AuditLog)
    if actor_id is not None:
        query = query.filter(AuditLog.actor_id == actor_id)
    if action:
        query = query.filter(AuditLog.action == action.upper())
    if target_model:
        query = query.filter(AuditLog.target_model == target_model)
    if target_id is not None:
        query = query.filter(AuditLog.target_id == target_id)
    if from_date:
        query = query.filter(AuditLog.created_at >= from_date)
    if to_date:
        query = query.filter(AuditLog.created_at < to_date + timedelta(days=1))

    total = query.count()
    items = (
        query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return items, total
