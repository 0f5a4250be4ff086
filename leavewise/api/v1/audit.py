"""
Audit log endpoints (admin-only)
"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from leavewise.core.deps import get_db, require_roles
from leavewise.models.employee import Role, Employee
from leavewise.schemas.audit import AuditLogOut, AuditLogListResponse
from leavewise.services.audit_service import list_audit_logs

router = APIRouter()


@router.get("", response_model=AuditLogListResponse)
async def list_audit_logs_endpoint(
    actor_id: Optional[int] = Query(None),
    action: Optional[str] = Query(None, description="CREATE, UPDATE, DELETE, LOGIN or LOGOUT"),
    target_model: Optional[str] = Query(None, description="e.g. LeaveRequest, ReimbursementClaim"),
    target_id: Optional[int] = Query(None),
    from_date: Optional[date] = Query(None, alias="from"),
    to_date: Optional[date] = Query(None, alias="to"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN))
):
    items, total = list_audit_logs(
        db,
        actor_id=actor_id,
        action=action,
        target_model=target_model,
        target_id=target_id,
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=page_size,
    )
    return AuditLogListResponse(
        items=[AuditLogOut.model_validate(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
    )
