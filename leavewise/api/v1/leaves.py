"""
Leave endpoints
"""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session
from leavewise.core.deps import get_db, get_actor, require_roles
from leavewise.models.employee import Employee, Role
from leavewise.models.leave import LeaveRequest, LeaveStatus, LeaveType
from leavewise.schemas.employee import BalanceOut
from leavewise.schemas.leave import (
    LeaveApplyRequest,
    LeaveTransitionRequest,
    LeaveActionRequest,
    LeaveOut,
    LeaveListResponse,
    LeaveTransactionOut,
    ExpireRequest,
    ExpireResponse,
)
from leavewise.services import balance_ledger
from leavewise.services.leave_service import (
    submit_leave,
    transition_leave,
    approve_leave,
    reject_leave,
    cancel_leave,
    expire_stale_leaves,
    get_leave,
    list_leaves,
    list_pending_for_approver,
    allowed_transitions,
)
from leavewise.services.transitions import Actor
from leavewise.utils.datetime_utils import today_utc

router = APIRouter()


def _leave_out(db: Session, leave_request: LeaveRequest, actor: Actor) -> LeaveOut:
    out = LeaveOut.model_validate(leave_request)
    out.allowed_transitions = allowed_transitions(db, leave_request, actor)
    return out


def _etag(leave_request: LeaveRequest) -> str:
    return f'W/"leave-{leave_request.id}-v{leave_request.version}"'


@router.post("", response_model=LeaveOut, status_code=201)
async def submit_leave_endpoint(
    leave_data: LeaveApplyRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    """
    Apply for leave (creates PENDING request)

    Validations:
    - Reason length, date order, no past start dates
    - Department consecutive-day cap (maternity/paternity exempt)
    - Remaining balance for the leave type
    - No overlap with the employee's pending/approved leave
    """
    leave_request = submit_leave(
        db=db,
        actor=actor,
        leave_type=leave_data.leave_type,
        start_date=leave_data.start_date,
        end_date=leave_data.end_date,
        reason=leave_data.reason,
        is_urgent=leave_data.is_urgent,
    )
    return _leave_out(db, leave_request, actor)


@router.get("", response_model=LeaveListResponse)
async def list_leaves_endpoint(
    status: Optional[LeaveStatus] = Query(None),
    leave_type: Optional[LeaveType] = Query(None),
    employee_id: Optional[int] = Query(None, description="Employee filter (manager/admin)"),
    from_date: Optional[date] = Query(None, alias="from", description="Start date filter (YYYY-MM-DD)"),
    to_date: Optional[date] = Query(None, alias="to", description="End date filter (YYYY-MM-DD)"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    """
    List leave requests with role-based scoping

    - ADMIN: all employees
    - MANAGER: own plus direct reports and department members
    - EMPLOYEE: only their own records
    """
    items, total = list_leaves(
        db,
        actor,
        status=status,
        leave_type=leave_type,
        employee_id=employee_id,
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=page_size,
    )
    return LeaveListResponse(
        items=[_leave_out(db, item, actor) for item in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/pending", response_model=List[LeaveOut])
async def list_pending_endpoint(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    """Pending requests the caller can act on, urgent first"""
    return [_leave_out(db, item, actor) for item in list_pending_for_approver(db, actor)]


@router.get("/balance/me", response_model=BalanceOut)
async def balance_me(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    """Remaining days per leave type for the caller"""
    return BalanceOut(employee_id=actor.id, balances=balance_ledger.get_balances(db, actor.id))


@router.get("/transactions/me", response_model=List[LeaveTransactionOut])
async def transactions_me(
    leave_type: Optional[LeaveType] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    """Ledger history for the caller, newest first"""
    return balance_ledger.get_transactions(db, actor.id, leave_type=leave_type, limit=limit)


@router.post("/expire", response_model=ExpireResponse)
async def expire_endpoint(
    expire_data: Optional[ExpireRequest] = None,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN))
):
    """Run the expiry sweep now (Admin-only); normally scheduled externally"""
    as_of = (expire_data.as_of if expire_data else None) or today_utc()
    expired = expire_stale_leaves(db, as_of=as_of)
    return ExpireResponse(as_of=as_of, expired_ids=[leave.id for leave in expired])


@router.get("/{leave_request_id}", response_model=LeaveOut)
async def get_leave_endpoint(
    leave_request_id: int,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    """
    Get a leave request. Sends a weak ETag built from the row version;
    a matching If-None-Match yields 304.
    """
    leave_request = get_leave(db, leave_request_id, actor)
    etag = _etag(leave_request)
    if request.headers.get("if-none-match") == etag:
        return Response(status_code=304, headers={"ETag": etag})
    response.headers["ETag"] = etag
    return _leave_out(db, leave_request, actor)


@router.post("/{leave_request_id}/transition", response_model=LeaveOut)
async def transition_leave_endpoint(
    leave_request_id: int,
    transition_data: LeaveTransitionRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    """Move a leave request to the requested status if the caller may take that edge"""
    leave_request = transition_leave(
        db, leave_request_id, actor, transition_data.status, transition_data.comment
    )
    return _leave_out(db, leave_request, actor)


@router.post("/{leave_request_id}/approve", response_model=LeaveOut)
async def approve_leave_endpoint(
    leave_request_id: int,
    action_data: Optional[LeaveActionRequest] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    """Approve a pending request; deducts the balance atomically with the status change"""
    comment = action_data.comment if action_data else None
    return _leave_out(db, approve_leave(db, leave_request_id, actor, comment), actor)


@router.post("/{leave_request_id}/reject", response_model=LeaveOut)
async def reject_leave_endpoint(
    leave_request_id: int,
    action_data: Optional[LeaveActionRequest] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    comment = action_data.comment if action_data else None
    return _leave_out(db, reject_leave(db, leave_request_id, actor, comment), actor)


@router.post("/{leave_request_id}/cancel", response_model=LeaveOut)
async def cancel_leave_endpoint(
    leave_request_id: int,
    action_data: Optional[LeaveActionRequest] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    """Cancel a pending or approved request; approved cancellations restore the balance"""
    comment = action_data.comment if action_data else None
    return _leave_out(db, cancel_leave(db, leave_request_id, actor, comment), actor)
