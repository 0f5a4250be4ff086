"""
Leave request lifecycle: submission policy checks, status transitions and
their ledger side effects.

Transitions (see services/transitions.py for who may take each edge):
  pending  -> approved   deducts total_days from the ledger
  pending  -> rejected   no ledger effect
  pending  -> cancelled  no ledger effect
  approved -> cancelled  restores deducted_days
  pending  -> expired    system sweep only

Every status write is a compare-and-set on leave_requests.version, so two
concurrent approvals of the same request cannot both succeed.
"""
import logging
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session, joinedload

from leavewise.core.config import settings
from leavewise.core.errors import (
    Forbidden,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from leavewise.models.audit_log import AuditAction
from leavewise.models.department import Department
from leavewise.models.employee import Employee
from leavewise.models.leave import (
    LeaveRequest,
    LeaveStatus,
    LeaveType,
    CAP_EXEMPT_LEAVE_TYPES,
    ACTIVE_LEAVE_STATUSES,
)
from leavewise.services import balance_ledger
from leavewise.services.notification_service import emit, publish_pending, discard_pending
from leavewise.services.transitions import (
    Actor,
    Capacity,
    SYSTEM_ACTOR,
    allowed_leave_targets,
    authorize_leave_transition,
    capacities_for,
)
from leavewise.utils.datetime_utils import now_utc, today_utc
from leavewise.utils.leave_calendar import count_working_days, duration_label

logger = logging.getLogger(__name__)

MIN_REASON_LENGTH = 10

_EVENT_FOR_STATUS = {
    LeaveStatus.APPROVED: "leave:approved",
    LeaveStatus.REJECTED: "leave:rejected",
    LeaveStatus.CANCELLED: "leave:cancelled",
    LeaveStatus.EXPIRED: "leave:expired",
}

_ACTION_FOR_STATUS = {
    LeaveStatus.APPROVED: "approve",
    LeaveStatus.REJECTED: "reject",
    LeaveStatus.CANCELLED: "cancel",
    LeaveStatus.EXPIRED: "expire",
}


def _get_employee(db: Session, employee_id: int) -> Employee:
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if not employee:
        raise NotFound(f"Employee with id {employee_id} not found")
    return employee


def department_manager_id(db: Session, employee: Employee) -> Optional[int]:
    if not employee.department_id:
        return None
    department = db.query(Department).filter(Department.id == employee.department_id).first()
    return department.manager_id if department else None


def approver_for(db: Session, employee: Employee) -> Optional[int]:
    """Direct manager, else the department manager, never the employee themself"""
    for candidate in (employee.manager_id, department_manager_id(db, employee)):
        if candidate and candidate != employee.id:
            return candidate
    return None


def managed_employee_ids(db: Session, manager_id: int) -> List[int]:
    """Direct reports plus members of departments this employee manages"""
    direct = db.query(Employee.id).filter(Employee.manager_id == manager_id)
    via_department = (
        db.query(Employee.id)
        .join(Department, Employee.department_id == Department.id)
        .filter(Department.manager_id == manager_id)
    )
    ids = {row[0] for row in direct.all()} | {row[0] for row in via_department.all()}
    ids.discard(manager_id)
    return sorted(ids)


def leave_capacities(db: Session, leave_request: LeaveRequest, actor: Actor):
    owner = _get_employee(db, leave_request.employee_id)
    return capacities_for(
        actor,
        owner_id=owner.id,
        owner_manager_id=owner.manager_id,
        department_manager_id=department_manager_id(db, owner),
    )


def max_consecutive_days_for(db: Session, employee: Employee) -> Optional[int]:
    """Department cap; None means unlimited. Employees without a department get the default."""
    if not employee.department_id:
        return settings.DEFAULT_MAX_CONSECUTIVE_DAYS
    department = db.query(Department).filter(Department.id == employee.department_id).first()
    if not department:
        return settings.DEFAULT_MAX_CONSECUTIVE_DAYS
    return department.max_consecutive_days


def validate_overlap(
    db: Session,
    employee_id: int,
    start_date: date,
    end_date: date,
    exclude_leave_id: Optional[int] = None,
) -> None:
    """
    Reject a range that overlaps the employee's own PENDING or APPROVED requests.

    Raises:
        ValidationError: If overlap detected
    """
    query = db.query(LeaveRequest).filter(
        LeaveRequest.employee_id == employee_id,
        LeaveRequest.status.in_(ACTIVE_LEAVE_STATUSES),
        LeaveRequest.end_date >= start_date,
        LeaveRequest.start_date <= end_date,
    )
    if exclude_leave_id:
        query = query.filter(LeaveRequest.id != exclude_leave_id)

    overlapping = query.first()
    if overlapping:
        raise ValidationError(
            f"Leave request overlaps with existing leave from {overlapping.start_date} to {overlapping.end_date}"
        )


def submit_leave(
    db: Session,
    actor: Actor,
    leave_type: LeaveType,
    start_date: date,
    end_date: date,
    reason: str,
    is_urgent: bool = False,
    today: Optional[date] = None,
) -> LeaveRequest:
    """
    Apply for leave (creates PENDING request)

    Args:
        db: Database session
        actor: The applying employee
        leave_type: Type of leave
        start_date: First day, inclusive
        end_date: Last day, inclusive
        reason: At least 10 characters
        is_urgent: Flag shown to the approver
        today: Reference date for the no-past-dates and current-year rules
            (defaults to UTC today)

    Returns:
        Created LeaveRequest instance

    Raises:
        ValidationError: If any policy check fails. No ledger state is touched.
    """
    if actor.id is None:
        raise Forbidden("System actor cannot submit leave")
    leave_type = LeaveType(leave_type)
    today = today or today_utc()
    reason = (reason or "").strip()

    if len(reason) < MIN_REASON_LENGTH:
        raise ValidationError(f"Reason must be at least {MIN_REASON_LENGTH} characters")
    if start_date > end_date:
        raise ValidationError("start_date must be less than or equal to end_date")
    if start_date < today:
        raise ValidationError("Leave cannot start in the past")
    if start_date.year != today.year or end_date.year != today.year:
        raise ValidationError(
            f"Leave dates must be within the current year ({today.year}); cross-year requests are not allowed"
        )

    total_days = count_working_days(start_date, end_date)
    if total_days <= 0:
        raise ValidationError("Leave request must include at least one working day (Mon-Fri)")

    employee = _get_employee(db, actor.id)
    if not employee.active:
        raise Forbidden("Inactive employees cannot apply for leave")

    if leave_type not in CAP_EXEMPT_LEAVE_TYPES:
        cap = max_consecutive_days_for(db, employee)
        if cap is not None and total_days > cap:
            raise ValidationError(
                f"{leave_type.value.capitalize()} leave of {total_days} working days exceeds "
                f"the department limit of {cap} consecutive days"
            )

    balance = balance_ledger.get_balance(db, employee.id, leave_type)
    if total_days > balance:
        raise ValidationError(
            f"Insufficient {leave_type.value} balance: requested {total_days} day(s), available {balance}"
        )

    validate_overlap(db, employee.id, start_date, end_date)

    leave_request = LeaveRequest(
        employee_id=employee.id,
        leave_type=leave_type,
        start_date=start_date,
        end_date=end_date,
        total_days=total_days,
        deducted_days=0,
        reason=reason,
        is_urgent=is_urgent,
        status=LeaveStatus.PENDING,
        version=1,
        applied_at=now_utc(),
    )
    try:
        db.add(leave_request)
        db.flush()
        emit(
            db,
            kind="leave:submitted",
            subject_employee_id=employee.id,
            actor_id=actor.id,
            recipient_id=approver_for(db, employee),
            message=(
                f"{employee.name} requested {duration_label(total_days)} of {leave_type.value} leave "
                f"({start_date} to {end_date})"
            ),
            target_model="LeaveRequest",
            target_id=leave_request.id,
            audit_action=AuditAction.CREATE.value,
            data={
                "leave_id": leave_request.id,
                "leave_type": leave_type,
                "start_date": start_date,
                "end_date": end_date,
                "total_days": total_days,
                "is_urgent": is_urgent,
            },
            changes={"after": {"status": LeaveStatus.PENDING, "total_days": total_days}},
        )
        db.commit()
    except Exception:
        db.rollback()
        discard_pending(db)
        raise
    db.refresh(leave_request)
    publish_pending(db)
    logger.info(
        "leave submitted: leave_request_id=%s employee_id=%s leave_type=%s total_days=%s",
        leave_request.id, employee.id, leave_type.value, total_days,
    )
    return leave_request


def _compare_and_set_status(
    db: Session,
    leave_request: LeaveRequest,
    expected_status: LeaveStatus,
    **values,
) -> bool:
    """Write new column values only if the row still has the version and status we read"""
    result = db.execute(
        update(LeaveRequest)
        .where(
            LeaveRequest.id == leave_request.id,
            LeaveRequest.version == leave_request.version,
            LeaveRequest.status == expected_status,
        )
        .values(version=LeaveRequest.version + 1, updated_at=now_utc(), **values)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount == 1


def _notify_transition(
    db: Session,
    leave_request: LeaveRequest,
    actor: Actor,
    before: LeaveStatus,
    target: LeaveStatus,
    comment: Optional[str],
) -> None:
    employee = _get_employee(db, leave_request.employee_id)
    recipient_id = None
    if target == LeaveStatus.CANCELLED and actor.id == employee.id:
        recipient_id = approver_for(db, employee)

    period = f"{leave_request.start_date} to {leave_request.end_date}"
    if recipient_id:
        message = f"{employee.name} cancelled {leave_request.leave_type.value} leave ({period})"
    else:
        message = f"Your {leave_request.leave_type.value} leave ({period}) was {target.value}"
        if comment:
            message += f": {comment}"

    emit(
        db,
        kind=_EVENT_FOR_STATUS[target],
        subject_employee_id=employee.id,
        actor_id=actor.id,
        recipient_id=recipient_id,
        message=message,
        target_model="LeaveRequest",
        target_id=leave_request.id,
        data={
            "leave_id": leave_request.id,
            "leave_type": leave_request.leave_type,
            "start_date": leave_request.start_date,
            "end_date": leave_request.end_date,
            "total_days": leave_request.total_days,
            "status": target,
            "comment": comment,
        },
        changes={
            "before": {"status": before},
            "after": {"status": target, "manager_comment": comment},
        },
    )


def _transition(
    db: Session,
    leave_request: LeaveRequest,
    actor: Actor,
    target: LeaveStatus,
    comment: Optional[str] = None,
) -> LeaveRequest:
    before = LeaveStatus(leave_request.status)
    capacities = leave_capacities(db, leave_request, actor)
    authorize_leave_transition(before, target, capacities)

    values = {"status": target}
    if target in (LeaveStatus.APPROVED, LeaveStatus.REJECTED):
        values["manager_comment"] = comment
    if actor.id is not None and Capacity.OWNER not in capacities:
        values["processed_by_id"] = actor.id
    values["processed_at"] = now_utc()

    try:
        if target == LeaveStatus.APPROVED:
            values["deducted_days"] = leave_request.total_days
        if not _compare_and_set_status(db, leave_request, before, **values):
            raise InvalidTransition(
                f"Leave request {leave_request.id} was modified concurrently; reload and retry"
            )
        if target == LeaveStatus.APPROVED:
            balance_ledger.reserve_or_deduct(
                db,
                leave_request.employee_id,
                leave_request.leave_type,
                leave_request.total_days,
                leave_id=leave_request.id,
                actor_id=actor.id,
                remarks=comment,
            )
        elif before == LeaveStatus.APPROVED and target == LeaveStatus.CANCELLED:
            balance_ledger.restore(
                db,
                leave_request.employee_id,
                leave_request.leave_type,
                leave_request.deducted_days,
                leave_id=leave_request.id,
                actor_id=actor.id,
                remarks=comment or "Approved leave cancelled",
            )
        _notify_transition(db, leave_request, actor, before, target, comment)
        db.commit()
    except Exception:
        db.rollback()
        discard_pending(db)
        raise

    db.refresh(leave_request)
    publish_pending(db)
    logger.info(
        "leave status transition: leave_request_id=%s before=%s after=%s action=%s",
        leave_request.id, before.value, target.value, _ACTION_FOR_STATUS[target],
    )
    return leave_request


def get_leave_for_update(db: Session, leave_request_id: int) -> LeaveRequest:
    leave_request = db.query(LeaveRequest).filter(LeaveRequest.id == leave_request_id).first()
    if not leave_request:
        raise NotFound(f"Leave request with id {leave_request_id} not found")
    return leave_request


def transition_leave(
    db: Session,
    leave_request_id: int,
    actor: Actor,
    new_status: LeaveStatus,
    comment: Optional[str] = None,
) -> LeaveRequest:
    """
    Move a leave request to `new_status` on behalf of `actor`.

    The returned request is the authoritative post-transition state.

    Raises:
        NotFound: unknown id
        InvalidTransition: edge not in the table, or lost a concurrent write
        Forbidden: actor may not take the edge
        InsufficientBalance: approval exceeds the ledger; request stays pending
    """
    new_status = LeaveStatus(new_status)
    if new_status == LeaveStatus.PENDING:
        raise InvalidTransition("A leave request can never return to pending")
    leave_request = get_leave_for_update(db, leave_request_id)
    return _transition(db, leave_request, actor, new_status, comment)


def approve_leave(db: Session, leave_request_id: int, actor: Actor, comment: Optional[str] = None) -> LeaveRequest:
    return transition_leave(db, leave_request_id, actor, LeaveStatus.APPROVED, comment)


def reject_leave(db: Session, leave_request_id: int, actor: Actor, comment: Optional[str] = None) -> LeaveRequest:
    return transition_leave(db, leave_request_id, actor, LeaveStatus.REJECTED, comment)


def cancel_leave(db: Session, leave_request_id: int, actor: Actor, comment: Optional[str] = None) -> LeaveRequest:
    """Owner cancels pending or approved; admin cancels approved. Approved cancellation restores the ledger."""
    return transition_leave(db, leave_request_id, actor, LeaveStatus.CANCELLED, comment)


def expire_stale_leaves(db: Session, as_of: Optional[date] = None) -> List[LeaveRequest]:
    """
    Transition rule of the external expiry sweep: every PENDING request whose
    start_date is before `as_of` becomes EXPIRED. Requests that another writer
    moves first are skipped.
    """
    as_of = as_of or today_utc()
    stale = (
        db.query(LeaveRequest)
        .filter(LeaveRequest.status == LeaveStatus.PENDING, LeaveRequest.start_date < as_of)
        .order_by(LeaveRequest.id)
        .all()
    )
    expired = []
    for leave_request in stale:
        if not _compare_and_set_status(
            db, leave_request, LeaveStatus.PENDING, status=LeaveStatus.EXPIRED, processed_at=now_utc()
        ):
            logger.info("Expiry skipped, request changed concurrently: leave_request_id=%s", leave_request.id)
            continue
        try:
            _notify_transition(db, leave_request, SYSTEM_ACTOR, LeaveStatus.PENDING, LeaveStatus.EXPIRED, None)
            db.commit()
        except Exception:
            db.rollback()
            discard_pending(db)
            raise
        db.refresh(leave_request)
        publish_pending(db)
        logger.info(
            "leave status transition: leave_request_id=%s before=pending after=expired action=expire",
            leave_request.id,
        )
        expired.append(leave_request)
    logger.info("Expiry sweep: as_of=%s expired=%s", as_of, len(expired))
    return expired


def can_view_leave(db: Session, leave_request: LeaveRequest, actor: Actor) -> bool:
    return bool(leave_capacities(db, leave_request, actor) & {Capacity.OWNER, Capacity.MANAGER, Capacity.ADMIN})


def get_leave(db: Session, leave_request_id: int, actor: Actor) -> LeaveRequest:
    leave_request = (
        db.query(LeaveRequest)
        .options(joinedload(LeaveRequest.employee), joinedload(LeaveRequest.processed_by))
        .filter(LeaveRequest.id == leave_request_id)
        .first()
    )
    if not leave_request:
        raise NotFound(f"Leave request with id {leave_request_id} not found")
    if not can_view_leave(db, leave_request, actor):
        raise Forbidden("Not authorized to view this leave request")
    return leave_request


def allowed_transitions(db: Session, leave_request: LeaveRequest, actor: Actor) -> List[str]:
    return allowed_leave_targets(LeaveStatus(leave_request.status), leave_capacities(db, leave_request, actor))


def list_leaves(
    db: Session,
    actor: Actor,
    status: Optional[LeaveStatus] = None,
    leave_type: Optional[LeaveType] = None,
    employee_id: Optional[int] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[List[LeaveRequest], int]:
    """
    List leave requests with role-based scoping.
    Admin sees everyone; a manager sees their own and their managed employees';
    an employee sees only their own. All statuses are included unless filtered.
    """
    query = db.query(LeaveRequest).options(
        joinedload(LeaveRequest.employee),
        joinedload(LeaveRequest.processed_by),
    )

    if not actor.is_admin:
        visible_ids = [actor.id]
        if actor.is_manager:
            visible_ids += managed_employee_ids(db, actor.id)
        if employee_id is not None and employee_id not in visible_ids:
            return [], 0
        query = query.filter(LeaveRequest.employee_id.in_(visible_ids))

    if employee_id is not None:
        query = query.filter(LeaveRequest.employee_id == employee_id)
    if status:
        query = query.filter(LeaveRequest.status == LeaveStatus(status))
    if leave_type:
        query = query.filter(LeaveRequest.leave_type == LeaveType(leave_type))
    if from_date:
        query = query.filter(LeaveRequest.end_date >= from_date)
    if to_date:
        query = query.filter(LeaveRequest.start_date <= to_date)

    total = query.count()
    items = (
        query.order_by(LeaveRequest.applied_at.desc(), LeaveRequest.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return items, total


def list_pending_for_approver(db: Session, actor: Actor) -> List[LeaveRequest]:
    """
    Pending requests this actor could approve, oldest first.
    Admin: all except their own. Manager: managed employees. Employee: none.
    """
    query = db.query(LeaveRequest).options(joinedload(LeaveRequest.employee)).filter(
        LeaveRequest.status == LeaveStatus.PENDING
    )
    if actor.is_admin:
        query = query.filter(LeaveRequest.employee_id != actor.id)
    elif actor.is_manager:
        managed = managed_employee_ids(db, actor.id)
        if not managed:
            return []
        query = query.filter(LeaveRequest.employee_id.in_(managed))
    else:
        return []
    return query.order_by(LeaveRequest.is_urgent.desc(), LeaveRequest.applied_at.asc()).all()
