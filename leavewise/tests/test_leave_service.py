"""
Tests for the leave lifecycle: submission policy, transitions and ledger effects
"""
from datetime import date

import pytest

from leavewise.core.errors import Forbidden, InsufficientBalance, InvalidTransition, NotFound, ValidationError
from leavewise.models.audit_log import AuditLog
from leavewise.models.leave import LeaveRequest, LeaveStatus, LeaveType
from leavewise.models.notification import Notification
from leavewise.services import balance_ledger
from leavewise.services.leave_service import (
    approve_leave,
    cancel_leave,
    expire_stale_leaves,
    list_leaves,
    list_pending_for_approver,
    reject_leave,
    submit_leave,
    transition_leave,
)

from conftest import actor_for, make_employee

TODAY = date(2026, 3, 2)  # Monday
REASON = "Family trip planned months ago"


def _submit(db, who, start, end, leave_type=LeaveType.ANNUAL, reason=REASON):
    return submit_leave(db, actor_for(who), leave_type, start, end, reason, today=TODAY)


def test_submit_creates_pending_request_without_touching_ledger(db, employee, manager):
    leave = _submit(db, employee, date(2026, 3, 9), date(2026, 3, 13))

    assert leave.status == LeaveStatus.PENDING
    assert leave.total_days == 5
    assert leave.deducted_days == 0
    assert leave.version == 1
    assert balance_ledger.get_balance(db, employee.id, LeaveType.ANNUAL) == 5

    note = db.query(Notification).filter(Notification.kind == "leave:submitted").one()
    assert note.recipient_id == manager.id
    audit = db.query(AuditLog).filter(AuditLog.target_model == "LeaveRequest").one()
    assert audit.action == "CREATE"
    assert audit.actor_id == employee.id


def test_total_days_counts_only_weekdays(db, employee):
    leave = _submit(db, employee, date(2026, 3, 13), date(2026, 3, 16))
    assert leave.total_days == 2


@pytest.mark.parametrize("start,end,reason,message", [
    (date(2026, 3, 9), date(2026, 3, 9), "short", "at least 10"),
    (date(2026, 3, 10), date(2026, 3, 9), REASON, "start_date"),
    (date(2026, 2, 27), date(2026, 3, 3), REASON, "past"),
    (date(2026, 3, 7), date(2026, 3, 8), REASON, "working day"),
    (date(2026, 12, 28), date(2027, 1, 4), REASON, "current year"),
    (date(2027, 1, 4), date(2027, 1, 5), REASON, "current year"),
])
def test_submit_rejects_invalid_input(db, employee, start, end, reason, message):
    with pytest.raises(ValidationError) as exc_info:
        _submit(db, employee, start, end, reason=reason)
    assert message in exc_info.value.detail
    assert db.query(LeaveRequest).count() == 0


def test_submit_rejects_more_than_balance(db, employee):
    with pytest.raises(ValidationError) as exc_info:
        _submit(db, employee, date(2026, 3, 9), date(2026, 3, 16))
    assert "Insufficient annual balance" in exc_info.value.detail


def test_department_cap_applies_to_sick_leave(db, employee):
    # 20 working days against a 15 day cap
    with pytest.raises(ValidationError) as exc_info:
        _submit(db, employee, date(2026, 3, 2), date(2026, 3, 27), leave_type=LeaveType.SICK)
    assert "limit of 15" in exc_info.value.detail


def test_maternity_is_exempt_from_cap(db, employee):
    leave = _submit(db, employee, date(2026, 3, 2), date(2026, 5, 22), leave_type=LeaveType.MATERNITY)
    assert leave.total_days == 60
    assert leave.status == LeaveStatus.PENDING


def test_unlimited_cap_when_department_cap_is_null(db, department, employee):
    department.max_consecutive_days = None
    department.sick_days = 30
    db.commit()
    balance_ledger.adjust(db, employee.id, LeaveType.SICK, 15, employee.manager_id, "Policy change")
    db.commit()
    leave = _submit(db, employee, date(2026, 3, 2), date(2026, 3, 27), leave_type=LeaveType.SICK)
    assert leave.total_days == 20


def test_overlap_with_own_active_leave_is_rejected(db, employee):
    _submit(db, employee, date(2026, 3, 9), date(2026, 3, 10))
    with pytest.raises(ValidationError) as exc_info:
        _submit(db, employee, date(2026, 3, 10), date(2026, 3, 11))
    assert "overlaps" in exc_info.value.detail


def test_overlap_ignores_cancelled_leave(db, employee):
    first = _submit(db, employee, date(2026, 3, 9), date(2026, 3, 10))
    cancel_leave(db, first.id, actor_for(employee))
    second = _submit(db, employee, date(2026, 3, 10), date(2026, 3, 11))
    assert second.status == LeaveStatus.PENDING


def test_inactive_employee_cannot_submit(db, department):
    emp = make_employee(db, "Ivy Inactive", "ivy@example.com", department_id=department.id, active=False)
    with pytest.raises(Forbidden):
        _submit(db, emp, date(2026, 3, 9), date(2026, 3, 9))


def test_approval_deducts_balance(db, employee, manager):
    leave = _submit(db, employee, date(2026, 3, 9), date(2026, 3, 11))
    approved = approve_leave(db, leave.id, actor_for(manager), "Enjoy")

    assert approved.status == LeaveStatus.APPROVED
    assert approved.deducted_days == 3
    assert approved.processed_by_id == manager.id
    assert approved.manager_comment == "Enjoy"
    assert approved.version == 2
    assert balance_ledger.get_balance(db, employee.id, LeaveType.ANNUAL) == 2

    note = db.query(Notification).filter(Notification.kind == "leave:approved").one()
    assert note.recipient_id == employee.id


def test_second_approval_exceeding_balance_stays_pending(db, employee, manager):
    week = _submit(db, employee, date(2026, 3, 9), date(2026, 3, 13))
    day = _submit(db, employee, date(2026, 3, 16), date(2026, 3, 16))

    approve_leave(db, week.id, actor_for(manager))
    assert balance_ledger.get_balance(db, employee.id, LeaveType.ANNUAL) == 0

    with pytest.raises(InsufficientBalance):
        approve_leave(db, day.id, actor_for(manager))

    db.expire_all()
    still_pending = db.get(LeaveRequest, day.id)
    assert still_pending.status == LeaveStatus.PENDING
    assert still_pending.version == 1
    assert balance_ledger.get_balance(db, employee.id, LeaveType.ANNUAL) == 0
    assert db.query(Notification).filter(Notification.kind == "leave:approved").count() == 1


def test_admin_can_approve_without_reporting_line(db, employee, admin):
    leave = _submit(db, employee, date(2026, 3, 9), date(2026, 3, 9))
    assert approve_leave(db, leave.id, actor_for(admin)).status == LeaveStatus.APPROVED


def test_unrelated_manager_is_forbidden(db, employee, other_manager):
    leave = _submit(db, employee, date(2026, 3, 9), date(2026, 3, 9))
    with pytest.raises(Forbidden):
        approve_leave(db, leave.id, actor_for(other_manager))


def test_self_approval_is_forbidden_for_admin(db, admin):
    leave = _submit(db, admin, date(2026, 3, 9), date(2026, 3, 9))
    with pytest.raises(Forbidden):
        approve_leave(db, leave.id, actor_for(admin))


def test_employee_cannot_approve_own_leave(db, employee):
    leave = _submit(db, employee, date(2026, 3, 9), date(2026, 3, 9))
    with pytest.raises(Forbidden):
        approve_leave(db, leave.id, actor_for(employee))


def test_rejected_and_cancelled_are_terminal(db, employee, manager):
    rejected = _submit(db, employee, date(2026, 3, 9), date(2026, 3, 9))
    reject_leave(db, rejected.id, actor_for(manager), "Release week")
    with pytest.raises(InvalidTransition):
        approve_leave(db, rejected.id, actor_for(manager))

    cancelled = _submit(db, employee, date(2026, 3, 10), date(2026, 3, 10))
    cancel_leave(db, cancelled.id, actor_for(employee))
    with pytest.raises(InvalidTransition):
        approve_leave(db, cancelled.id, actor_for(manager))


def test_cannot_move_back_to_pending(db, employee, manager):
    leave = _submit(db, employee, date(2026, 3, 9), date(2026, 3, 9))
    with pytest.raises(InvalidTransition):
        transition_leave(db, leave.id, actor_for(manager), LeaveStatus.PENDING)


def test_cancelling_approved_leave_restores_balance(db, employee, manager, admin):
    leave = _submit(db, employee, date(2026, 3, 9), date(2026, 3, 12))
    approve_leave(db, leave.id, actor_for(manager))
    assert balance_ledger.get_balance(db, employee.id, LeaveType.ANNUAL) == 1

    cancelled = cancel_leave(db, leave.id, actor_for(employee))
    assert cancelled.status == LeaveStatus.CANCELLED
    assert balance_ledger.get_balance(db, employee.id, LeaveType.ANNUAL) == 5

    note = db.query(Notification).filter(Notification.kind == "leave:cancelled").one()
    assert note.recipient_id == manager.id


def test_admin_can_cancel_approved_leave_but_manager_cannot(db, employee, manager, admin):
    leave = _submit(db, employee, date(2026, 3, 9), date(2026, 3, 9))
    approve_leave(db, leave.id, actor_for(manager))
    with pytest.raises(Forbidden):
        cancel_leave(db, leave.id, actor_for(manager))
    assert cancel_leave(db, leave.id, actor_for(admin)).status == LeaveStatus.CANCELLED
    assert balance_ledger.get_balance(db, employee.id, LeaveType.ANNUAL) == 5


def test_transition_unknown_leave(db, manager):
    with pytest.raises(NotFound):
        approve_leave(db, 999, actor_for(manager))


def test_transition_records_audit_before_and_after(db, employee, manager):
    leave = _submit(db, employee, date(2026, 3, 9), date(2026, 3, 9))
    reject_leave(db, leave.id, actor_for(manager), "Coverage")
    audit = (
        db.query(AuditLog)
        .filter(AuditLog.target_model == "LeaveRequest", AuditLog.action == "UPDATE")
        .one()
    )
    assert audit.actor_id == manager.id
    assert audit.changes["before"] == {"status": "pending"}
    assert audit.changes["after"]["status"] == "rejected"
    assert audit.changes["event"] == "leave:rejected"


def test_expiry_sweep_only_touches_stale_pending(db, employee, manager):
    stale = _submit(db, employee, date(2026, 3, 9), date(2026, 3, 9))
    future = _submit(db, employee, date(2026, 3, 11), date(2026, 3, 11))
    approved = _submit(db, employee, date(2026, 3, 3), date(2026, 3, 3))
    approve_leave(db, approved.id, actor_for(manager))

    expired = expire_stale_leaves(db, as_of=date(2026, 3, 10))

    assert [leave.id for leave in expired] == [stale.id]
    assert db.get(LeaveRequest, stale.id).status == LeaveStatus.EXPIRED
    assert db.get(LeaveRequest, future.id).status == LeaveStatus.PENDING
    assert db.get(LeaveRequest, approved.id).status == LeaveStatus.APPROVED

    audit = db.query(AuditLog).filter(AuditLog.target_id == stale.id, AuditLog.action == "UPDATE").one()
    assert audit.actor_id is None
    assert expire_stale_leaves(db, as_of=date(2026, 3, 10)) == []


def test_list_scoping_by_role(db, employee, manager, admin, other_manager):
    _submit(db, employee, date(2026, 3, 9), date(2026, 3, 9))
    _submit(db, admin, date(2026, 3, 9), date(2026, 3, 9))

    _, total = list_leaves(db, actor_for(admin))
    assert total == 2
    items, total = list_leaves(db, actor_for(manager))
    assert total == 1 and items[0].employee_id == employee.id
    _, total = list_leaves(db, actor_for(other_manager))
    assert total == 0
    _, total = list_leaves(db, actor_for(employee), employee_id=admin.id)
    assert total == 0


def test_pending_queue_excludes_own_requests(db, employee, manager, admin):
    _submit(db, employee, date(2026, 3, 9), date(2026, 3, 9))
    own = _submit(db, admin, date(2026, 3, 10), date(2026, 3, 10))

    admin_queue = list_pending_for_approver(db, actor_for(admin))
    assert own.id not in [leave.id for leave in admin_queue]
    assert len(list_pending_for_approver(db, actor_for(manager))) == 1
    assert list_pending_for_approver(db, actor_for(employee)) == []
