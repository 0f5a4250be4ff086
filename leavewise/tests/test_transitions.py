"""
Tests for the leave and claim transition tables
"""
import pytest

from leavewise.core.errors import Forbidden, InvalidTransition
from leavewise.models.leave import LeaveStatus
from leavewise.models.reimbursement import ClaimStatus
from leavewise.services.transitions import (
    Actor,
    CLAIM_TERMINAL_STATUSES,
    CLAIM_TRANSITIONS,
    Capacity,
    LEAVE_TERMINAL_STATUSES,
    LEAVE_TRANSITIONS,
    SYSTEM_ACTOR,
    allowed_claim_targets,
    allowed_leave_targets,
    authorize_claim_transition,
    authorize_leave_transition,
    capacities_for,
)

OWNER = frozenset({Capacity.OWNER})
MANAGER = frozenset({Capacity.MANAGER})
ADMIN = frozenset({Capacity.ADMIN})
SYSTEM = frozenset({Capacity.SYSTEM})


def test_owner_gets_only_owner_capacity_even_as_admin():
    admin = Actor(id=1, role="admin")
    assert capacities_for(admin, owner_id=1) == OWNER


def test_manager_capacity_requires_reporting_line():
    mgr = Actor(id=2, role="manager")
    assert capacities_for(mgr, owner_id=5, owner_manager_id=2) == MANAGER
    assert capacities_for(mgr, owner_id=5, department_manager_id=2) == MANAGER
    assert capacities_for(mgr, owner_id=5, owner_manager_id=3, department_manager_id=4) == frozenset()


def test_admin_and_system_capacities():
    assert capacities_for(Actor(id=9, role="admin"), owner_id=5) == ADMIN
    assert capacities_for(SYSTEM_ACTOR, owner_id=5) == SYSTEM


def test_employee_has_no_capacity_over_others():
    assert capacities_for(Actor(id=7, role="employee"), owner_id=5, owner_manager_id=7) == frozenset()


@pytest.mark.parametrize("current,target,capacities", [
    (LeaveStatus.PENDING, LeaveStatus.APPROVED, MANAGER),
    (LeaveStatus.PENDING, LeaveStatus.APPROVED, ADMIN),
    (LeaveStatus.PENDING, LeaveStatus.REJECTED, MANAGER),
    (LeaveStatus.PENDING, LeaveStatus.CANCELLED, OWNER),
    (LeaveStatus.APPROVED, LeaveStatus.CANCELLED, OWNER),
    (LeaveStatus.APPROVED, LeaveStatus.CANCELLED, ADMIN),
    (LeaveStatus.PENDING, LeaveStatus.EXPIRED, SYSTEM),
])
def test_legal_leave_edges(current, target, capacities):
    assert authorize_leave_transition(current, target, capacities)


@pytest.mark.parametrize("current,target", [
    (LeaveStatus.REJECTED, LeaveStatus.APPROVED),
    (LeaveStatus.CANCELLED, LeaveStatus.APPROVED),
    (LeaveStatus.EXPIRED, LeaveStatus.PENDING),
    (LeaveStatus.APPROVED, LeaveStatus.REJECTED),
    (LeaveStatus.APPROVED, LeaveStatus.EXPIRED),
])
def test_missing_leave_edges_are_invalid(current, target):
    with pytest.raises(InvalidTransition):
        authorize_leave_transition(current, target, ADMIN | MANAGER | OWNER | SYSTEM)


def test_owner_cannot_approve_own_leave():
    with pytest.raises(Forbidden):
        authorize_leave_transition(LeaveStatus.PENDING, LeaveStatus.APPROVED, OWNER)


def test_manager_cannot_cancel_approved_leave():
    with pytest.raises(Forbidden):
        authorize_leave_transition(LeaveStatus.APPROVED, LeaveStatus.CANCELLED, MANAGER)


def test_only_system_expires():
    with pytest.raises(Forbidden):
        authorize_leave_transition(LeaveStatus.PENDING, LeaveStatus.EXPIRED, ADMIN)


def test_claim_chain():
    assert authorize_claim_transition(ClaimStatus.PENDING, ClaimStatus.MANAGER_APPROVED, MANAGER)
    assert authorize_claim_transition(ClaimStatus.MANAGER_APPROVED, ClaimStatus.APPROVED, ADMIN)
    assert authorize_claim_transition(ClaimStatus.PENDING, ClaimStatus.APPROVED, ADMIN)
    with pytest.raises(Forbidden):
        authorize_claim_transition(ClaimStatus.MANAGER_APPROVED, ClaimStatus.REJECTED, MANAGER)
    with pytest.raises(InvalidTransition):
        authorize_claim_transition(ClaimStatus.APPROVED, ClaimStatus.REJECTED, ADMIN)


def test_allowed_targets_drive_actions():
    assert allowed_leave_targets(LeaveStatus.PENDING, MANAGER) == ["approved", "rejected"]
    assert allowed_leave_targets(LeaveStatus.PENDING, OWNER) == ["cancelled"]
    assert allowed_leave_targets(LeaveStatus.REJECTED, ADMIN) == []
    assert allowed_claim_targets(ClaimStatus.MANAGER_APPROVED, MANAGER) == []
    assert allowed_claim_targets(ClaimStatus.MANAGER_APPROVED, ADMIN) == ["approved", "rejected"]


def test_no_edge_leaves_a_terminal_status():
    assert not [edge for edge in LEAVE_TRANSITIONS if edge[0] in LEAVE_TERMINAL_STATUSES]
    assert not [edge for edge in CLAIM_TRANSITIONS if edge[0] in CLAIM_TERMINAL_STATUSES]
    assert LeaveStatus.APPROVED not in LEAVE_TERMINAL_STATUSES


@pytest.mark.parametrize("current", sorted(LEAVE_TERMINAL_STATUSES, key=lambda s: s.value))
def test_terminal_leave_status_is_final(current):
    with pytest.raises(InvalidTransition) as exc_info:
        authorize_leave_transition(current, LeaveStatus.CANCELLED, ADMIN | MANAGER | OWNER | SYSTEM)
    assert "final" in exc_info.value.detail


@pytest.mark.parametrize("current", sorted(CLAIM_TERMINAL_STATUSES, key=lambda s: s.value))
def test_terminal_claim_status_is_final(current):
    with pytest.raises(InvalidTransition) as exc_info:
        authorize_claim_transition(current, ClaimStatus.CANCELLED, ADMIN | MANAGER | OWNER)
    assert "final" in exc_info.value.detail
