"""
Status transition tables for leave requests and reimbursement claims.

Everything here is a pure function of (current status, target status, actor
capacities): no database access. The services resolve an actor's capacities
against the target record, then ask these tables whether the move is legal.
"""
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Tuple
import enum

from leavewise.core.errors import Forbidden, InvalidTransition
from leavewise.models.employee import Role
from leavewise.models.leave import LeaveStatus
from leavewise.models.reimbursement import ClaimStatus


class Capacity(str, enum.Enum):
    """The role an actor plays relative to one specific record"""
    OWNER = "owner"
    MANAGER = "manager"
    ADMIN = "admin"
    SYSTEM = "system"


@dataclass(frozen=True)
class Actor:
    """
    Explicit session object passed into every core operation.
    `id` is None only for the system actor (the expiry sweep).
    """
    id: Optional[int]
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    @property
    def is_manager(self) -> bool:
        return self.role == Role.MANAGER.value


SYSTEM_ACTOR = Actor(id=None, role="system")


LEAVE_TRANSITIONS: Dict[Tuple[LeaveStatus, LeaveStatus], FrozenSet[Capacity]] = {
    (LeaveStatus.PENDING, LeaveStatus.APPROVED): frozenset({Capacity.MANAGER, Capacity.ADMIN}),
    (LeaveStatus.PENDING, LeaveStatus.REJECTED): frozenset({Capacity.MANAGER, Capacity.ADMIN}),
    (LeaveStatus.PENDING, LeaveStatus.CANCELLED): frozenset({Capacity.OWNER}),
    (LeaveStatus.APPROVED, LeaveStatus.CANCELLED): frozenset({Capacity.OWNER, Capacity.ADMIN}),
    (LeaveStatus.PENDING, LeaveStatus.EXPIRED): frozenset({Capacity.SYSTEM}),
}

CLAIM_TRANSITIONS: Dict[Tuple[ClaimStatus, ClaimStatus], FrozenSet[Capacity]] = {
    (ClaimStatus.PENDING, ClaimStatus.MANAGER_APPROVED): frozenset({Capacity.MANAGER}),
    (ClaimStatus.PENDING, ClaimStatus.REJECTED): frozenset({Capacity.MANAGER, Capacity.ADMIN}),
    (ClaimStatus.PENDING, ClaimStatus.APPROVED): frozenset({Capacity.ADMIN}),
    (ClaimStatus.PENDING, ClaimStatus.CANCELLED): frozenset({Capacity.OWNER}),
    (ClaimStatus.MANAGER_APPROVED, ClaimStatus.APPROVED): frozenset({Capacity.ADMIN}),
    (ClaimStatus.MANAGER_APPROVED, ClaimStatus.REJECTED): frozenset({Capacity.ADMIN}),
    (ClaimStatus.MANAGER_APPROVED, ClaimStatus.CANCELLED): frozenset({Capacity.OWNER}),
}

LEAVE_TERMINAL_STATUSES = frozenset({
    LeaveStatus.REJECTED,
    LeaveStatus.CANCELLED,
    LeaveStatus.EXPIRED,
})

CLAIM_TERMINAL_STATUSES = frozenset({
    ClaimStatus.APPROVED,
    ClaimStatus.REJECTED,
    ClaimStatus.CANCELLED,
})


def capacities_for(
    actor: Actor,
    owner_id: int,
    owner_manager_id: Optional[int] = None,
    department_manager_id: Optional[int] = None,
) -> FrozenSet[Capacity]:
    """
    Resolve which capacities `actor` holds over a record owned by `owner_id`.

    The manager capacity requires a reporting line (direct manager or the
    owner's department manager) and is never granted over one's own record.
    The admin capacity is likewise withheld on the admin's own record, so
    nobody can approve their own request.
    """
    if actor.id is None:
        return frozenset({Capacity.SYSTEM})

    capacities = set()
    is_owner = actor.id == owner_id
    if is_owner:
        capacities.add(Capacity.OWNER)
    else:
        if actor.is_admin:
            capacities.add(Capacity.ADMIN)
        if actor.is_manager and actor.id in (owner_manager_id, department_manager_id):
            capacities.add(Capacity.MANAGER)
    return frozenset(capacities)


def _authorize(table, terminal, current, target, capacities: FrozenSet[Capacity], entity: str):
    if current in terminal:
        raise InvalidTransition(f"Cannot move {entity} from {current.value}: the status is final")
    allowed = table.get((current, target))
    if allowed is None:
        raise InvalidTransition(
            f"Cannot move {entity} from {current.value} to {target.value}"
        )
    granted = allowed & capacities
    if not granted:
        raise Forbidden(
            f"Not authorized to move {entity} from {current.value} to {target.value}"
        )
    return granted


def authorize_leave_transition(
    current: LeaveStatus,
    target: LeaveStatus,
    capacities: FrozenSet[Capacity],
) -> FrozenSet[Capacity]:
    """
    Check a leave status change against LEAVE_TRANSITIONS.

    Returns the capacities that grant the move.
    Raises InvalidTransition when `current` is terminal or (current, target)
    is not an edge, Forbidden when the edge exists but none of `capacities`
    may take it.
    """
    return _authorize(
        LEAVE_TRANSITIONS, LEAVE_TERMINAL_STATUSES,
        LeaveStatus(current), LeaveStatus(target), capacities, "leave request",
    )


def authorize_claim_transition(
    current: ClaimStatus,
    target: ClaimStatus,
    capacities: FrozenSet[Capacity],
) -> FrozenSet[Capacity]:
    """Same contract as authorize_leave_transition, over CLAIM_TRANSITIONS."""
    return _authorize(
        CLAIM_TRANSITIONS, CLAIM_TERMINAL_STATUSES,
        ClaimStatus(current), ClaimStatus(target), capacities, "claim",
    )


def allowed_leave_targets(current: LeaveStatus, capacities: FrozenSet[Capacity]) -> list:
    """Statuses this actor could move a leave request to (drives UI buttons)"""
    return sorted(
        target.value
        for (source, target), allowed in LEAVE_TRANSITIONS.items()
        if source == current and allowed & capacities
    )


def allowed_claim_targets(current: ClaimStatus, capacities: FrozenSet[Capacity]) -> list:
    return sorted(
        target.value
        for (source, target), allowed in CLAIM_TRANSITIONS.items()
        if source == current and allowed & capacities
    )
