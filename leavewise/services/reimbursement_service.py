"""
Reimbursement claims: two-stage (manager, then admin) approval chain.

  pending          -> manager_approved   manager of the claimant
  pending          -> approved|rejected  admin (bypasses the manager stage)
  pending          -> rejected           manager of the claimant
  manager_approved -> approved|rejected  admin
  pending|manager_approved -> cancelled  claimant

Claims never touch the leave ledger.
"""
import logging
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, update
from sqlalchemy.orm import Session, joinedload

from leavewise.core.errors import Forbidden, InvalidTransition, NotFound, ValidationError
from leavewise.models.audit_log import AuditAction
from leavewise.models.employee import Employee
from leavewise.models.reimbursement import ClaimCategory, ClaimStatus, ReimbursementClaim
from leavewise.services.leave_service import approver_for, managed_employee_ids, department_manager_id
from leavewise.services.notification_service import emit, publish_pending, discard_pending
from leavewise.services.transitions import (
    Actor,
    Capacity,
    allowed_claim_targets,
    authorize_claim_transition,
    capacities_for,
)
from leavewise.utils.datetime_utils import now_utc, today_utc

logger = logging.getLogger(__name__)

MIN_DESCRIPTION_LENGTH = 5
MAX_AMOUNT = Decimal("9999999999.99")  # Numeric(12, 2)


def _get_owner(db: Session, employee_id: int) -> Employee:
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if not employee:
        raise NotFound(f"Employee with id {employee_id} not found")
    return employee


def claim_capacities(db: Session, claim: ReimbursementClaim, actor: Actor):
    owner = _get_owner(db, claim.employee_id)
    return capacities_for(
        actor,
        owner_id=owner.id,
        owner_manager_id=owner.manager_id,
        department_manager_id=department_manager_id(db, owner),
    )


def submit_claim(
    db: Session,
    actor: Actor,
    category: ClaimCategory,
    amount,
    description: str,
    expense_date: date,
    receipt_url: Optional[str] = None,
    currency: str = "INR",
    today: Optional[date] = None,
) -> ReimbursementClaim:
    """
    Create a PENDING claim.

    Raises:
        ValidationError: amount not a finite number in (0, MAX_AMOUNT],
            description under 5 characters, or an expense date in the future
    """
    if actor.id is None:
        raise Forbidden("System actor cannot submit claims")
    category = ClaimCategory(category)
    today = today or today_utc()
    description = (description or "").strip()

    try:
        amount = Decimal(str(amount))
    except InvalidOperation:
        raise ValidationError("Amount must be a number")
    if not amount.is_finite():
        raise ValidationError("Amount must be a finite number")
    if amount <= 0:
        raise ValidationError("Amount must be greater than zero")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"Amount cannot exceed {MAX_AMOUNT}")
    amount = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if amount == 0:
        raise ValidationError("Amount must be at least 0.01")
    if len(description) < MIN_DESCRIPTION_LENGTH:
        raise ValidationError(f"Description must be at least {MIN_DESCRIPTION_LENGTH} characters")
    if expense_date > today:
        raise ValidationError("Expense date cannot be in the future")

    employee = _get_owner(db, actor.id)
    claim = ReimbursementClaim(
        employee_id=employee.id,
        category=category,
        amount=amount,
        currency=(currency or "INR").upper(),
        description=description,
        expense_date=expense_date,
        receipt_url=receipt_url,
        status=ClaimStatus.PENDING,
        version=1,
        submitted_at=now_utc(),
    )
    try:
        db.add(claim)
        db.flush()
        emit(
            db,
            kind="reimbursement:submitted",
            subject_employee_id=employee.id,
            actor_id=actor.id,
            recipient_id=approver_for(db, employee),
            message=f"{employee.name} submitted a {category.value} claim of {claim.currency} {claim.amount}",
            target_model="ReimbursementClaim",
            target_id=claim.id,
            audit_action=AuditAction.CREATE.value,
            data={"claim_id": claim.id, "category": category, "amount": claim.amount, "currency": claim.currency},
            changes={"after": {"status": ClaimStatus.PENDING, "amount": claim.amount}},
        )
        db.commit()
    except Exception:
        db.rollback()
        discard_pending(db)
        raise
    db.refresh(claim)
    publish_pending(db)
    logger.info(
        "claim submitted: claim_id=%s employee_id=%s category=%s amount=%s",
        claim.id, employee.id, category.value, claim.amount,
    )
    return claim


def _get_claim_or_404(db: Session, claim_id: int) -> ReimbursementClaim:
    claim = db.query(ReimbursementClaim).filter(ReimbursementClaim.id == claim_id).first()
    if not claim:
        raise NotFound(f"Claim with id {claim_id} not found")
    return claim


def transition_claim(
    db: Session,
    claim_id: int,
    actor: Actor,
    new_status: ClaimStatus,
    comment: Optional[str] = None,
) -> ReimbursementClaim:
    """
    Move a claim along the approval chain. The returned claim is authoritative.

    Raises:
        NotFound, InvalidTransition, Forbidden
    """
    target = ClaimStatus(new_status)
    claim = _get_claim_or_404(db, claim_id)
    before = ClaimStatus(claim.status)
    capacities = claim_capacities(db, claim, actor)
    authorize_claim_transition(before, target, capacities)

    values = {"status": target, "processed_at": now_utc()}
    if Capacity.OWNER not in capacities:
        values["approver_comment"] = comment
        values["approved_by_id"] = actor.id

    try:
        result = db.execute(
            update(ReimbursementClaim)
            .where(
                ReimbursementClaim.id == claim.id,
                ReimbursementClaim.version == claim.version,
                ReimbursementClaim.status == before,
            )
            .values(version=ReimbursementClaim.version + 1, updated_at=now_utc(), **values)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            raise InvalidTransition(f"Claim {claim.id} was modified concurrently; reload and retry")

        owner = _get_owner(db, claim.employee_id)
        recipient_id = approver_for(db, owner) if target == ClaimStatus.CANCELLED else None
        if recipient_id:
            message = f"{owner.name} cancelled a {claim.category.value} claim of {claim.currency} {claim.amount}"
        else:
            message = f"Your {claim.category.value} claim of {claim.currency} {claim.amount} was {target.value.replace('_', ' ')}"
            if comment:
                message += f": {comment}"
        emit(
            db,
            kind=f"reimbursement:{target.value}",
            subject_employee_id=owner.id,
            actor_id=actor.id,
            recipient_id=recipient_id,
            message=message,
            target_model="ReimbursementClaim",
            target_id=claim.id,
            data={"claim_id": claim.id, "status": target, "amount": claim.amount, "comment": comment},
            changes={"before": {"status": before}, "after": {"status": target, "approver_comment": comment}},
        )
        db.commit()
    except Exception:
        db.rollback()
        discard_pending(db)
        raise

    db.refresh(claim)
    publish_pending(db)
    logger.info(
        "claim status transition: claim_id=%s before=%s after=%s actor_id=%s",
        claim.id, before.value, target.value, actor.id,
    )
    return claim


def advance_claim(db: Session, claim_id: int, actor: Actor, comment: Optional[str] = None) -> ReimbursementClaim:
    """The "approve" action: a manager moves the claim to manager_approved, an admin to approved"""
    if actor.is_admin:
        target = ClaimStatus.APPROVED
    elif actor.is_manager:
        target = ClaimStatus.MANAGER_APPROVED
    else:
        raise Forbidden("Only managers and admins can approve claims")
    return transition_claim(db, claim_id, actor, target, comment)


def reject_claim(db: Session, claim_id: int, actor: Actor, comment: Optional[str] = None) -> ReimbursementClaim:
    return transition_claim(db, claim_id, actor, ClaimStatus.REJECTED, comment)


def cancel_claim(db: Session, claim_id: int, actor: Actor) -> ReimbursementClaim:
    return transition_claim(db, claim_id, actor, ClaimStatus.CANCELLED)


def get_claim(db: Session, claim_id: int, actor: Actor) -> ReimbursementClaim:
    claim = _get_claim_or_404(db, claim_id)
    if not claim_capacities(db, claim, actor):
        raise Forbidden("Not authorized to view this claim")
    return claim


def allowed_transitions(db: Session, claim: ReimbursementClaim, actor: Actor) -> List[str]:
    return allowed_claim_targets(ClaimStatus(claim.status), claim_capacities(db, claim, actor))


def _scoped_query(db: Session, actor: Actor):
    query = db.query(ReimbursementClaim)
    if actor.is_admin:
        return query
    visible_ids = [actor.id]
    if actor.is_manager:
        visible_ids += managed_employee_ids(db, actor.id)
    return query.filter(ReimbursementClaim.employee_id.in_(visible_ids))


def list_claims(
    db: Session,
    actor: Actor,
    status: Optional[ClaimStatus] = None,
    category: Optional[ClaimCategory] = None,
    employee_id: Optional[int] = None,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[List[ReimbursementClaim], int]:
    """Role-scoped claim list, newest first"""
    query = _scoped_query(db, actor).options(joinedload(ReimbursementClaim.employee))
    if employee_id is not None:
        query = query.filter(ReimbursementClaim.employee_id == employee_id)
    if status:
        query = query.filter(ReimbursementClaim.status == ClaimStatus(status))
    if category:
        query = query.filter(ReimbursementClaim.category == ClaimCategory(category))

    total = query.count()
    items = (
        query.order_by(ReimbursementClaim.submitted_at.desc(), ReimbursementClaim.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return items, total


def claim_stats(db: Session, actor: Actor) -> Dict:
    """Counts per status and the total approved amount, within the actor's visible scope"""
    base = _scoped_query(db, actor)
    counts = {s.value: 0 for s in ClaimStatus}
    rows = (
        base.with_entities(ReimbursementClaim.status, func.count(ReimbursementClaim.id))
        .group_by(ReimbursementClaim.status)
        .all()
    )
    for claim_status, count in rows:
        counts[ClaimStatus(claim_status).value] = count
    total_approved = (
        base.with_entities(func.coalesce(func.sum(ReimbursementClaim.amount), 0))
        .filter(ReimbursementClaim.status == ClaimStatus.APPROVED)
        .scalar()
    )
    return {
        "pending": counts[ClaimStatus.PENDING.value],
        "manager_approved": counts[ClaimStatus.MANAGER_APPROVED.value],
        "approved": counts[ClaimStatus.APPROVED.value],
        "rejected": counts[ClaimStatus.REJECTED.value],
        "cancelled": counts[ClaimStatus.CANCELLED.value],
        "total_approved_amount": Decimal(str(total_approved or 0)).quantize(Decimal("0.01")),
    }
