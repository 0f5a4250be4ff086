"""
Reimbursement claim endpoints
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from leavewise.core.deps import get_db, get_actor
from leavewise.models.reimbursement import ClaimCategory, ClaimStatus, ReimbursementClaim
from leavewise.schemas.reimbursement import (
    ClaimCreate,
    ClaimTransitionRequest,
    ClaimActionRequest,
    ClaimOut,
    ClaimListResponse,
    ClaimStatsOut,
)
from leavewise.services.reimbursement_service import (
    submit_claim,
    transition_claim,
    advance_claim,
    reject_claim,
    cancel_claim,
    get_claim,
    list_claims,
    claim_stats,
    allowed_transitions,
)
from leavewise.services.transitions import Actor

router = APIRouter()


def _claim_out(db: Session, claim: ReimbursementClaim, actor: Actor) -> ClaimOut:
    out = ClaimOut.model_validate(claim)
    out.allowed_transitions = allowed_transitions(db, claim, actor)
    return out


@router.post("", response_model=ClaimOut, status_code=201)
async def submit_claim_endpoint(
    claim_data: ClaimCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    """Submit an expense claim (creates PENDING claim)"""
    claim = submit_claim(
        db,
        actor,
        category=claim_data.category,
        amount=claim_data.amount,
        description=claim_data.description,
        expense_date=claim_data.expense_date,
        receipt_url=claim_data.receipt_url,
        currency=claim_data.currency,
    )
    return _claim_out(db, claim, actor)


@router.get("", response_model=ClaimListResponse)
async def list_claims_endpoint(
    status: Optional[ClaimStatus] = Query(None),
    category: Optional[ClaimCategory] = Query(None),
    employee_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    items, total = list_claims(
        db, actor, status=status, category=category, employee_id=employee_id, page=page, page_size=page_size
    )
    return ClaimListResponse(
        items=[_claim_out(db, item, actor) for item in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/stats", response_model=ClaimStatsOut)
async def claim_stats_endpoint(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    """Counts per status and total approved amount within the caller's scope"""
    return ClaimStatsOut(**claim_stats(db, actor))


@router.get("/{claim_id}", response_model=ClaimOut)
async def get_claim_endpoint(
    claim_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    return _claim_out(db, get_claim(db, claim_id, actor), actor)


@router.post("/{claim_id}/transition", response_model=ClaimOut)
async def transition_claim_endpoint(
    claim_id: int,
    transition_data: ClaimTransitionRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    claim = transition_claim(db, claim_id, actor, transition_data.status, transition_data.comment)
    return _claim_out(db, claim, actor)


@router.post("/{claim_id}/approve", response_model=ClaimOut)
async def approve_claim_endpoint(
    claim_id: int,
    action_data: Optional[ClaimActionRequest] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    """Manager approval moves to manager_approved; admin approval finalizes"""
    comment = action_data.comment if action_data else None
    return _claim_out(db, advance_claim(db, claim_id, actor, comment), actor)


@router.post("/{claim_id}/reject", response_model=ClaimOut)
async def reject_claim_endpoint(
    claim_id: int,
    action_data: Optional[ClaimActionRequest] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    comment = action_data.comment if action_data else None
    return _claim_out(db, reject_claim(db, claim_id, actor, comment), actor)


@router.post("/{claim_id}/cancel", response_model=ClaimOut)
async def cancel_claim_endpoint(
    claim_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    return _claim_out(db, cancel_claim(db, claim_id, actor), actor)
