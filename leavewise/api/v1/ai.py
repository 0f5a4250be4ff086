"""
Advisory engine endpoints: burnout, leave advice, suggestions, text parsing,
rejection-reason drafts and demand forecasts.

Everything here is advisory: nothing is persisted and no leave state changes.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from leavewise.core.deps import get_db, get_actor, require_roles
from leavewise.core.errors import Forbidden
from leavewise.models.employee import Role, Employee
from leavewise.schemas.advisory import (
    BurnoutOut,
    TeamBurnoutOut,
    AdviceRequest,
    AdviceOut,
    SuggestionOut,
    ParseLeaveRequest,
    ParseLeaveOut,
    RejectionReasonRequest,
    RejectionReasonOut,
    ForecastOut,
)
from leavewise.services.advice_service import get_leave_advice, suggest_rejection_reason
from leavewise.services.burnout_service import get_burnout, team_burnout
from leavewise.services.employee_service import ensure_can_view
from leavewise.services.leave_service import get_leave
from leavewise.services.nlp_service import parse_leave_text
from leavewise.services.suggestion_service import get_suggestions, get_forecast
from leavewise.services.transitions import Actor
from leavewise.utils.datetime_utils import today_utc

router = APIRouter()


@router.get("/burnout/team/{manager_id}", response_model=TeamBurnoutOut)
async def team_burnout_endpoint(
    manager_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    """Burnout scores for a manager's team, highest risk first (the manager or an admin)"""
    if not actor.is_admin and not (actor.is_manager and actor.id == manager_id):
        raise Forbidden("Not authorized to view this team")
    return TeamBurnoutOut.model_validate(team_burnout(db, manager_id, today_utc()))


@router.get("/burnout/{employee_id}", response_model=BurnoutOut)
async def burnout_endpoint(
    employee_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    """Rule-based burnout score with its factor breakdown"""
    ensure_can_view(db, actor, employee_id)
    return BurnoutOut.model_validate(get_burnout(db, employee_id, today_utc()))


@router.post("/leave-advice", response_model=AdviceOut)
async def leave_advice_endpoint(
    advice_data: AdviceRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    """Score the timing of a prospective leave and propose alternative windows"""
    employee_id = advice_data.employee_id or actor.id
    ensure_can_view(db, actor, employee_id)
    result = get_leave_advice(
        db,
        employee_id,
        advice_data.leave_type,
        advice_data.start_date,
        advice_data.end_date,
        today_utc(),
    )
    return AdviceOut.model_validate(result)


@router.get("/suggestions/{employee_id}", response_model=SuggestionOut)
async def suggestions_endpoint(
    employee_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    ensure_can_view(db, actor, employee_id)
    return SuggestionOut.model_validate(get_suggestions(db, employee_id, today_utc()))


@router.post("/parse-leave", response_model=ParseLeaveOut)
async def parse_leave_endpoint(
    parse_data: ParseLeaveRequest,
    actor: Actor = Depends(get_actor)
):
    """Turn free text into a leave draft; low-confidence drafts need confirmation"""
    return ParseLeaveOut.model_validate(parse_leave_text(parse_data.text, today_utc()))


@router.post("/rejection-reason", response_model=RejectionReasonOut)
async def rejection_reason_endpoint(
    reason_data: RejectionReasonRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.MANAGER, Role.ADMIN)),
    actor: Actor = Depends(get_actor)
):
    """Editable rejection text for the approver"""
    leave_request = get_leave(db, reason_data.leave_id, actor) if reason_data.leave_id else None
    return RejectionReasonOut.model_validate(suggest_rejection_reason(reason_data.reason_code, leave_request))


@router.get("/predictions", response_model=ForecastOut)
async def predictions_endpoint(
    months: int = Query(3, ge=1, le=12),
    department_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.MANAGER, Role.ADMIN))
):
    """Historical approved-leave demand per month and a short trend forecast"""
    return ForecastOut.model_validate(get_forecast(db, today_utc(), months=months, department_id=department_id))
