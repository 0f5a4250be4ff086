"""
Authentication endpoints
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import func
from sqlalchemy.orm import Session
from leavewise.core.deps import get_db, get_current_user, get_client_ip
from leavewise.core.security import verify_password, create_access_token
from leavewise.models.audit_log import AuditAction
from leavewise.models.employee import Employee
from leavewise.schemas.auth import LoginRequest, TokenResponse
from leavewise.services.audit_service import log_audit

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Authenticate user and return JWT token

    Validates email and password, rejects inactive employees.
    """
    employee = db.query(Employee).filter(func.lower(Employee.email) == login_data.email.strip().lower()).first()

    if not employee:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    if not employee.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive"
        )

    if employee.password_hash is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No password set for this account"
        )

    if not verify_password(login_data.password, employee.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    # JWT 'sub' claim must be a string
    token_data = {
        "sub": str(employee.id),
        "email": employee.email,
        "role": employee.role,
    }
    access_token = create_access_token(data=token_data)

    # Don't fail login if audit fails
    try:
        log_audit(
            db=db,
            actor_id=employee.id,
            action=AuditAction.LOGIN.value,
            target_model="Employee",
            target_id=employee.id,
            changes={"role": employee.role},
            ip_address=get_client_ip(request),
        )
    except Exception as e:
        db.rollback()
        logger.warning("Failed to log audit for login: %s", e)

    return TokenResponse(access_token=access_token, token_type="bearer", employee_id=employee.id, role=employee.role)


@router.post("/logout", status_code=204)
async def logout(
    request: Request,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """
    Record a logout. Tokens are stateless; the client discards its token.
    """
    log_audit(
        db=db,
        actor_id=current_user.id,
        action=AuditAction.LOGOUT.value,
        target_model="Employee",
        target_id=current_user.id,
        ip_address=get_client_ip(request),
    )
