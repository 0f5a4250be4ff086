"""
Dependencies and guards for FastAPI endpoints
"""
from typing import Generator, Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from leavewise.db.session import SessionLocal
from leavewise.core.security import decode_token
from leavewise.models.employee import Employee, Role
from leavewise.services.transitions import Actor


security = HTTPBearer()


def get_db() -> Generator:
    """Dependency for getting database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _unauthorized(detail: str = "Invalid authentication credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def employee_from_token(db: Session, token: str) -> Optional[Employee]:
    """
    Resolve an active employee from a bearer token, or None.
    Shared by the HTTP guard and the notification WebSocket.
    """
    try:
        payload = decode_token(token)
        employee_id = int(payload.get("sub"))
    except (ValueError, TypeError):
        return None
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None or not employee.active:
        return None
    return employee


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> Employee:
    """
    Get current authenticated user from JWT token
    """
    token = credentials.credentials

    try:
        payload = decode_token(token)
        sub_value = payload.get("sub")
        if sub_value is None:
            raise _unauthorized()
        # JWT 'sub' is a string
        employee_id: int = int(sub_value)
    except (ValueError, TypeError):
        raise _unauthorized()

    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None:
        raise _unauthorized("User not found")

    if not employee.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user"
        )

    return employee


def get_actor(current_user: Employee = Depends(get_current_user)) -> Actor:
    """The explicit session object core operations authorize against"""
    return Actor(id=current_user.id, role=current_user.role)


def require_roles(*allowed_roles: Role):
    """
    Dependency factory for role-based access control

    Usage:
        @router.get("/admin-only")
        async def admin_endpoint(user: Employee = Depends(require_roles(Role.ADMIN))):
            ...
    """
    allowed = {Role(r).value for r in allowed_roles}

    def role_checker(current_user: Employee = Depends(get_current_user)) -> Employee:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {sorted(allowed)}"
            )
        return current_user
    return role_checker


def get_client_ip(request) -> Optional[str]:
    """Best-effort client address, honouring X-Forwarded-For"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
