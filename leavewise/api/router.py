"""
Main API router
"""
from fastapi import APIRouter

from leavewise.api.v1 import (
    health,
    version,
    auth,
    departments,
    employees,
    leaves,
    reimbursements,
    holidays,
    notifications,
    audit,
    ai,
    analytics,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(version.router, tags=["version"])
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(departments.router, prefix="/departments", tags=["departments"])
api_router.include_router(employees.router, prefix="/employees", tags=["employees"])
api_router.include_router(leaves.router, prefix="/leaves", tags=["leaves"])
api_router.include_router(reimbursements.router, prefix="/reimbursements", tags=["reimbursements"])
api_router.include_router(holidays.router, prefix="/holidays", tags=["holidays"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(audit.router, prefix="/audit", tags=["audit"])
api_router.include_router(ai.router, prefix="/ai", tags=["advisory"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
