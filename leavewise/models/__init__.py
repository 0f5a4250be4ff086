"""
Database models
"""
from leavewise.models.department import Department, DEFAULT_LEAVE_POLICY
from leavewise.models.employee import Employee, Role
from leavewise.models.audit_log import AuditLog, AuditAction
from leavewise.models.leave import (
    LeaveRequest,
    LeaveBalance,
    LeaveTransaction,
    LeaveType,
    LeaveStatus,
    LeaveTransactionAction,
    CAP_EXEMPT_LEAVE_TYPES,
    ACTIVE_LEAVE_STATUSES,
)
from leavewise.models.reimbursement import ReimbursementClaim, ClaimCategory, ClaimStatus
from leavewise.models.holiday import Holiday, HolidayType
from leavewise.models.notification import Notification

__all__ = [
    "Department",
    "DEFAULT_LEAVE_POLICY",
    "Employee",
    "Role",
    "AuditLog",
    "AuditAction",
    "LeaveRequest",
    "LeaveBalance",
    "LeaveTransaction",
    "LeaveType",
    "LeaveStatus",
    "LeaveTransactionAction",
    "CAP_EXEMPT_LEAVE_TYPES",
    "ACTIVE_LEAVE_STATUSES",
    "ReimbursementClaim",
    "ClaimCategory",
    "ClaimStatus",
    "Holiday",
    "HolidayType",
    "Notification",
]
