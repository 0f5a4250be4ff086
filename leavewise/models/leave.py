"""
Leave models
"""
from sqlalchemy import (
    Column,
    Integer,
    Date,
    DateTime,
    ForeignKey,
    String,
    Text,
    Enum as SQLEnum,
    Boolean,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import text
import enum
from leavewise.db.base import Base


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class LeaveType(str, enum.Enum):
    ANNUAL = "annual"
    SICK = "sick"
    PERSONAL = "personal"
    MATERNITY = "maternity"
    PATERNITY = "paternity"


class LeaveStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


# Leave types never subject to the department max_consecutive_days cap
CAP_EXEMPT_LEAVE_TYPES = (LeaveType.MATERNITY, LeaveType.PATERNITY)

# Statuses that block an overlapping submission
ACTIVE_LEAVE_STATUSES = (LeaveStatus.PENDING, LeaveStatus.APPROVED)


class LeaveTransactionAction(str, enum.Enum):
    ALLOCATE = "ALLOCATE"
    APPROVE_DEDUCT = "APPROVE_DEDUCT"
    CANCEL_RESTORE = "CANCEL_RESTORE"
    MANUAL_ADJUST = "MANUAL_ADJUST"


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    leave_type = Column(SQLEnum(LeaveType, name="leave_type", values_callable=_enum_values), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    total_days = Column(Integer, nullable=False)  # Mon-Fri working days in [start_date, end_date]
    deducted_days = Column(Integer, nullable=False, default=0)  # What approval took from the ledger
    reason = Column(Text, nullable=False)
    is_urgent = Column(Boolean, nullable=False, default=False)
    status = Column(
        SQLEnum(LeaveStatus, name="leave_status", values_callable=_enum_values),
        nullable=False,
        default=LeaveStatus.PENDING,
        index=True,
    )
    manager_comment = Column(Text, nullable=True)
    processed_by_id = Column(Integer, ForeignKey("employees.id"), nullable=True, index=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    version = Column(Integer, nullable=False, default=1)
    applied_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    # Relationships
    employee = relationship("Employee", foreign_keys=[employee_id], back_populates="leave_requests")
    processed_by = relationship("Employee", foreign_keys=[processed_by_id])

    __table_args__ = (
        Index('ix_leave_requests_employee_dates', 'employee_id', 'start_date', 'end_date'),
        CheckConstraint('start_date <= end_date', name='check_start_date_le_end_date'),
        CheckConstraint('total_days > 0', name='check_total_days_positive'),
    )


class LeaveBalance(Base):
    """
    Ledger row: remaining days for one (employee_id, leave_type).
    `version` is bumped by every compare-and-set update in balance_ledger.
    """
    __tablename__ = "leave_balances"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    leave_type = Column(SQLEnum(LeaveType, name="leave_type", values_callable=_enum_values), nullable=False)
    days = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    # Relationships
    employee = relationship("Employee", back_populates="balances")

    __table_args__ = (
        UniqueConstraint("employee_id", "leave_type", name="uq_leave_balances_employee_type"),
        CheckConstraint("days >= 0", name="check_leave_balance_non_negative"),
    )


class LeaveTransaction(Base):
    """Ledger history: allocation, approve deduct, cancel restore, manual adjust."""
    __tablename__ = "leave_transactions"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    leave_id = Column(Integer, ForeignKey("leave_requests.id", ondelete="SET NULL"), nullable=True, index=True)
    leave_type = Column(SQLEnum(LeaveType, name="leave_type", values_callable=_enum_values), nullable=False)
    delta_days = Column(Integer, nullable=False)  # + for credit, - for deduct
    action = Column(String(30), nullable=False)  # LeaveTransactionAction value
    remarks = Column(Text, nullable=True)
    action_by_id = Column(Integer, ForeignKey("employees.id", ondelete="SET NULL"), nullable=True, index=True)
    action_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)

    employee = relationship("Employee", foreign_keys=[employee_id])
    leave_request = relationship("LeaveRequest", foreign_keys=[leave_id])
    action_by = relationship("Employee", foreign_keys=[action_by_id])
