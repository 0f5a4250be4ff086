"""
Reimbursement claim model
"""
from sqlalchemy import (
    Column,
    Integer,
    Date,
    DateTime,
    ForeignKey,
    String,
    Text,
    Numeric,
    Enum as SQLEnum,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import text
import enum
from leavewise.db.base import Base


class ClaimCategory(str, enum.Enum):
    TRAVEL = "travel"
    MEDICAL = "medical"
    FOOD = "food"
    EQUIPMENT = "equipment"
    TRAINING = "training"
    OTHER = "other"


class ClaimStatus(str, enum.Enum):
    PENDING = "pending"
    MANAGER_APPROVED = "manager_approved"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class ReimbursementClaim(Base):
    __tablename__ = "reimbursement_claims"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    category = Column(
        SQLEnum(ClaimCategory, name="claim_category", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    description = Column(Text, nullable=False)
    expense_date = Column(Date, nullable=False)
    receipt_url = Column(String(500), nullable=True)
    status = Column(
        SQLEnum(ClaimStatus, name="claim_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ClaimStatus.PENDING,
        index=True,
    )
    approver_comment = Column(Text, nullable=True)
    approved_by_id = Column(Integer, ForeignKey("employees.id"), nullable=True, index=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    version = Column(Integer, nullable=False, default=1)
    submitted_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    employee = relationship("Employee", foreign_keys=[employee_id])
    approved_by = relationship("Employee", foreign_keys=[approved_by_id])

    __table_args__ = (
        CheckConstraint('amount > 0', name='check_claim_amount_positive'),
    )
