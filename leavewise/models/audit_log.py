"""
Audit log model (append only)
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.sql import func
import enum
from leavewise.db.base import Base


class AuditAction(str, enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    actor_id = Column(Integer, ForeignKey("employees.id"), nullable=True, index=True)  # NULL for the expiry sweep
    action = Column(String(10), nullable=False)  # AuditAction value
    target_model = Column(String(50), nullable=False, index=True)  # e.g. "LeaveRequest", "ReimbursementClaim"
    target_id = Column(Integer, nullable=True)
    changes = Column(JSON, nullable=True)  # {"before": {...}, "after": {...}} or free-form context
    ip_address = Column(String(45), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
