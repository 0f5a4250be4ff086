"""
In-app notification model
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text, JSON, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from leavewise.db.base import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    subject_employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False)
    kind = Column(String(50), nullable=False)  # e.g. "leave:approved"
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    recipient = relationship("Employee", foreign_keys=[recipient_id])

    __table_args__ = (
        Index('ix_notifications_recipient_read', 'recipient_id', 'is_read'),
    )
