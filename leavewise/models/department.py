"""
Department model with its leave policy
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, text
from sqlalchemy.orm import relationship
from leavewise.db.base import Base

# Entitlements handed to employees of a department with no explicit policy
DEFAULT_LEAVE_POLICY = {
    "annual": 20,
    "sick": 10,
    "personal": 5,
    "maternity": 90,
    "paternity": 15,
}


class Department(Base):
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    code = Column(String(10), unique=True, nullable=False, index=True)
    manager_id = Column(
        Integer,
        ForeignKey("employees.id", use_alter=True, name="fk_departments_manager_id"),
        nullable=True,
    )

    # Leave policy: annual entitlement per leave type
    annual_days = Column(Integer, nullable=False, default=DEFAULT_LEAVE_POLICY["annual"])
    sick_days = Column(Integer, nullable=False, default=DEFAULT_LEAVE_POLICY["sick"])
    personal_days = Column(Integer, nullable=False, default=DEFAULT_LEAVE_POLICY["personal"])
    maternity_days = Column(Integer, nullable=False, default=DEFAULT_LEAVE_POLICY["maternity"])
    paternity_days = Column(Integer, nullable=False, default=DEFAULT_LEAVE_POLICY["paternity"])
    # NULL means unlimited; never applied to maternity/paternity
    max_consecutive_days = Column(Integer, nullable=True, default=15)

    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    manager = relationship("Employee", foreign_keys=[manager_id], post_update=True)
    employees = relationship("Employee", foreign_keys="Employee.department_id", back_populates="department")

    def leave_policy(self) -> dict:
        """Entitlement per leave type value, e.g. {"annual": 20, ...}"""
        return {
            "annual": self.annual_days,
            "sick": self.sick_days,
            "personal": self.personal_days,
            "maternity": self.maternity_days,
            "paternity": self.paternity_days,
        }
