"""
Holiday calendar model
"""
from sqlalchemy import Column, Integer, Date, DateTime, String, Boolean, Enum as SQLEnum, UniqueConstraint
from sqlalchemy.sql import func
import enum
from leavewise.db.base import Base


class HolidayType(str, enum.Enum):
    NATIONAL = "national"
    COMPANY = "company"


class Holiday(Base):
    __tablename__ = "holidays"

    id = Column(Integer, primary_key=True, index=True)
    year = Column(Integer, nullable=False, index=True)  # Year of `date`; recurring holidays reapply to other years
    date = Column(Date, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    type = Column(
        SQLEnum(HolidayType, name="holiday_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=HolidayType.COMPANY,
    )
    is_recurring = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint('year', 'date', name='uq_holiday_year_date'),
    )
