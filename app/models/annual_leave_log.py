from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime
from sqlalchemy.sql import func
from app.database import Base
import enum


class AnnualLeaveAction(str, enum.Enum):
    GRANT = "grant"
    RESET = "reset"


class AnnualLeaveLog(Base):
    """Append-only audit trail of entitlement grants and resets."""
    __tablename__ = "annual_leave_logs"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    year = Column(Float, nullable=False)  # nominal tenure year, 0.5 for the half-year grant
    action = Column(String, nullable=False)
    days_change = Column(Float, nullable=False)
    description = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
