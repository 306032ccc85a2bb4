from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, ForeignKey, Text, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import enum


class SalaryState(str, enum.Enum):
    UNSETTLED = "unsettled"  # live cache, recomputed on every read
    SETTLED = "settled"  # frozen snapshot in settled_data


class SalaryRecord(Base):
    """
    While is_paid is false every numeric column except bonus is a cache of the
    last live computation (stamped by computed_at). Once is_paid is true,
    settled_data is the source of truth and the columns mirror it.
    """
    __tablename__ = "salary_records"
    __table_args__ = (
        UniqueConstraint("employee_id", "year_month", name="uq_salary_employee_month"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    year_month = Column(String(7), nullable=False, index=True)  # YYYY-MM
    base_salary = Column(Float, default=0.0, nullable=False)
    bonus = Column(Float, default=0.0, nullable=False)
    total_salary = Column(Float, default=0.0, nullable=False)
    work_hours = Column(Float, default=0.0, nullable=False)
    notes = Column(Text, nullable=True)
    computed_at = Column(DateTime(timezone=True), nullable=True)
    is_paid = Column(Boolean, default=False, nullable=False)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    settled_data = Column(JSON(none_as_null=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    employee = relationship("Employee")

    @property
    def state(self) -> SalaryState:
        if self.is_paid and self.settled_data:
            return SalaryState.SETTLED
        return SalaryState.UNSETTLED
