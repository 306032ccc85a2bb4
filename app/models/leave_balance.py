from sqlalchemy import Column, Integer, Float, ForeignKey, UniqueConstraint
from app.database import Base


class LeaveBalance(Base):
    """Annual-leave balance per employee and calendar year."""
    __tablename__ = "leave_balances"
    __table_args__ = (
        UniqueConstraint("employee_id", "year", name="uq_leave_balance_employee_year"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    total_days = Column(Float, default=0.0, nullable=False)
    used_days = Column(Float, default=0.0, nullable=False)  # cache of pending+approved
