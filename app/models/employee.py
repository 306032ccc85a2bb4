"""
Employee Model.
Identity, role, pay terms, work schedule and annual-leave entitlement state.
Employees are never deleted, only deactivated.
"""
from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Boolean
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from app.database import Base


class EmployeeRole(str, enum.Enum):
    EMPLOYEE = "employee"
    MANAGER = "manager"
    SUPER_ADMIN = "super_admin"


class SalaryType(str, enum.Enum):
    HOURLY = "hourly"
    MONTHLY = "monthly"


MANAGER_ROLES = (EmployeeRole.MANAGER.value, EmployeeRole.SUPER_ADMIN.value)


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    display_name = Column(String, nullable=True)
    employee_code = Column(String, nullable=True)

    role = Column(String, default=EmployeeRole.EMPLOYEE.value, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Pay terms: hourly rate or monthly base, depending on salary_type
    salary_type = Column(String, default=SalaryType.MONTHLY.value, nullable=False)
    salary_amount = Column(Float, default=0.0, nullable=False)

    # Work schedule (civil time of day, HH:MM:SS)
    work_start_time = Column(String, nullable=True)
    work_end_time = Column(String, nullable=True)
    break_hours = Column(Float, default=1.0, nullable=False)  # monthly employees only

    # Annual leave
    onboard_date = Column(Date, nullable=True)
    annual_leave_total = Column(Float, default=0.0, nullable=False)
    annual_leave_used = Column(Float, default=0.0, nullable=False)
    last_reset_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    attendance_records = relationship("AttendanceRecord", back_populates="employee")
    leave_requests = relationship("LeaveRequest", foreign_keys="LeaveRequest.employee_id", back_populates="employee")
    notifications = relationship("Notification", back_populates="employee")

    def __repr__(self):
        return f"<Employee {self.email} ({self.role})>"

    @property
    def is_manager(self) -> bool:
        """Managers and super admins review leave and run payroll."""
        return self.role in MANAGER_ROLES

    @property
    def is_hourly(self) -> bool:
        return self.salary_type == SalaryType.HOURLY.value
