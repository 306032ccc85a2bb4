# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import (
    employee, attendance,
    leave_request, leave_balance,
    salary_record, annual_leave_log, notification
)

# Explicit class exports for cleaner imports
from .employee import Employee, EmployeeRole, SalaryType
from .attendance import AttendanceRecord, AttendanceEditLog, AttendanceStatus
from .leave_request import LeaveRequest, LeaveCancellationRequest, LeaveStatus, CancellationStatus
from .leave_balance import LeaveBalance
from .salary_record import SalaryRecord, SalaryState
from .annual_leave_log import AnnualLeaveLog, AnnualLeaveAction
from .notification import Notification

__all__ = [
    "Employee",
    "EmployeeRole",
    "SalaryType",
    "AttendanceRecord",
    "AttendanceEditLog",
    "AttendanceStatus",
    "LeaveRequest",
    "LeaveCancellationRequest",
    "LeaveStatus",
    "CancellationStatus",
    "LeaveBalance",
    "SalaryRecord",
    "SalaryState",
    "AnnualLeaveLog",
    "AnnualLeaveAction",
    "Notification",
]
