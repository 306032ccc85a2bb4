from pydantic import BaseModel, Field
from typing import Optional
from datetime import date


class EmployeeCreate(BaseModel):
    email: str
    password: str = Field(min_length=8)
    display_name: str
    employee_code: Optional[str] = None
    role: str = "employee"
    salary_type: str = "monthly"
    salary_amount: float = 0.0
    work_start_time: Optional[str] = None
    work_end_time: Optional[str] = None
    break_hours: float = 1.0
    onboard_date: Optional[date] = None


class EmployeeUpdate(BaseModel):
    display_name: Optional[str] = None
    employee_code: Optional[str] = None
    role: Optional[str] = None
    is_active: Optional[bool] = None
    salary_type: Optional[str] = None
    salary_amount: Optional[float] = None
    work_start_time: Optional[str] = None
    work_end_time: Optional[str] = None
    break_hours: Optional[float] = None
    onboard_date: Optional[date] = None
    annual_leave_total: Optional[float] = None
