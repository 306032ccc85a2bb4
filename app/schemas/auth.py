from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import date, datetime


class LoginRequest(BaseModel):
    email: str
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str
    user: Optional[dict] = None


class TokenData(BaseModel):
    email: Optional[str] = None
    role: Optional[str] = None


class EmployeeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    display_name: Optional[str] = None
    employee_code: Optional[str] = None
    role: str
    is_active: bool
    salary_type: str
    salary_amount: float
    work_start_time: Optional[str] = None
    work_end_time: Optional[str] = None
    break_hours: float
    onboard_date: Optional[date] = None
    annual_leave_total: float
    annual_leave_used: float
    last_reset_date: Optional[date] = None
    created_at: Optional[datetime] = None


class ProfileUpdate(BaseModel):
    display_name: str


class PasswordChangeRequest(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str
