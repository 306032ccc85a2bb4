from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import date, datetime


class ClockOutRequest(BaseModel):
    break_hours: Optional[float] = None  # hourly employees only


class AttendanceEditRequest(BaseModel):
    clock_in_time: datetime
    clock_out_time: Optional[datetime] = None
    break_hours: Optional[float] = None
    reason: Optional[str] = None


class AttendanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    work_date: date
    clock_in_time: datetime
    clock_out_time: Optional[datetime] = None
    work_hours: float
    break_hours: float
    status: str
    is_edited: bool


class AttendanceEditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    attendance_id: int
    editor_id: int
    old_clock_in_time: Optional[datetime] = None
    old_clock_out_time: Optional[datetime] = None
    new_clock_in_time: Optional[datetime] = None
    new_clock_out_time: Optional[datetime] = None
    reason: Optional[str] = None
    created_at: Optional[datetime] = None
