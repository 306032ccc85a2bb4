from pydantic import BaseModel, ConfigDict
from datetime import date, datetime
from typing import Literal, Optional


class LeaveRequestCreate(BaseModel):
    leave_type: str
    start_date: date
    end_date: date
    days: float
    reason: str


class LeaveRequestResponse(BaseModel):
    id: int
    employee_id: int
    leave_type: str
    start_date: date
    end_date: date
    days: float
    reason: str
    status: str
    reviewer_id: Optional[int] = None
    review_comment: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class LeaveReviewRequest(BaseModel):
    status: Literal["approved", "rejected"]
    comment: Optional[str] = None


class LeaveCancelRequest(BaseModel):
    reason: Optional[str] = None


class CancellationReviewRequest(BaseModel):
    approve: bool


class CancellationResponse(BaseModel):
    id: int
    leave_id: int
    employee_id: int
    reason: Optional[str] = None
    status: str
    reviewer_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class LeaveBalanceResponse(BaseModel):
    employee_id: int
    year: int
    total_days: float
    pending_days: float
    approved_days: float
    used_days: float
    remaining_days: float
    annual_leave_total: float
    annual_leave_used: float
    last_reset_date: Optional[date] = None
