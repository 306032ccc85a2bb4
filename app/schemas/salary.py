from pydantic import BaseModel, Field
from typing import Any, Dict, Optional


class SalaryBreakdownResponse(BaseModel):
    record_id: Optional[int] = None
    employee_id: int
    year_month: str
    state: str
    is_settled: bool
    salary_type: str
    rate: float
    base_salary: float
    bonus: float
    total_salary: float
    work_hours: float
    notes: Optional[str] = None
    details: Dict[str, Any] = {}
    computed_at: Optional[str] = None
    paid_at: Optional[str] = None
    display_name: Optional[str] = None
    employee_code: Optional[str] = None


class SalaryPeriodRequest(BaseModel):
    year_month: str = Field(pattern=r"^\d{4}-\d{2}$")


class BonusUpdateRequest(SalaryPeriodRequest):
    bonus: float
    notes: Optional[str] = None
