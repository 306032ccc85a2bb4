from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.clock import CivilClock, get_clock
from app.database import get_db
from app.models.employee import Employee
from app.routers.auth_deps import get_current_user
from app.schemas.salary import BonusUpdateRequest, SalaryBreakdownResponse, SalaryPeriodRequest
from app.services import salary_service
from app.services.auth import ensure_manager

router = APIRouter(prefix="/salary", tags=["salary"])


@router.get("/", response_model=List[SalaryBreakdownResponse])
def list_month(
    year_month: str,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return salary_service.list_monthly_salaries(db, current_user, year_month)


@router.get("/my", response_model=List[SalaryBreakdownResponse])
def my_salary_records(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return salary_service.get_my_salary_records(db, current_user)


@router.get("/{employee_id}", response_model=SalaryBreakdownResponse)
def calculate(
    employee_id: int,
    year_month: str,
    force_live: Optional[bool] = False,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Preview a month's salary. Never writes."""
    ensure_manager(current_user)
    return salary_service.calculate_monthly_salary(db, employee_id, year_month, force_live=force_live).to_dict()


@router.post("/{employee_id}/save", response_model=Optional[SalaryBreakdownResponse])
def save_live_cache(
    employee_id: int,
    period: SalaryPeriodRequest,
    db: Session = Depends(get_db),
    clock: CivilClock = Depends(get_clock),
    current_user: Employee = Depends(get_current_user),
):
    """Persist the live figures. Returns null when the month is settled."""
    ensure_manager(current_user)
    breakdown = salary_service.calculate_monthly_salary(db, employee_id, period.year_month)
    if salary_service.save_salary_record(db, breakdown, clock) is None:
        return None
    return breakdown.to_dict()


@router.post("/{employee_id}/settle", response_model=SalaryBreakdownResponse)
def settle(
    employee_id: int,
    period: SalaryPeriodRequest,
    db: Session = Depends(get_db),
    clock: CivilClock = Depends(get_clock),
    current_user: Employee = Depends(get_current_user),
):
    return salary_service.settle_salary(db, current_user, employee_id, period.year_month, clock).to_dict()


@router.post("/{employee_id}/resettle", response_model=SalaryBreakdownResponse)
def resettle(
    employee_id: int,
    period: SalaryPeriodRequest,
    db: Session = Depends(get_db),
    clock: CivilClock = Depends(get_clock),
    current_user: Employee = Depends(get_current_user),
):
    return salary_service.resettle_salary(db, current_user, employee_id, period.year_month, clock).to_dict()


@router.put("/{employee_id}/bonus", response_model=SalaryBreakdownResponse)
def update_bonus(
    employee_id: int,
    body: BonusUpdateRequest,
    db: Session = Depends(get_db),
    clock: CivilClock = Depends(get_clock),
    current_user: Employee = Depends(get_current_user),
):
    return salary_service.update_bonus(
        db, current_user, employee_id, body.year_month, body.bonus, body.notes, clock,
    ).to_dict()
