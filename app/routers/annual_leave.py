import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.clock import CivilClock, get_clock
from app.core.limiter import limiter
from app.database import get_db
from app.models.employee import Employee
from app.routers.auth_deps import get_current_user, verify_cron_secret
from app.services import annual_leave
from app.services.auth import ensure_manager
from app.services.employee_service import get_employee

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/annual-leave", tags=["annual-leave"])


@router.get("/cron", dependencies=[Depends(verify_cron_secret)])
@limiter.limit("10/minute")
def cron_trigger(
    request: Request,
    db: Session = Depends(get_db),
    clock: CivilClock = Depends(get_clock),
):
    """Daily scheduler entry point."""
    logger.info("Annual leave accrual triggered by scheduler")
    return annual_leave.run_annual_leave_accrual(db, clock)


@router.post("/run")
def run_now(
    employee_id: Optional[int] = None,
    db: Session = Depends(get_db),
    clock: CivilClock = Depends(get_clock),
    current_user: Employee = Depends(get_current_user),
):
    ensure_manager(current_user)
    logger.info(f"Annual leave accrual triggered by employee {current_user.id}")
    return annual_leave.run_annual_leave_accrual(db, clock, employee_id=employee_id)


@router.get("/entitlement/{employee_id}")
def entitlement_preview(
    employee_id: int,
    target_date: Optional[date] = None,
    db: Session = Depends(get_db),
    clock: CivilClock = Depends(get_clock),
    current_user: Employee = Depends(get_current_user),
):
    """What the accrual job would grant this employee on target_date (default today)."""
    employee = get_employee(db, current_user, employee_id)
    target = target_date or clock.today()
    result = {"employee_id": employee.id, "date": target.isoformat(), "onboard_date": employee.onboard_date}
    if employee.onboard_date is None:
        result.update({"days": 0, "tenure_years": 0, "is_grant_date": False})
        return result
    result.update(annual_leave.entitlement_to_dict(
        annual_leave.calculate_entitlement(employee.onboard_date, target)
    ))
    return result
