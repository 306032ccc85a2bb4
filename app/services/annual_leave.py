"""
Annual Leave Entitlement

Statutory annual-leave entitlement by length of service, and the daily
accrual job that grants it on the half-year mark and on each anniversary.

Entitlement bands:
- 6 months (first year only): 3 days
- 1-2 years: 7, 2-3 years: 10, 3-5 years: 14, 5-10 years: 15
- 10+ years: 15 plus 1 per year beyond 10, capped at 30
"""
import calendar
import logging
from dataclasses import dataclass, asdict
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.clock import CivilClock, add_months, months_of_service, years_of_service
from app.models.annual_leave_log import AnnualLeaveLog, AnnualLeaveAction
from app.models.employee import Employee

logger = logging.getLogger(__name__)

HALF_YEAR_DAYS = 3
MAX_ENTITLEMENT_DAYS = 30


@dataclass(frozen=True)
class Entitlement:
    days: int
    tenure_years: float
    is_grant_date: bool


def entitlement_for_years(years: int) -> int:
    if years < 1:
        return 0
    if years < 2:
        return 7
    if years < 3:
        return 10
    if years < 5:
        return 14
    if years < 10:
        return 15
    return min(15 + (years - 10), MAX_ENTITLEMENT_DAYS)


def _is_anniversary(onboard_date: date, target_date: date) -> bool:
    if (onboard_date.month, onboard_date.day) == (target_date.month, target_date.day):
        return True
    # Feb 29 hires celebrate on Feb 28 in common years
    return (
        onboard_date.month == 2
        and onboard_date.day == 29
        and target_date.month == 2
        and target_date.day == 28
        and not calendar.isleap(target_date.year)
    )


def calculate_entitlement(onboard_date: date, target_date: date) -> Entitlement:
    """
    Entitlement granted on target_date, if it is a grant date.

    Pure: no I/O, no clock. Callers pass the civil "today".
    """
    years = years_of_service(onboard_date, target_date)

    if target_date == add_months(onboard_date, 6):
        return Entitlement(days=HALF_YEAR_DAYS, tenure_years=0.5, is_grant_date=True)

    if _is_anniversary(onboard_date, target_date):
        # Feb 29 hires on a common-year Feb 28 have not completed the year by date arithmetic
        if onboard_date.month == 2 and onboard_date.day == 29 and target_date.day == 28:
            years = target_date.year - onboard_date.year
        if years >= 1:
            return Entitlement(days=entitlement_for_years(years), tenure_years=years, is_grant_date=True)

    return Entitlement(days=0, tenure_years=years, is_grant_date=False)


def calculate_annual_leave_days(onboard_date: date, target_year: int) -> int:
    """
    Entitlement for a calendar year, with service measured at the year's end.
    Used to seed a LeaveBalance the first time a year is read.
    """
    year_end = date(target_year, 12, 31)
    if months_of_service(onboard_date, year_end) < 6:
        return 0
    years = years_of_service(onboard_date, year_end)
    if years < 1:
        return HALF_YEAR_DAYS
    return entitlement_for_years(years)


# ---------------------------------------------------------------------------
# Accrual job
# ---------------------------------------------------------------------------

class AccrualOutcome:
    GRANTED = "granted"
    SKIPPED_ALREADY_RUN = "skipped_already_run"
    FAILED = "failed"


def _grant(db: Session, employee: Employee, entitlement: Entitlement, today: date) -> Dict[str, Any]:
    """Reset-then-grant for one employee; committed as one unit."""
    remaining = (employee.annual_leave_total or 0.0) - (employee.annual_leave_used or 0.0)

    # Claim today's run first: the conditional update is the idempotency guard
    claimed = db.query(Employee).filter(
        Employee.id == employee.id,
        or_(Employee.last_reset_date.is_(None), Employee.last_reset_date != today),
    ).update(
        {
            Employee.annual_leave_total: entitlement.days,
            Employee.annual_leave_used: 0.0,
            Employee.last_reset_date: today,
        },
        synchronize_session=False,
    )
    if claimed == 0:
        db.rollback()
        return {"status": AccrualOutcome.SKIPPED_ALREADY_RUN}

    if remaining > 0:
        db.add(AnnualLeaveLog(
            employee_id=employee.id,
            year=entitlement.tenure_years,
            action=AnnualLeaveAction.RESET.value,
            days_change=-remaining,
            description=f"Annual settlement (remaining: {remaining:g})",
        ))
    db.add(AnnualLeaveLog(
        employee_id=employee.id,
        year=entitlement.tenure_years,
        action=AnnualLeaveAction.GRANT.value,
        days_change=entitlement.days,
        description=f"Granted for {entitlement.tenure_years:g} year(s) of service",
    ))
    db.commit()
    db.refresh(employee)
    return {"status": AccrualOutcome.GRANTED, "days": entitlement.days, "year": entitlement.tenure_years}


def run_annual_leave_accrual(
    db: Session,
    clock: CivilClock,
    employee_id: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Grant annual leave to every active employee whose grant date is today.

    Safe to run any number of times per civil day. A failure for one employee
    is recorded in its result entry and does not stop the batch.
    """
    today = clock.today()
    query = db.query(Employee).filter(
        Employee.is_active.is_(True),
        Employee.onboard_date.isnot(None),
    )
    if employee_id is not None:
        query = query.filter(Employee.id == employee_id)
    employees = query.order_by(Employee.id).all()

    logger.info(f"Annual leave accrual for {today.isoformat()}: checking {len(employees)} employee(s)")

    results: List[Dict[str, Any]] = []
    for emp in employees:
        entry: Dict[str, Any] = {"employee_id": emp.id, "name": emp.display_name}
        try:
            if emp.last_reset_date == today:
                entry["status"] = AccrualOutcome.SKIPPED_ALREADY_RUN
                results.append(entry)
                continue

            entitlement = calculate_entitlement(emp.onboard_date, today)
            if not entitlement.is_grant_date:
                continue

            entry.update(_grant(db, emp, entitlement, today))
        except Exception as e:
            db.rollback()
            logger.error(f"Annual leave grant failed for employee {emp.id}: {e}", exc_info=True)
            entry.update({"status": AccrualOutcome.FAILED, "error": str(e)})
        results.append(entry)

    summary = {
        "date": today.isoformat(),
        "checked": len(employees),
        "granted": sum(1 for r in results if r["status"] == AccrualOutcome.GRANTED),
        "skipped": sum(1 for r in results if r["status"] == AccrualOutcome.SKIPPED_ALREADY_RUN),
        "failed": sum(1 for r in results if r["status"] == AccrualOutcome.FAILED),
        "results": results,
    }
    logger.info(
        f"Annual leave accrual done: {summary['granted']} granted, "
        f"{summary['skipped']} skipped, {summary['failed']} failed"
    )
    return summary


def entitlement_to_dict(entitlement: Entitlement) -> Dict[str, Any]:
    return asdict(entitlement)
