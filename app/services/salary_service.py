"""
Salary Service Layer

Monthly salary calculation and the settle/resettle state machine.

A month's salary is either UNSETTLED, recomputed from attendance and approved
leave every time it is read, or SETTLED, a frozen JSON snapshot that later
data changes cannot touch until the month is explicitly resettled.

Architecture:
- calculate_monthly_salary() computes and never writes
- save_salary_record() is the explicit, idempotent upsert of the live cache
- settle/resettle/update_bonus are guarded by conditional updates on is_paid
"""
import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.clock import CivilClock, month_bounds, to_storage
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.database import retry_transient, store_errors
from app.models.attendance import AttendanceRecord
from app.models.employee import Employee, SalaryType
from app.models.leave_request import LeaveRequest, LeaveStatus
from app.models.salary_record import SalaryRecord, SalaryState
from app.services.auth import ensure_authenticated, ensure_manager
from app.services.notification import NotificationService

logger = logging.getLogger(__name__)


@dataclass
class SalaryBreakdown:
    employee_id: int
    year_month: str
    state: SalaryState
    salary_type: str
    rate: float
    base_salary: float
    bonus: float
    total_salary: float
    work_hours: float
    notes: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    record_id: Optional[int] = None
    computed_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None

    @property
    def is_settled(self) -> bool:
        return self.state == SalaryState.SETTLED

    def to_snapshot(self, settled_at: datetime) -> Dict[str, Any]:
        """The immutable JSON document stored in settled_data."""
        return {
            "salary_type": self.salary_type,
            "rate": self.rate,
            "base_salary": self.base_salary,
            "bonus": self.bonus,
            "total_salary": self.total_salary,
            "work_hours": self.work_hours,
            "details": dict(self.details),
            "settled_at": settled_at.isoformat(),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "employee_id": self.employee_id,
            "year_month": self.year_month,
            "state": self.state.value,
            "is_settled": self.is_settled,
            "salary_type": self.salary_type,
            "rate": self.rate,
            "base_salary": self.base_salary,
            "bonus": self.bonus,
            "total_salary": self.total_salary,
            "work_hours": self.work_hours,
            "notes": self.notes,
            "details": self.details,
            "computed_at": self.computed_at.isoformat() if self.computed_at else None,
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
        }


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def _get_employee(db: Session, employee_id: int) -> Employee:
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if not employee:
        raise NotFoundError(f"Employee {employee_id} not found")
    return employee


def _get_record(db: Session, employee_id: int, year_month: str) -> Optional[SalaryRecord]:
    return db.query(SalaryRecord).filter(
        SalaryRecord.employee_id == employee_id,
        SalaryRecord.year_month == year_month,
    ).first()


def _is_flag(status: Optional[str], flag: str) -> bool:
    return flag in (status or "").split()


def _leave_days_in_month(leave: LeaveRequest, first: date, last: date) -> float:
    """A leave crossing the month boundary counts in proportion to its calendar days inside the month."""
    span = (leave.end_date - leave.start_date).days + 1
    overlap = (min(leave.end_date, last) - max(leave.start_date, first)).days + 1
    if overlap <= 0:
        return 0.0
    if overlap >= span:
        return float(leave.days)
    return round(float(leave.days) * overlap / span, 2)


@retry_transient
def aggregate_month(db: Session, employee_id: int, year_month: str) -> Dict[str, Any]:
    """Attendance and approved-leave totals for one employee and month. Read-only, retried."""
    first, last = month_bounds(year_month)
    with store_errors(db):
        records = db.query(AttendanceRecord).filter(
            AttendanceRecord.employee_id == employee_id,
            AttendanceRecord.work_date >= first,
            AttendanceRecord.work_date <= last,
        ).all()
        leaves = db.query(LeaveRequest).filter(
            LeaveRequest.employee_id == employee_id,
            LeaveRequest.status == LeaveStatus.APPROVED.value,
            LeaveRequest.start_date <= last,
            LeaveRequest.end_date >= first,
        ).all()

    leave_days: Dict[str, float] = {}
    for leave in leaves:
        days = _leave_days_in_month(leave, first, last)
        if days:
            leave_days[leave.leave_type] = round(leave_days.get(leave.leave_type, 0.0) + days, 2)

    return {
        "attendance_days": len(records),
        "work_hours": round(sum(r.work_hours or 0.0 for r in records), 2),
        "total_break_hours": round(sum(r.break_hours or 0.0 for r in records), 2),
        "late_count": sum(1 for r in records if _is_flag(r.status, "late")),
        "early_leave_count": sum(1 for r in records if _is_flag(r.status, "early_leave")),
        "leave_days": leave_days,
        "total_leave_days": round(sum(leave_days.values()), 2),
    }


# ---------------------------------------------------------------------------
# Calculation
# ---------------------------------------------------------------------------

def _from_snapshot(record: SalaryRecord) -> SalaryBreakdown:
    snap = record.settled_data
    return SalaryBreakdown(
        employee_id=record.employee_id,
        year_month=record.year_month,
        state=SalaryState.SETTLED,
        salary_type=snap.get("salary_type"),
        rate=snap.get("rate", 0.0),
        base_salary=snap.get("base_salary", 0.0),
        bonus=snap.get("bonus", 0.0),
        total_salary=snap.get("total_salary", 0.0),
        work_hours=snap.get("work_hours", 0.0),
        notes=record.notes,
        details=snap.get("details", {}),
        record_id=record.id,
        computed_at=record.computed_at,
        paid_at=record.paid_at,
    )


def calculate_monthly_salary(
    db: Session,
    employee_id: int,
    year_month: str,
    force_live: bool = False,
) -> SalaryBreakdown:
    """
    Salary for one employee and month. Returns the settled snapshot verbatim
    unless force_live is set; otherwise recomputes. Never writes.
    """
    employee = _get_employee(db, employee_id)
    record = _get_record(db, employee_id, year_month)

    if not force_live and record is not None and record.state == SalaryState.SETTLED:
        return _from_snapshot(record)

    details = aggregate_month(db, employee_id, year_month)
    rate = employee.salary_amount or 0.0
    work_hours = details["work_hours"]

    if employee.salary_type == SalaryType.MONTHLY.value:
        base_salary = rate
    else:
        base_salary = work_hours * rate

    bonus = record.bonus if record is not None else 0.0
    notes = record.notes if record is not None else None

    return SalaryBreakdown(
        employee_id=employee_id,
        year_month=year_month,
        state=SalaryState.UNSETTLED,
        salary_type=employee.salary_type,
        rate=rate,
        base_salary=base_salary,
        bonus=bonus or 0.0,
        total_salary=base_salary + (bonus or 0.0),
        work_hours=work_hours,
        notes=notes,
        details=details,
        record_id=record.id if record is not None else None,
    )


# ---------------------------------------------------------------------------
# Live cache persistence
# ---------------------------------------------------------------------------

def _ensure_record(db: Session, employee_id: int, year_month: str) -> SalaryRecord:
    record = _get_record(db, employee_id, year_month)
    if record is not None:
        return record
    record = SalaryRecord(employee_id=employee_id, year_month=year_month)
    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        # Created concurrently; use theirs
        db.rollback()
        record = _get_record(db, employee_id, year_month)
    db.refresh(record)
    return record


def save_salary_record(db: Session, breakdown: SalaryBreakdown, clock: CivilClock) -> Optional[SalaryRecord]:
    """
    Upsert the live cache for a month. A no-op (returns None) when the month
    is settled, so a stray live save can never overwrite a frozen snapshot.
    """
    if breakdown.is_settled:
        return None
    record = _ensure_record(db, breakdown.employee_id, breakdown.year_month)
    updated = db.query(SalaryRecord).filter(
        SalaryRecord.id == record.id,
        SalaryRecord.is_paid.is_(False),
    ).update(
        {
            SalaryRecord.base_salary: breakdown.base_salary,
            SalaryRecord.work_hours: breakdown.work_hours,
            SalaryRecord.total_salary: breakdown.base_salary + (record.bonus or 0.0),
            SalaryRecord.computed_at: to_storage(clock.now()),
        },
        synchronize_session=False,
    )
    db.commit()
    if updated == 0:
        logger.info(f"Skipped live save for settled salary {breakdown.employee_id}/{breakdown.year_month}")
        return None
    db.refresh(record)
    breakdown.record_id = record.id
    breakdown.computed_at = record.computed_at
    return record


def refresh_live_cache(db: Session, employee_id: int, year_month: str, clock: CivilClock) -> SalaryBreakdown:
    breakdown = calculate_monthly_salary(db, employee_id, year_month, force_live=True)
    save_salary_record(db, breakdown, clock)
    return breakdown


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

def settle_salary(db: Session, actor: Employee, employee_id: int, year_month: str, clock: CivilClock) -> SalaryBreakdown:
    """UNSETTLED -> SETTLED. Freezes freshly recomputed figures into settled_data."""
    ensure_manager(actor)

    existing = _get_record(db, employee_id, year_month)
    if existing is not None and existing.is_paid:
        raise ConflictError(f"Salary for {year_month} is already settled")

    breakdown = calculate_monthly_salary(db, employee_id, year_month, force_live=True)
    record = _ensure_record(db, employee_id, year_month)
    settled_at = to_storage(clock.now())
    snapshot = breakdown.to_snapshot(settled_at)

    settled = db.query(SalaryRecord).filter(
        SalaryRecord.id == record.id,
        SalaryRecord.is_paid.is_(False),
        SalaryRecord.bonus == breakdown.bonus,
    ).update(
        {
            SalaryRecord.is_paid: True,
            SalaryRecord.paid_at: settled_at,
            SalaryRecord.settled_data: snapshot,
            SalaryRecord.base_salary: snapshot["base_salary"],
            SalaryRecord.bonus: snapshot["bonus"],
            SalaryRecord.total_salary: snapshot["total_salary"],
            SalaryRecord.work_hours: snapshot["work_hours"],
            SalaryRecord.computed_at: settled_at,
        },
        synchronize_session=False,
    )
    if settled == 0:
        db.rollback()
        raise ConflictError(
            f"Salary for {year_month} changed while settling; reload and try again"
        )
    db.commit()
    db.refresh(record)
    logger.info(f"Settled salary for employee {employee_id} {year_month}: {snapshot['total_salary']}")

    NotificationService.notify(
        db, employee_id, "salary_settled", "Salary settled",
        f"Your salary for {year_month} has been settled.", "/salary",
    )
    return _from_snapshot(record)


def resettle_salary(db: Session, actor: Employee, employee_id: int, year_month: str, clock: CivilClock) -> SalaryBreakdown:
    """SETTLED -> UNSETTLED. Drops the snapshot and immediately persists a fresh live cache."""
    ensure_manager(actor)
    _get_employee(db, employee_id)

    reopened = db.query(SalaryRecord).filter(
        SalaryRecord.employee_id == employee_id,
        SalaryRecord.year_month == year_month,
        SalaryRecord.is_paid.is_(True),
    ).update(
        {
            SalaryRecord.is_paid: False,
            SalaryRecord.paid_at: None,
            SalaryRecord.settled_data: None,
        },
        synchronize_session=False,
    )
    if reopened == 0:
        db.rollback()
        raise ConflictError(f"Salary for {year_month} is not settled")
    db.commit()
    logger.info(f"Resettled salary for employee {employee_id} {year_month}")

    return refresh_live_cache(db, employee_id, year_month, clock)


def update_bonus(
    db: Session,
    actor: Employee,
    employee_id: int,
    year_month: str,
    bonus: float,
    notes: Optional[str],
    clock: CivilClock,
) -> SalaryBreakdown:
    """Set bonus and notes on an unsettled month, then refresh the live cache."""
    ensure_manager(actor)
    if bonus is None or not math.isfinite(bonus) or bonus < 0:
        raise ValidationError("Bonus must be a non-negative number", details={"bonus": bonus})
    _get_employee(db, employee_id)

    record = _ensure_record(db, employee_id, year_month)
    changed = db.query(SalaryRecord).filter(
        SalaryRecord.id == record.id,
        SalaryRecord.is_paid.is_(False),
    ).update(
        {SalaryRecord.bonus: bonus, SalaryRecord.notes: notes},
        synchronize_session=False,
    )
    if changed == 0:
        db.rollback()
        raise ConflictError(f"Salary for {year_month} is settled; resettle it before editing the bonus")
    db.commit()

    return refresh_live_cache(db, employee_id, year_month, clock)


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------

def list_monthly_salaries(db: Session, actor: Employee, year_month: str) -> List[Dict[str, Any]]:
    """Every active employee's breakdown for a month: settled snapshots or live figures."""
    ensure_manager(actor)
    month_bounds(year_month)
    employees = db.query(Employee).filter(Employee.is_active.is_(True)).order_by(Employee.employee_code, Employee.id).all()
    rows = []
    for emp in employees:
        breakdown = calculate_monthly_salary(db, emp.id, year_month)
        row = breakdown.to_dict()
        row.update({"display_name": emp.display_name, "employee_code": emp.employee_code})
        rows.append(row)
    return rows


def get_my_salary_records(db: Session, actor: Employee) -> List[Dict[str, Any]]:
    """The caller's settled months, newest first. Unsettled months are not visible to employees."""
    ensure_authenticated(actor)
    records = db.query(SalaryRecord).filter(
        SalaryRecord.employee_id == actor.id,
        SalaryRecord.is_paid.is_(True),
    ).order_by(SalaryRecord.year_month.desc()).all()
    return [_from_snapshot(r).to_dict() for r in records if r.settled_data]
