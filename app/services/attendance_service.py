"""
Attendance Service Layer

Clock-in/out against the civil work date, manager edits with an audit log,
and monthly listings. Status and work hours come from attendance_calculations.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.clock import CivilClock, civil_time_string, month_bounds, to_civil, to_storage
from app.core.config import settings
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.attendance import AttendanceRecord, AttendanceEditLog
from app.models.employee import Employee
from app.services.attendance_calculations import (
    calculate_work_hours,
    determine_attendance_status,
    validate_break_hours,
)
from app.services.auth import ensure_authenticated, ensure_manager

logger = logging.getLogger(__name__)


def _schedule(employee: Employee):
    return (
        employee.work_start_time or settings.default_work_start,
        employee.work_end_time or settings.default_work_end,
    )


def _break_for(employee: Employee, requested: Optional[float], fallback: Optional[float] = None) -> float:
    """Monthly staff use their profile break; hourly staff pick one per shift."""
    if not employee.is_hourly:
        return employee.break_hours or 0.0
    if requested is None and fallback is not None:
        return fallback
    return validate_break_hours(requested)


def _evaluate(record: AttendanceRecord, employee: Employee) -> None:
    work_start, work_end = _schedule(employee)
    record.status = determine_attendance_status(
        civil_time_string(record.clock_in_time),
        civil_time_string(record.clock_out_time),
        work_start,
        work_end,
    )
    if record.clock_out_time is not None:
        record.work_hours = calculate_work_hours(
            to_civil(record.clock_in_time), to_civil(record.clock_out_time), record.break_hours
        )
    else:
        record.work_hours = 0.0


def get_today_record(db: Session, actor: Employee, clock: CivilClock) -> Optional[AttendanceRecord]:
    ensure_authenticated(actor)
    return db.query(AttendanceRecord).filter(
        AttendanceRecord.employee_id == actor.id,
        AttendanceRecord.work_date == clock.today(),
    ).first()


def clock_in(db: Session, actor: Employee, clock: CivilClock) -> AttendanceRecord:
    ensure_authenticated(actor)
    now = clock.now()
    work_date = now.date()

    if get_today_record(db, actor, clock):
        raise ConflictError("Already clocked in today")

    record = AttendanceRecord(
        employee_id=actor.id,
        work_date=work_date,
        clock_in_time=to_storage(now),
    )
    _evaluate(record, actor)
    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Already clocked in today")
    db.refresh(record)
    logger.info(f"Employee {actor.id} clocked in for {work_date.isoformat()} ({record.status})")
    return record


def clock_out(db: Session, actor: Employee, clock: CivilClock, break_hours: Optional[float] = None) -> AttendanceRecord:
    ensure_authenticated(actor)
    record = get_today_record(db, actor, clock)
    if not record:
        raise ConflictError("Not clocked in today; cannot clock out")
    if record.clock_out_time is not None:
        raise ConflictError("Already clocked out today")

    record.break_hours = _break_for(actor, break_hours)
    record.clock_out_time = to_storage(clock.now())
    _evaluate(record, actor)
    db.commit()
    db.refresh(record)
    logger.info(f"Employee {actor.id} clocked out: {record.work_hours}h ({record.status})")
    return record


def edit_attendance(
    db: Session,
    actor: Employee,
    attendance_id: int,
    clock_in_time: datetime,
    clock_out_time: Optional[datetime],
    break_hours: Optional[float] = None,
    reason: Optional[str] = None,
) -> AttendanceRecord:
    """Manager correction of clock times; recomputes status and hours and logs the change."""
    ensure_manager(actor)
    if clock_in_time is None:
        raise ValidationError("Clock-in time is required")
    record = db.query(AttendanceRecord).filter(AttendanceRecord.id == attendance_id).first()
    if not record:
        raise NotFoundError("Attendance record not found")

    employee = record.employee
    db.add(AttendanceEditLog(
        attendance_id=record.id,
        editor_id=actor.id,
        old_clock_in_time=record.clock_in_time,
        old_clock_out_time=record.clock_out_time,
        new_clock_in_time=to_storage(clock_in_time),
        new_clock_out_time=to_storage(clock_out_time) if clock_out_time else None,
        reason=reason,
    ))

    record.clock_in_time = to_storage(clock_in_time)
    record.clock_out_time = to_storage(clock_out_time) if clock_out_time else None
    record.break_hours = _break_for(employee, break_hours, fallback=record.break_hours)
    record.is_edited = True
    _evaluate(record, employee)
    db.commit()
    db.refresh(record)
    logger.info(f"Attendance {attendance_id} edited by employee {actor.id}")
    return record


def list_attendance(db: Session, actor: Employee, employee_id: int, year_month: str) -> List[AttendanceRecord]:
    ensure_authenticated(actor)
    if employee_id != actor.id:
        ensure_manager(actor)
    first, last = month_bounds(year_month)
    return db.query(AttendanceRecord).filter(
        AttendanceRecord.employee_id == employee_id,
        AttendanceRecord.work_date >= first,
        AttendanceRecord.work_date <= last,
    ).order_by(AttendanceRecord.work_date.asc()).all()


def get_edit_logs(db: Session, actor: Employee, attendance_id: int) -> List[AttendanceEditLog]:
    ensure_manager(actor)
    return db.query(AttendanceEditLog).filter(
        AttendanceEditLog.attendance_id == attendance_id
    ).order_by(AttendanceEditLog.created_at.desc(), AttendanceEditLog.id.desc()).all()
