from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.clock import CivilClock, get_clock
from app.database import get_db
from app.models.employee import Employee
from app.routers.auth_deps import get_current_user
from app.schemas.attendance import (
    AttendanceEditLogResponse, AttendanceEditRequest, AttendanceResponse, ClockOutRequest,
)
from app.services import attendance_service

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.post("/clock-in", response_model=AttendanceResponse)
def clock_in(
    db: Session = Depends(get_db),
    clock: CivilClock = Depends(get_clock),
    current_user: Employee = Depends(get_current_user),
):
    return attendance_service.clock_in(db, current_user, clock)


@router.post("/clock-out", response_model=AttendanceResponse)
def clock_out(
    body: ClockOutRequest = ClockOutRequest(),
    db: Session = Depends(get_db),
    clock: CivilClock = Depends(get_clock),
    current_user: Employee = Depends(get_current_user),
):
    return attendance_service.clock_out(db, current_user, clock, body.break_hours)


@router.get("/today", response_model=Optional[AttendanceResponse])
def today(
    db: Session = Depends(get_db),
    clock: CivilClock = Depends(get_clock),
    current_user: Employee = Depends(get_current_user),
):
    return attendance_service.get_today_record(db, current_user, clock)


@router.get("/", response_model=List[AttendanceResponse])
def list_attendance(
    year_month: str,
    employee_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Month listing; other employees' records need a manager role."""
    return attendance_service.list_attendance(db, current_user, employee_id or current_user.id, year_month)


@router.put("/{attendance_id}", response_model=AttendanceResponse)
def edit_attendance(
    attendance_id: int,
    body: AttendanceEditRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return attendance_service.edit_attendance(
        db, current_user, attendance_id,
        body.clock_in_time, body.clock_out_time, body.break_hours, body.reason,
    )


@router.get("/{attendance_id}/logs", response_model=List[AttendanceEditLogResponse])
def edit_logs(
    attendance_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return attendance_service.get_edit_logs(db, current_user, attendance_id)
