from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.clock import CivilClock, get_clock
from app.database import get_db
from app.models.employee import Employee
from app.routers.auth_deps import get_current_user
from app.schemas.leave import (
    LeaveBalanceResponse, LeaveCancelRequest, LeaveRequestCreate, LeaveRequestResponse,
)
from app.services import leave_service

router = APIRouter(prefix="/leave", tags=["leave"])


@router.post("/", response_model=LeaveRequestResponse)
def apply_leave(
    request: LeaveRequestCreate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return leave_service.apply_leave(
        db, current_user,
        request.leave_type, request.start_date, request.end_date, request.days, request.reason,
    )


@router.get("/my", response_model=List[LeaveRequestResponse])
def my_leaves(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return leave_service.get_my_leaves(db, current_user)


@router.get("/types")
def leave_types():
    return leave_service.LEAVE_TYPES


@router.get("/balance", response_model=LeaveBalanceResponse)
def leave_balance(
    year: Optional[int] = None,
    employee_id: Optional[int] = None,
    db: Session = Depends(get_db),
    clock: CivilClock = Depends(get_clock),
    current_user: Employee = Depends(get_current_user),
):
    return leave_service.get_leave_balance(
        db, current_user, employee_id or current_user.id, year or clock.today().year,
    )


@router.post("/{leave_id}/cancel")
def cancel_leave(
    leave_id: int,
    body: LeaveCancelRequest = LeaveCancelRequest(),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return leave_service.cancel_leave(db, current_user, leave_id, body.reason)
