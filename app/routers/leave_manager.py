import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.employee import Employee
from app.routers.auth_deps import get_current_user
from app.schemas.leave import (
    CancellationResponse, CancellationReviewRequest, LeaveRequestResponse, LeaveReviewRequest,
)
from app.services import leave_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leave/manage", tags=["leave-manager"])


@router.get("/pending", response_model=List[LeaveRequestResponse])
def pending_leaves(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return leave_service.get_pending_leaves(db, current_user)


# Manager review endpoint
@router.post("/{leave_id}/review", response_model=LeaveRequestResponse)
def review_leave(
    leave_id: int,
    review: LeaveReviewRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return leave_service.review_leave(db, current_user, leave_id, review.status, review.comment)


@router.get("/cancellations", response_model=List[CancellationResponse])
def pending_cancellations(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return leave_service.get_pending_cancellations(db, current_user)


@router.post("/cancellations/{cancellation_id}/review", response_model=CancellationResponse)
def review_cancellation(
    cancellation_id: int,
    review: CancellationReviewRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return leave_service.review_cancellation(db, current_user, cancellation_id, review.approve)


@router.get("/employee/{employee_id}", response_model=List[LeaveRequestResponse])
def employee_leaves(
    employee_id: int,
    year_month: str,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return leave_service.get_employee_leaves(db, current_user, employee_id, year_month)
