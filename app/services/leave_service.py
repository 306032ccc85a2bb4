"""
Leave Service Layer

Leave application with annual-leave reservation, review, cancellation and
balance views.

Annual-leave consumption is never written to a running counter: the amount
in use is always the sum of the employee's pending and approved annual-leave
requests for the year (the reservation). LeaveBalance.used_days and
Employee.annual_leave_used are display caches refreshed in the same
transaction as every status change.
"""
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.clock import month_bounds
from app.core.exceptions import ConflictError, NotFoundError, ValidationError, AccessDeniedError
from app.models.employee import Employee
from app.models.leave_balance import LeaveBalance
from app.models.leave_request import (
    LeaveRequest, LeaveCancellationRequest, LeaveStatus, CancellationStatus, RESERVING_STATUSES,
)
from app.services.annual_leave import calculate_annual_leave_days
from app.services.auth import ensure_authenticated, ensure_manager
from app.services.notification import NotificationService

logger = logging.getLogger(__name__)

LEAVE_TYPES = {
    "sick": "Sick leave",
    "personal": "Personal leave",
    "annual": "Annual leave",
    "compensatory": "Compensatory leave",
    "marriage": "Marriage leave",
    "maternity": "Maternity leave",
    "paternity": "Paternity leave",
    "funeral": "Funeral leave",
    "other": "Other",
    # Legacy / alternative names
    "sick_leave": "Sick leave",
    "personal_leave": "Personal leave",
    "annual_leave": "Annual leave",
    "maternity_leave": "Maternity leave",
    "paternity_leave": "Paternity leave",
    "funeral_leave": "Funeral leave",
}

ANNUAL_LEAVE_TYPES = ("annual", "annual_leave")


def is_annual_leave(leave_type: str) -> bool:
    return leave_type in ANNUAL_LEAVE_TYPES


# ---------------------------------------------------------------------------
# Balance and reservation
# ---------------------------------------------------------------------------

def _query_balance(db: Session, employee_id: int, year: int, lock: bool = False):
    query = db.query(LeaveBalance).filter(
        LeaveBalance.employee_id == employee_id,
        LeaveBalance.year == year,
    )
    if lock:
        # Serializes reservation checks per (employee, year) on databases with row locks
        query = query.with_for_update()
    return query.first()


def get_or_create_balance(db: Session, employee: Employee, year: int) -> LeaveBalance:
    """The year's balance, seeded from length of service on first read."""
    balance = _query_balance(db, employee.id, year)
    if balance is not None:
        return balance
    if employee.onboard_date is None:
        raise ValidationError(
            "Annual leave balance cannot be initialized: onboard date is not set",
            details={"employee_id": employee.id, "year": year},
        )
    balance = LeaveBalance(
        employee_id=employee.id,
        year=year,
        total_days=float(calculate_annual_leave_days(employee.onboard_date, year)),
        used_days=0.0,
    )
    db.add(balance)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        balance = _query_balance(db, employee.id, year)
    db.refresh(balance)
    return balance


def reserved_days(db: Session, employee_id: int, year: int, status: Optional[str] = None) -> float:
    """Sum of annual-leave days held by pending and approved requests starting in the year."""
    statuses = (status,) if status else RESERVING_STATUSES
    total = db.query(func.coalesce(func.sum(LeaveRequest.days), 0.0)).filter(
        LeaveRequest.employee_id == employee_id,
        LeaveRequest.leave_type.in_(ANNUAL_LEAVE_TYPES),
        LeaveRequest.status.in_(statuses),
        LeaveRequest.start_date >= date(year, 1, 1),
        LeaveRequest.start_date <= date(year, 12, 31),
    ).scalar()
    return float(total or 0.0)


def _refresh_usage_caches(db: Session, employee: Employee, year: int) -> None:
    """Recompute the display counters from the reservation. Caller commits."""
    db.flush()
    balance = _query_balance(db, employee.id, year)
    if balance is not None:
        balance.used_days = reserved_days(db, employee.id, year)

    query = db.query(func.coalesce(func.sum(LeaveRequest.days), 0.0)).filter(
        LeaveRequest.employee_id == employee.id,
        LeaveRequest.leave_type.in_(ANNUAL_LEAVE_TYPES),
        LeaveRequest.status.in_(RESERVING_STATUSES),
    )
    if employee.last_reset_date is not None:
        query = query.filter(LeaveRequest.start_date >= employee.last_reset_date)
    employee.annual_leave_used = float(query.scalar() or 0.0)


def get_leave_balance(db: Session, actor: Employee, employee_id: int, year: int) -> Dict[str, Any]:
    ensure_authenticated(actor)
    if employee_id != actor.id:
        ensure_manager(actor)
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if not employee:
        raise NotFoundError(f"Employee {employee_id} not found")

    balance = get_or_create_balance(db, employee, year)
    pending = reserved_days(db, employee_id, year, LeaveStatus.PENDING.value)
    approved = reserved_days(db, employee_id, year, LeaveStatus.APPROVED.value)
    return {
        "employee_id": employee_id,
        "year": year,
        "total_days": balance.total_days,
        "pending_days": pending,
        "approved_days": approved,
        "used_days": pending + approved,
        "remaining_days": balance.total_days - pending - approved,
        "annual_leave_total": employee.annual_leave_total,
        "annual_leave_used": employee.annual_leave_used,
        "last_reset_date": employee.last_reset_date,
    }


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

def _validate_application(leave_type: str, start_date: date, end_date: date, days: float, reason: str) -> None:
    if not leave_type or not start_date or not end_date or not (reason or "").strip():
        raise ValidationError("Leave type, dates and reason are required")
    if leave_type not in LEAVE_TYPES:
        raise ValidationError(f"Unknown leave type '{leave_type}'", details={"allowed": sorted(LEAVE_TYPES)})
    if start_date > end_date:
        raise ValidationError("End date cannot be earlier than start date")
    if days is None or days <= 0:
        raise ValidationError("Leave days must be greater than 0")
    if not float(days * 2).is_integer():
        raise ValidationError("Leave days must be in half-day steps")


def apply_leave(
    db: Session,
    actor: Employee,
    leave_type: str,
    start_date: date,
    end_date: date,
    days: float,
    reason: str,
) -> LeaveRequest:
    """Create a pending leave request. Annual leave must fit within the year's unreserved balance."""
    ensure_authenticated(actor)
    _validate_application(leave_type, start_date, end_date, days, reason)

    if is_annual_leave(leave_type):
        year = start_date.year
        get_or_create_balance(db, actor, year)
        balance = _query_balance(db, actor.id, year, lock=True)
        reserved = reserved_days(db, actor.id, year)
        if reserved + days > balance.total_days:
            db.rollback()
            raise ConflictError(
                f"Insufficient annual leave: {balance.total_days - reserved:g} day(s) remaining, {days:g} requested",
                details={
                    "total_days": balance.total_days,
                    "reserved_days": reserved,
                    "requested_days": days,
                    "remaining_days": balance.total_days - reserved,
                },
            )

    leave = LeaveRequest(
        employee_id=actor.id,
        leave_type=leave_type,
        start_date=start_date,
        end_date=end_date,
        days=days,
        reason=reason.strip(),
        status=LeaveStatus.PENDING.value,
    )
    db.add(leave)
    if is_annual_leave(leave_type):
        _refresh_usage_caches(db, actor, start_date.year)
    db.commit()
    db.refresh(leave)
    logger.info(f"Leave request {leave.id} ({leave_type}, {days:g}d) submitted by employee {actor.id}")

    NotificationService.notify_managers(
        db, "new_leave_request", "New leave request",
        f"{actor.display_name or actor.email} requested {days:g} day(s) of {LEAVE_TYPES[leave_type].lower()}.",
        "/admin/leaves",
    )
    return leave


# ---------------------------------------------------------------------------
# Review and cancellation
# ---------------------------------------------------------------------------

def _get_leave(db: Session, leave_id: int) -> LeaveRequest:
    leave = db.query(LeaveRequest).filter(LeaveRequest.id == leave_id).first()
    if not leave:
        raise NotFoundError("Leave request not found")
    return leave


def _transition(db: Session, leave_id: int, from_status: str, values: Dict[str, Any]) -> bool:
    changed = db.query(LeaveRequest).filter(
        LeaveRequest.id == leave_id,
        LeaveRequest.status == from_status,
    ).update(values, synchronize_session=False)
    return changed == 1


def review_leave(
    db: Session,
    actor: Employee,
    leave_id: int,
    status: str,
    comment: Optional[str] = None,
) -> LeaveRequest:
    """Approve or reject a pending request. Approval does not touch the balance total."""
    ensure_manager(actor)
    if status not in (LeaveStatus.APPROVED.value, LeaveStatus.REJECTED.value):
        raise ValidationError("Review status must be 'approved' or 'rejected'")
    leave = _get_leave(db, leave_id)

    if not _transition(db, leave_id, LeaveStatus.PENDING.value, {
        LeaveRequest.status: status,
        LeaveRequest.reviewer_id: actor.id,
        LeaveRequest.review_comment: comment,
        LeaveRequest.reviewed_at: datetime.now(timezone.utc),
    }):
        db.rollback()
        raise ConflictError("Leave request already processed")
    if is_annual_leave(leave.leave_type):
        _refresh_usage_caches(db, leave.employee, leave.start_date.year)
    db.commit()
    db.refresh(leave)
    logger.info(f"Leave request {leave_id} {status} by employee {actor.id}")

    approved = status == LeaveStatus.APPROVED.value
    NotificationService.notify(
        db, leave.employee_id,
        "leave_approved" if approved else "leave_rejected",
        "Leave approved" if approved else "Leave rejected",
        "Your leave request has been approved." if approved else "Your leave request was not approved.",
        "/leaves",
    )
    return leave


def cancel_leave(db: Session, actor: Employee, leave_id: int, reason: Optional[str] = None) -> Dict[str, Any]:
    """
    Owner cancels a leave. Pending requests are cancelled at once; approved
    ones open a cancellation request for a manager to review.
    """
    ensure_authenticated(actor)
    leave = _get_leave(db, leave_id)
    if leave.employee_id != actor.id:
        raise AccessDeniedError("Permission denied")

    if leave.status == LeaveStatus.PENDING.value:
        if not _transition(db, leave_id, LeaveStatus.PENDING.value, {LeaveRequest.status: LeaveStatus.CANCELLED.value}):
            db.rollback()
            raise ConflictError("Leave request was processed in the meantime")
        if is_annual_leave(leave.leave_type):
            _refresh_usage_caches(db, actor, leave.start_date.year)
        db.commit()
        return {"leave_id": leave_id, "status": LeaveStatus.CANCELLED.value}

    if leave.status == LeaveStatus.APPROVED.value:
        open_request = db.query(LeaveCancellationRequest).filter(
            LeaveCancellationRequest.leave_id == leave_id,
            LeaveCancellationRequest.status == CancellationStatus.PENDING.value,
        ).first()
        if open_request:
            raise ConflictError("A cancellation request for this leave is already pending")
        cancellation = LeaveCancellationRequest(
            leave_id=leave_id,
            employee_id=actor.id,
            reason=reason,
            status=CancellationStatus.PENDING.value,
        )
        db.add(cancellation)
        db.commit()
        db.refresh(cancellation)
        NotificationService.notify_managers(
            db, "leave_cancellation_request", "Leave cancellation request",
            f"{actor.display_name or actor.email} asked to cancel an approved leave.",
            "/admin/leaves",
        )
        return {"leave_id": leave_id, "status": leave.status, "cancellation_request_id": cancellation.id}

    raise ConflictError(f"A {leave.status} leave cannot be cancelled")


def review_cancellation(db: Session, actor: Employee, cancellation_id: int, approve: bool) -> LeaveCancellationRequest:
    ensure_manager(actor)
    cancellation = db.query(LeaveCancellationRequest).filter(
        LeaveCancellationRequest.id == cancellation_id
    ).first()
    if not cancellation:
        raise NotFoundError("Cancellation request not found")

    new_status = CancellationStatus.APPROVED.value if approve else CancellationStatus.REJECTED.value
    changed = db.query(LeaveCancellationRequest).filter(
        LeaveCancellationRequest.id == cancellation_id,
        LeaveCancellationRequest.status == CancellationStatus.PENDING.value,
    ).update({
        LeaveCancellationRequest.status: new_status,
        LeaveCancellationRequest.reviewer_id: actor.id,
        LeaveCancellationRequest.reviewed_at: datetime.now(timezone.utc),
    }, synchronize_session=False)
    if changed == 0:
        db.rollback()
        raise ConflictError("Cancellation request already processed")

    leave = cancellation.leave
    if approve:
        if not _transition(db, leave.id, LeaveStatus.APPROVED.value, {LeaveRequest.status: LeaveStatus.CANCELLED.value}):
            db.rollback()
            raise ConflictError("Leave is no longer approved")
        if is_annual_leave(leave.leave_type):
            _refresh_usage_caches(db, leave.employee, leave.start_date.year)
    db.commit()
    db.refresh(cancellation)

    NotificationService.notify(
        db, cancellation.employee_id,
        "leave_cancellation_approved" if approve else "leave_cancellation_rejected",
        "Leave cancellation approved" if approve else "Leave cancellation rejected",
        "Your approved leave has been cancelled." if approve else "Your leave stays approved.",
        "/leaves",
    )
    return cancellation


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------

def get_my_leaves(db: Session, actor: Employee) -> List[LeaveRequest]:
    ensure_authenticated(actor)
    return db.query(LeaveRequest).filter(
        LeaveRequest.employee_id == actor.id
    ).order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc()).all()


def get_pending_leaves(db: Session, actor: Employee) -> List[LeaveRequest]:
    ensure_manager(actor)
    return db.query(LeaveRequest).filter(
        LeaveRequest.status == LeaveStatus.PENDING.value
    ).order_by(LeaveRequest.created_at.asc(), LeaveRequest.id.asc()).all()


def get_pending_cancellations(db: Session, actor: Employee) -> List[LeaveCancellationRequest]:
    ensure_manager(actor)
    return db.query(LeaveCancellationRequest).filter(
        LeaveCancellationRequest.status == CancellationStatus.PENDING.value
    ).order_by(LeaveCancellationRequest.created_at.asc()).all()


def get_employee_leaves(db: Session, actor: Employee, employee_id: int, year_month: str) -> List[LeaveRequest]:
    """One employee's leaves touching a month, any status. Manager view."""
    ensure_manager(actor)
    first, last = month_bounds(year_month)
    return db.query(LeaveRequest).filter(
        LeaveRequest.employee_id == employee_id,
        LeaveRequest.start_date <= last,
        LeaveRequest.end_date >= first,
    ).order_by(LeaveRequest.start_date.asc(), LeaveRequest.id.asc()).all()
