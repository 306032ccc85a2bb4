import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from app.core.clock import parse_time_of_day
from app.core.exceptions import AccessDeniedError, ConflictError, NotFoundError, ValidationError
from app.models.employee import Employee, EmployeeRole, SalaryType
from app.services.auth import ensure_authenticated, ensure_manager, get_password_hash, verify_password

logger = logging.getLogger(__name__)

_ROLES = {r.value for r in EmployeeRole}
_SALARY_TYPES = {s.value for s in SalaryType}


def _validate_fields(fields: Dict[str, Any]) -> None:
    if "role" in fields and fields["role"] not in _ROLES:
        raise ValidationError(f"Invalid role '{fields['role']}'")
    if "salary_type" in fields and fields["salary_type"] not in _SALARY_TYPES:
        raise ValidationError(f"Invalid salary type '{fields['salary_type']}'")
    for key in ("salary_amount", "break_hours", "annual_leave_total"):
        if fields.get(key) is not None and fields[key] < 0:
            raise ValidationError(f"{key} cannot be negative")
    for key in ("work_start_time", "work_end_time"):
        if fields.get(key):
            fields[key] = parse_time_of_day(fields[key], fields[key]).strftime("%H:%M:%S")
    if "display_name" in fields and not (fields["display_name"] or "").strip():
        raise ValidationError("Display name cannot be empty")


def list_employees(db: Session, actor: Employee, include_inactive: bool = True) -> List[Employee]:
    ensure_manager(actor)
    query = db.query(Employee)
    if not include_inactive:
        query = query.filter(Employee.is_active.is_(True))
    return query.order_by(Employee.created_at.desc(), Employee.id.desc()).all()


def get_employee(db: Session, actor: Employee, employee_id: int) -> Employee:
    if actor.id != employee_id:
        ensure_manager(actor)
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if not employee:
        raise NotFoundError(f"Employee {employee_id} not found")
    return employee


def create_employee(db: Session, actor: Employee, email: str, password: str, **fields) -> Employee:
    ensure_manager(actor)
    _validate_fields(fields)
    if db.query(Employee).filter(Employee.email == email).first():
        raise ConflictError(f"Employee with email {email} already exists")
    employee = Employee(email=email, hashed_password=get_password_hash(password), **fields)
    db.add(employee)
    db.commit()
    db.refresh(employee)
    logger.info(f"Employee {employee.id} created by {actor.id}")
    return employee


def update_employee(db: Session, actor: Employee, employee_id: int, **fields) -> Employee:
    """Admin profile edit. Deactivation is an update; employees are never deleted."""
    ensure_manager(actor)
    employee = get_employee(db, actor, employee_id)
    _validate_fields(fields)
    if fields.get("role") == EmployeeRole.SUPER_ADMIN.value and actor.role != EmployeeRole.SUPER_ADMIN.value:
        raise AccessDeniedError("Only a super admin can grant the super_admin role")
    for key, value in fields.items():
        setattr(employee, key, value)
    db.commit()
    db.refresh(employee)
    logger.info(f"Employee {employee_id} updated by {actor.id}: {sorted(fields)}")
    return employee


# ---------------------------------------------------------------------------
# Self-service account
# ---------------------------------------------------------------------------

MIN_PASSWORD_LENGTH = 8


def update_profile(db: Session, actor: Employee, display_name: str) -> Employee:
    """Employees may change their own display name only."""
    ensure_authenticated(actor)
    name = (display_name or "").strip()
    if not 2 <= len(name) <= 50:
        raise ValidationError("Display name must be 2 to 50 characters")
    actor.display_name = name
    db.commit()
    db.refresh(actor)
    logger.info(f"Employee {actor.id} updated their profile")
    return actor


def change_password(
    db: Session,
    actor: Employee,
    current_password: str,
    new_password: str,
    confirm_password: str,
) -> None:
    ensure_authenticated(actor)
    if not verify_password(current_password or "", actor.hashed_password):
        raise ValidationError("Current password is incorrect")
    if new_password != confirm_password:
        raise ValidationError("Passwords do not match")
    if len(new_password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    actor.hashed_password = get_password_hash(new_password)
    db.commit()
    logger.info(f"Employee {actor.id} changed their password")
