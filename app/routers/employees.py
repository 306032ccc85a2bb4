from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.employee import Employee
from app.routers.auth_deps import get_current_user
from app.schemas.auth import EmployeeResponse
from app.schemas.employee import EmployeeCreate, EmployeeUpdate
from app.services import employee_service

router = APIRouter(prefix="/employees", tags=["employees"])


@router.get("/", response_model=List[EmployeeResponse])
def list_employees(
    include_inactive: bool = True,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return employee_service.list_employees(db, current_user, include_inactive)


@router.post("/", response_model=EmployeeResponse)
def create_employee(
    body: EmployeeCreate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    fields = body.model_dump(exclude={"email", "password"})
    return employee_service.create_employee(db, current_user, body.email, body.password, **fields)


@router.get("/{employee_id}", response_model=EmployeeResponse)
def get_employee(
    employee_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return employee_service.get_employee(db, current_user, employee_id)


@router.put("/{employee_id}", response_model=EmployeeResponse)
def update_employee(
    employee_id: int,
    body: EmployeeUpdate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return employee_service.update_employee(
        db, current_user, employee_id, **body.model_dump(exclude_unset=True)
    )
