import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.employee import Employee
from app.routers.auth_deps import get_current_user
from app.schemas.auth import LoginRequest, Token, EmployeeResponse, ProfileUpdate, PasswordChangeRequest
from app.services import auth as auth_service
from app.services import employee_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)


@router.post("/login", response_model=Token)
def login(login_data: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(Employee).filter(Employee.email == login_data.email).first()
    if not user or not auth_service.verify_password(login_data.password, user.hashed_password):
        logger.info(f"Failed login for {login_data.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is inactive")

    access_token = auth_service.create_access_token(data={
        "sub": user.email,
        "role": user.role,
        "employee_id": user.id,
    })
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": {"id": user.id, "email": user.email, "role": user.role, "display_name": user.display_name},
    }


@router.get("/me", response_model=EmployeeResponse)
def read_me(current_user: Employee = Depends(get_current_user)):
    return current_user


@router.put("/me", response_model=EmployeeResponse)
def update_me(
    body: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return employee_service.update_profile(db, current_user, body.display_name)


@router.put("/password")
def change_password(
    body: PasswordChangeRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    employee_service.change_password(
        db, current_user, body.current_password, body.new_password, body.confirm_password
    )
    return {"message": "Password updated"}
