from datetime import date

from app.database import SessionLocal, init_db
from app.models.employee import Employee, EmployeeRole, SalaryType
from app.services.auth import get_password_hash

init_db()
db = SessionLocal()


def create_user(email, password, role, **fields):
    # Check if employee already exists to avoid unique constraint errors
    existing_user = db.query(Employee).filter(Employee.email == email).first()
    if existing_user:
        print(f"Employee {email} already exists. Skipping.")
        return

    user = Employee(
        email=email,
        hashed_password=get_password_hash(password),
        role=role,
        is_active=True,
        **fields
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    print(f"Created {role} -> {email}")


# Monthly employee
create_user(
    "employee@example.com",
    "Employee123!",
    EmployeeRole.EMPLOYEE.value,
    display_name="Monthly Employee",
    employee_code="E001",
    salary_type=SalaryType.MONTHLY.value,
    salary_amount=42000,
    onboard_date=date(2024, 3, 1),
)

# Hourly employee
create_user(
    "parttime@example.com",
    "Parttime123!",
    EmployeeRole.EMPLOYEE.value,
    display_name="Hourly Employee",
    employee_code="P001",
    salary_type=SalaryType.HOURLY.value,
    salary_amount=190,
    onboard_date=date(2025, 8, 31),
)

# Manager
create_user(
    "manager@example.com",
    "Manager123!",
    EmployeeRole.MANAGER.value,
    display_name="Manager",
    employee_code="M001",
    salary_type=SalaryType.MONTHLY.value,
    salary_amount=65000,
    onboard_date=date(2019, 5, 20),
)

db.close()
