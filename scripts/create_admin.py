import sys
import os
import logging
from sqlalchemy.orm import Session

# Ensure we can import app modules
sys.path.append(os.getcwd())

from app.database import SessionLocal, init_db
from app.models.employee import Employee, EmployeeRole
from app.services.auth import get_password_hash

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def create_admin_user():
    init_db()
    db: Session = SessionLocal()
    try:
        email = os.getenv("ADMIN_EMAIL", "admin@example.com")
        password = os.getenv("ADMIN_PASSWORD", "Admin123!")

        # Check if admin already exists
        existing_user = db.query(Employee).filter(Employee.email == email).first()
        if existing_user:
            logger.warning(f"Admin '{email}' already exists.")
            return

        admin_user = Employee(
            email=email,
            hashed_password=get_password_hash(password),
            display_name="System Administrator",
            employee_code="ADMIN",
            role=EmployeeRole.SUPER_ADMIN.value,
            is_active=True,
        )

        db.add(admin_user)
        db.commit()
        db.refresh(admin_user)

        logger.info("Admin created successfully. You can now login.")
        logger.info(f"Email: {email}")

    except Exception as e:
        logger.error(f"Error creating admin: {e}")
        db.rollback()
    finally:
        db.close()


if __name__ == "__main__":
    create_admin_user()
