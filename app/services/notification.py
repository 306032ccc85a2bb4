import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.models.employee import Employee, MANAGER_ROLES
from app.models.notification import Notification

logger = logging.getLogger(__name__)


class NotificationService:
    @staticmethod
    def create_notification(
        db: Session,
        employee_id: int,
        type: str,
        title: str,
        message: str,
        link: Optional[str] = None
    ) -> Notification:
        """
        Internal utility for creating notifications.
        """
        notification = Notification(
            employee_id=employee_id,
            type=type,
            title=title,
            message=message,
            link=link
        )
        db.add(notification)
        db.commit()
        db.refresh(notification)
        return notification

    @staticmethod
    def notify(
        db: Session,
        employee_id: int,
        type: str,
        title: str,
        message: str,
        link: Optional[str] = None
    ) -> Optional[Notification]:
        """
        Fire-and-forget. Call after the business change is committed: a failure
        here rolls back only the notification and is logged, never raised.
        """
        try:
            return NotificationService.create_notification(db, employee_id, type, title, message, link)
        except Exception as e:
            db.rollback()
            logger.warning(f"Notification to employee {employee_id} failed: {e}", exc_info=True)
            return None

    @staticmethod
    def notify_many(
        db: Session,
        employee_ids: Iterable[int],
        type: str,
        title: str,
        message: str,
        link: Optional[str] = None
    ) -> int:
        sent = 0
        for employee_id in employee_ids:
            if NotificationService.notify(db, employee_id, type, title, message, link):
                sent += 1
        return sent

    @staticmethod
    def notify_managers(db: Session, type: str, title: str, message: str, link: Optional[str] = None) -> int:
        manager_ids = [
            row.id for row in db.query(Employee.id).filter(
                Employee.role.in_(MANAGER_ROLES),
                Employee.is_active.is_(True),
            ).all()
        ]
        return NotificationService.notify_many(db, manager_ids, type, title, message, link)

    @staticmethod
    def unread_count(db: Session, employee_id: int) -> int:
        return db.query(Notification).filter(
            Notification.employee_id == employee_id,
            Notification.is_read.is_(False),
        ).count()
