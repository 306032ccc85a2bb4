from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Boolean, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import enum


class AttendanceStatus(str, enum.Enum):
    NORMAL = "normal"
    LATE = "late"
    EARLY_LEAVE = "early_leave"
    LATE_EARLY_LEAVE = "late early_leave"


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"
    __table_args__ = (
        UniqueConstraint("employee_id", "work_date", name="uq_attendance_employee_day"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    work_date = Column(Date, nullable=False, index=True)  # civil date
    clock_in_time = Column(DateTime(timezone=True), nullable=False)  # UTC
    clock_out_time = Column(DateTime(timezone=True), nullable=True)
    work_hours = Column(Float, default=0.0, nullable=False)
    break_hours = Column(Float, default=0.0, nullable=False)
    status = Column(String, default=AttendanceStatus.NORMAL.value, nullable=False)
    is_edited = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    employee = relationship("Employee", back_populates="attendance_records")
    edit_logs = relationship("AttendanceEditLog", back_populates="attendance", cascade="all, delete-orphan")


class AttendanceEditLog(Base):
    __tablename__ = "attendance_edit_logs"

    id = Column(Integer, primary_key=True, index=True)
    attendance_id = Column(Integer, ForeignKey("attendance_records.id"), nullable=False, index=True)
    editor_id = Column(Integer, ForeignKey("employees.id"), nullable=False)
    old_clock_in_time = Column(DateTime(timezone=True), nullable=True)
    old_clock_out_time = Column(DateTime(timezone=True), nullable=True)
    new_clock_in_time = Column(DateTime(timezone=True), nullable=True)
    new_clock_out_time = Column(DateTime(timezone=True), nullable=True)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    attendance = relationship("AttendanceRecord", back_populates="edit_logs")
