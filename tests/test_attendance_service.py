import pytest
from datetime import date, datetime

from app.core.exceptions import AccessDeniedError, ConflictError, ValidationError
from app.models.attendance import AttendanceEditLog, AttendanceRecord
from app.models.employee import SalaryType
from app.services import attendance_service


@pytest.fixture
def hourly(make_employee):
    return make_employee(salary_type=SalaryType.HOURLY.value, salary_amount=200.0)


def test_clock_in_on_time_then_out(db_session, employee, clock):
    record = attendance_service.clock_in(db_session, employee, clock)
    assert record.work_date == date(2026, 2, 13)
    assert record.status == "normal"
    assert record.work_hours == 0

    clock.set(datetime(2026, 2, 13, 18, 30))
    record = attendance_service.clock_out(db_session, employee, clock)
    assert record.status == "normal"
    assert record.break_hours == 1.0
    assert record.work_hours == 8.5


def test_late_and_early_leave_combine(db_session, employee, clock):
    clock.set(datetime(2026, 2, 13, 9, 10))
    record = attendance_service.clock_in(db_session, employee, clock)
    assert record.status == "late"

    clock.set(datetime(2026, 2, 13, 17, 0))
    record = attendance_service.clock_out(db_session, employee, clock)
    assert record.status == "late early_leave"


def test_work_date_is_the_civil_date(db_session, employee, clock):
    # 07:30 in UTC+8 is still the previous day in UTC
    clock.set(datetime(2026, 2, 13, 7, 30))
    record = attendance_service.clock_in(db_session, employee, clock)
    assert record.work_date == date(2026, 2, 13)


def test_duplicate_clock_in_conflicts(db_session, employee, clock):
    attendance_service.clock_in(db_session, employee, clock)
    with pytest.raises(ConflictError):
        attendance_service.clock_in(db_session, employee, clock)
    assert db_session.query(AttendanceRecord).count() == 1


def test_clock_out_guards(db_session, employee, clock):
    with pytest.raises(ConflictError):
        attendance_service.clock_out(db_session, employee, clock)
    attendance_service.clock_in(db_session, employee, clock)
    attendance_service.clock_out(db_session, employee, clock)
    with pytest.raises(ConflictError):
        attendance_service.clock_out(db_session, employee, clock)


def test_hourly_employee_picks_break(db_session, hourly, clock):
    attendance_service.clock_in(db_session, hourly, clock)
    clock.set(datetime(2026, 2, 13, 13, 0))
    with pytest.raises(ValidationError):
        attendance_service.clock_out(db_session, hourly, clock)
    with pytest.raises(ValidationError):
        attendance_service.clock_out(db_session, hourly, clock, break_hours=0.25)

    record = attendance_service.clock_out(db_session, hourly, clock, break_hours=0.5)
    assert record.work_hours == 3.5


def test_manager_edit_recomputes_and_logs(db_session, employee, manager, clock):
    record = attendance_service.clock_in(db_session, employee, clock)

    edited = attendance_service.edit_attendance(
        db_session, manager, record.id,
        datetime(2026, 2, 13, 8, 55), datetime(2026, 2, 13, 17, 0),
        reason="forgot to clock out",
    )

    assert edited.is_edited
    assert edited.status == "early_leave"
    assert edited.work_hours == 7.08
    logs = attendance_service.get_edit_logs(db_session, manager, record.id)
    assert len(logs) == 1
    assert logs[0].editor_id == manager.id
    assert logs[0].old_clock_out_time is None
    assert logs[0].reason == "forgot to clock out"


def test_edit_is_manager_only(db_session, employee, clock):
    record = attendance_service.clock_in(db_session, employee, clock)
    with pytest.raises(AccessDeniedError):
        attendance_service.edit_attendance(db_session, employee, record.id, datetime(2026, 2, 13, 8, 0), None)
    assert db_session.query(AttendanceEditLog).count() == 0


def test_month_listing_permissions(db_session, employee, manager, clock):
    attendance_service.clock_in(db_session, employee, clock)
    assert len(attendance_service.list_attendance(db_session, employee, employee.id, "2026-02")) == 1
    assert attendance_service.list_attendance(db_session, employee, employee.id, "2026-03") == []
    assert len(attendance_service.list_attendance(db_session, manager, employee.id, "2026-02")) == 1
    with pytest.raises(AccessDeniedError):
        attendance_service.list_attendance(db_session, employee, manager.id, "2026-02")


def test_clock_in_over_http(client, employee, auth_headers, clock):
    response = client.post("/api/attendance/clock-in", headers=auth_headers(employee))
    assert response.status_code == 200
    assert response.json()["work_date"] == "2026-02-13"

    again = client.post("/api/attendance/clock-in", headers=auth_headers(employee))
    assert again.status_code == 409

    today = client.get("/api/attendance/today", headers=auth_headers(employee))
    assert today.json()["id"] == response.json()["id"]

    clock.set(datetime(2026, 2, 13, 18, 0))
    out = client.post("/api/attendance/clock-out", headers=auth_headers(employee))
    assert out.status_code == 200
    assert out.json()["work_hours"] == 8.0

    listing = client.get("/api/attendance/", params={"year_month": "2026-02"}, headers=auth_headers(employee))
    assert len(listing.json()) == 1
