import math
import pytest
from datetime import date, datetime, timezone

from app.core.exceptions import AccessDeniedError, ConflictError, ValidationError
from app.models.attendance import AttendanceRecord
from app.models.employee import SalaryType
from app.models.leave_request import LeaveRequest
from app.models.notification import Notification
from app.models.salary_record import SalaryRecord, SalaryState
from app.services import salary_service

MONTH = "2026-02"


def _attend(db_session, employee, day, hours, status="normal", break_hours=1.0):
    clock_in = datetime(2026, 2, day, 1, 0, tzinfo=timezone.utc)  # 09:00 civil
    db_session.add(AttendanceRecord(
        employee_id=employee.id,
        work_date=date(2026, 2, day),
        clock_in_time=clock_in,
        clock_out_time=clock_in,
        work_hours=hours,
        break_hours=break_hours,
        status=status,
    ))
    db_session.commit()


def _leave(db_session, employee, start, end, days, status="approved", leave_type="annual"):
    db_session.add(LeaveRequest(
        employee_id=employee.id,
        leave_type=leave_type,
        start_date=start,
        end_date=end,
        days=days,
        reason="test",
        status=status,
    ))
    db_session.commit()


@pytest.fixture
def hourly(make_employee):
    return make_employee(salary_type=SalaryType.HOURLY.value, salary_amount=200.0)


def test_monthly_salary_is_the_fixed_amount(db_session, employee):
    _attend(db_session, employee, 2, 8.0)
    breakdown = salary_service.calculate_monthly_salary(db_session, employee.id, MONTH)
    assert breakdown.state == SalaryState.UNSETTLED
    assert breakdown.base_salary == 40000
    assert breakdown.total_salary == 40000
    assert breakdown.details["attendance_days"] == 1


def test_hourly_salary_is_rate_times_hours(db_session, hourly):
    _attend(db_session, hourly, 2, 8.0)
    _attend(db_session, hourly, 3, 4.5, status="late early_leave")
    _attend(db_session, hourly, 4, 6.0, status="late")

    breakdown = salary_service.calculate_monthly_salary(db_session, hourly.id, MONTH)

    assert breakdown.work_hours == 18.5
    assert breakdown.base_salary == 3700
    assert breakdown.details["late_count"] == 2
    assert breakdown.details["early_leave_count"] == 1
    assert breakdown.details["total_break_hours"] == 3.0


def test_only_approved_leave_in_the_month_counts(db_session, employee):
    _leave(db_session, employee, date(2026, 1, 30), date(2026, 2, 2), 4)
    _leave(db_session, employee, date(2026, 2, 10), date(2026, 2, 10), 1, leave_type="sick")
    _leave(db_session, employee, date(2026, 2, 11), date(2026, 2, 11), 1, status="pending")
    _leave(db_session, employee, date(2026, 3, 2), date(2026, 3, 2), 1)

    details = salary_service.aggregate_month(db_session, employee.id, MONTH)

    assert details["leave_days"] == {"annual": 2.0, "sick": 1.0}
    assert details["total_leave_days"] == 3.0


def test_calculation_never_writes(db_session, employee):
    salary_service.calculate_monthly_salary(db_session, employee.id, MONTH)
    assert db_session.query(SalaryRecord).count() == 0


def test_invalid_month_is_rejected(db_session, employee):
    with pytest.raises(ValidationError):
        salary_service.calculate_monthly_salary(db_session, employee.id, "2026-13")


def test_save_live_cache_is_idempotent(db_session, hourly, clock):
    _attend(db_session, hourly, 2, 8.0)
    breakdown = salary_service.calculate_monthly_salary(db_session, hourly.id, MONTH)

    salary_service.save_salary_record(db_session, breakdown, clock)
    salary_service.save_salary_record(db_session, breakdown, clock)

    records = db_session.query(SalaryRecord).all()
    assert len(records) == 1
    assert records[0].base_salary == 1600
    assert records[0].computed_at is not None
    assert not records[0].is_paid


def test_settle_twice_conflicts_and_keeps_snapshot(db_session, hourly, manager, clock):
    _attend(db_session, hourly, 2, 8.0)
    settled = salary_service.settle_salary(db_session, manager, hourly.id, MONTH, clock)
    assert settled.state == SalaryState.SETTLED
    record = db_session.query(SalaryRecord).one()
    snapshot = dict(record.settled_data)

    _attend(db_session, hourly, 3, 8.0)
    with pytest.raises(ConflictError):
        salary_service.settle_salary(db_session, manager, hourly.id, MONTH, clock)

    db_session.refresh(record)
    assert record.settled_data == snapshot
    assert record.is_paid


def test_settled_month_ignores_later_data(db_session, hourly, manager, clock):
    _attend(db_session, hourly, 2, 8.0)
    salary_service.settle_salary(db_session, manager, hourly.id, MONTH, clock)
    _attend(db_session, hourly, 3, 8.0)

    breakdown = salary_service.calculate_monthly_salary(db_session, hourly.id, MONTH)
    assert breakdown.state == SalaryState.SETTLED
    assert breakdown.total_salary == 1600

    live = salary_service.calculate_monthly_salary(db_session, hourly.id, MONTH, force_live=True)
    assert live.total_salary == 3200


def test_stale_live_save_cannot_overwrite_settlement(db_session, hourly, manager, clock):
    _attend(db_session, hourly, 2, 8.0)
    stale = salary_service.calculate_monthly_salary(db_session, hourly.id, MONTH)
    salary_service.settle_salary(db_session, manager, hourly.id, MONTH, clock)
    _attend(db_session, hourly, 3, 8.0)
    stale.base_salary = 99999

    assert salary_service.save_salary_record(db_session, stale, clock) is None
    settled_view = salary_service.calculate_monthly_salary(db_session, hourly.id, MONTH)
    assert salary_service.save_salary_record(db_session, settled_view, clock) is None

    record = db_session.query(SalaryRecord).one()
    assert record.base_salary == 1600
    assert record.settled_data["base_salary"] == 1600


def test_settle_resettle_round_trip(db_session, hourly, manager, clock):
    _attend(db_session, hourly, 2, 8.0)
    salary_service.update_bonus(db_session, manager, hourly.id, MONTH, 500.0, "Q1 target", clock)
    before = salary_service.calculate_monthly_salary(db_session, hourly.id, MONTH)

    settled = salary_service.settle_salary(db_session, manager, hourly.id, MONTH, clock)
    assert settled.total_salary == before.total_salary == 2100

    reopened = salary_service.resettle_salary(db_session, manager, hourly.id, MONTH, clock)
    assert reopened.state == SalaryState.UNSETTLED
    assert reopened.total_salary == before.total_salary
    assert reopened.bonus == 500
    assert reopened.notes == "Q1 target"

    record = db_session.query(SalaryRecord).one()
    assert record.settled_data is None
    assert record.paid_at is None


def test_resettle_requires_settled_month(db_session, hourly, manager, clock):
    with pytest.raises(ConflictError):
        salary_service.resettle_salary(db_session, manager, hourly.id, MONTH, clock)


def test_bonus_on_settled_month_conflicts(db_session, hourly, manager, clock):
    salary_service.settle_salary(db_session, manager, hourly.id, MONTH, clock)
    with pytest.raises(ConflictError):
        salary_service.update_bonus(db_session, manager, hourly.id, MONTH, 100.0, None, clock)


@pytest.mark.parametrize("bonus", [-1.0, math.nan, math.inf])
def test_bonus_must_be_a_non_negative_number(db_session, hourly, manager, clock, bonus):
    with pytest.raises(ValidationError):
        salary_service.update_bonus(db_session, manager, hourly.id, MONTH, bonus, None, clock)


def test_state_changes_are_manager_only(db_session, hourly, clock):
    with pytest.raises(AccessDeniedError):
        salary_service.settle_salary(db_session, hourly, hourly.id, MONTH, clock)
    with pytest.raises(AccessDeniedError):
        salary_service.update_bonus(db_session, hourly, hourly.id, MONTH, 1.0, None, clock)


def test_settlement_notifies_employee(db_session, hourly, manager, clock):
    salary_service.settle_salary(db_session, manager, hourly.id, MONTH, clock)
    assert db_session.query(Notification).filter(
        Notification.employee_id == hourly.id, Notification.type == "salary_settled"
    ).count() == 1


def test_employee_sees_only_settled_months(db_session, hourly, manager, clock):
    salary_service.update_bonus(db_session, manager, hourly.id, "2026-01", 10.0, None, clock)
    salary_service.settle_salary(db_session, manager, hourly.id, MONTH, clock)

    mine = salary_service.get_my_salary_records(db_session, hourly)
    assert [row["year_month"] for row in mine] == [MONTH]
    assert mine[0]["is_settled"] is True


def test_month_listing(db_session, employee, hourly, manager, clock):
    _attend(db_session, hourly, 2, 8.0)
    salary_service.settle_salary(db_session, manager, employee.id, MONTH, clock)

    rows = salary_service.list_monthly_salaries(db_session, manager, MONTH)

    by_id = {row["employee_id"]: row for row in rows}
    assert set(by_id) == {employee.id, hourly.id, manager.id}
    assert by_id[employee.id]["state"] == "settled"
    assert by_id[hourly.id]["total_salary"] == 1600
    with pytest.raises(AccessDeniedError):
        salary_service.list_monthly_salaries(db_session, employee, MONTH)


# ---------------------------------------------------------------------------
# HTTP surface
# ---------------------------------------------------------------------------

def test_settle_over_http(client, db_session, hourly, manager, auth_headers):
    _attend(db_session, hourly, 2, 8.0)

    response = client.post(f"/api/salary/{hourly.id}/settle", headers=auth_headers(manager), json={"year_month": MONTH})
    assert response.status_code == 200
    assert response.json()["state"] == "settled"
    assert response.json()["total_salary"] == 1600

    again = client.post(f"/api/salary/{hourly.id}/settle", headers=auth_headers(manager), json={"year_month": MONTH})
    assert again.status_code == 409

    mine = client.get("/api/salary/my", headers=auth_headers(hourly))
    assert [row["year_month"] for row in mine.json()] == [MONTH]


def test_bonus_and_preview_over_http(client, hourly, manager, auth_headers):
    response = client.put(
        f"/api/salary/{hourly.id}/bonus",
        headers=auth_headers(manager),
        json={"year_month": MONTH, "bonus": 300, "notes": "referral"},
    )
    assert response.status_code == 200
    assert response.json()["bonus"] == 300

    preview = client.get(f"/api/salary/{hourly.id}", params={"year_month": MONTH}, headers=auth_headers(manager))
    assert preview.status_code == 200
    assert preview.json()["total_salary"] == 300

    bad = client.put(
        f"/api/salary/{hourly.id}/bonus",
        headers=auth_headers(manager),
        json={"year_month": MONTH, "bonus": -5},
    )
    assert bad.status_code == 400


def test_salary_period_format_is_validated(client, hourly, manager, auth_headers):
    response = client.post(f"/api/salary/{hourly.id}/settle", headers=auth_headers(manager), json={"year_month": "Feb"})
    assert response.status_code == 422
