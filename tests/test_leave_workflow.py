import pytest
from datetime import date

from app.core.exceptions import AccessDeniedError, ConflictError, ValidationError
from app.models.leave_balance import LeaveBalance
from app.models.leave_request import LeaveCancellationRequest, LeaveRequest, LeaveStatus
from app.models.notification import Notification
from app.services import leave_service


@pytest.fixture
def staff(make_employee):
    """Onboarded 2023-06-01: three full years by the end of 2026, i.e. 14 days."""
    return make_employee(email="staff@example.com", onboard_date=date(2023, 6, 1))


def _set_total(db_session, employee, year, total):
    balance = leave_service.get_or_create_balance(db_session, employee, year)
    balance.total_days = total
    db_session.commit()
    return balance


def _apply(db_session, employee, days, start=date(2026, 3, 2), leave_type="annual"):
    return leave_service.apply_leave(
        db_session, employee, leave_type, start, start, days, "family trip",
    )


def test_balance_is_seeded_from_service_length(db_session, staff):
    balance = leave_service.get_or_create_balance(db_session, staff, 2026)
    assert balance.total_days == 14
    assert balance.used_days == 0
    assert db_session.query(LeaveBalance).count() == 1


def test_balance_requires_onboard_date(db_session, make_employee):
    emp = make_employee(onboard_date=None)
    with pytest.raises(ValidationError):
        leave_service.get_or_create_balance(db_session, emp, 2026)


def test_reservation_blocks_overbooking(db_session, staff, manager):
    _set_total(db_session, staff, 2026, 10)
    first = _apply(db_session, staff, 6)

    with pytest.raises(ConflictError) as exc:
        _apply(db_session, staff, 5, start=date(2026, 4, 1))
    assert exc.value.details == {
        "total_days": 10,
        "reserved_days": 6,
        "requested_days": 5,
        "remaining_days": 4,
    }
    assert db_session.query(LeaveRequest).count() == 1

    # Approval moves nothing on the balance total
    leave_service.review_leave(db_session, manager, first.id, "approved")
    balance = leave_service.get_or_create_balance(db_session, staff, 2026)
    assert balance.total_days == 10
    assert balance.used_days == 6

    # Rejection releases the reservation
    second = _apply(db_session, staff, 4, start=date(2026, 4, 1))
    leave_service.review_leave(db_session, manager, second.id, "rejected", "busy season")
    third = _apply(db_session, staff, 4, start=date(2026, 5, 4))
    assert third.status == LeaveStatus.PENDING.value


def test_reservation_is_per_start_year(db_session, staff):
    _set_total(db_session, staff, 2026, 3)
    _set_total(db_session, staff, 2027, 3)
    _apply(db_session, staff, 3)
    leave = _apply(db_session, staff, 3, start=date(2027, 1, 4))
    assert leave.id is not None


def test_non_annual_leave_is_not_capped(db_session, staff):
    _set_total(db_session, staff, 2026, 0)
    leave = _apply(db_session, staff, 5, leave_type="sick")
    assert leave.status == LeaveStatus.PENDING.value


@pytest.mark.parametrize("leave_type, start, end, days, reason", [
    ("annual", date(2026, 3, 5), date(2026, 3, 4), 1, "x"),
    ("annual", date(2026, 3, 5), date(2026, 3, 5), 0, "x"),
    ("annual", date(2026, 3, 5), date(2026, 3, 5), 0.3, "x"),
    ("annual", date(2026, 3, 5), date(2026, 3, 5), 1, "   "),
    ("holiday", date(2026, 3, 5), date(2026, 3, 5), 1, "x"),
])
def test_invalid_applications(db_session, staff, leave_type, start, end, days, reason):
    with pytest.raises(ValidationError):
        leave_service.apply_leave(db_session, staff, leave_type, start, end, days, reason)


def test_review_twice_conflicts(db_session, staff, manager):
    leave = _apply(db_session, staff, 1)
    leave_service.review_leave(db_session, manager, leave.id, "approved")
    with pytest.raises(ConflictError):
        leave_service.review_leave(db_session, manager, leave.id, "rejected")


def test_review_is_manager_only(db_session, staff):
    leave = _apply(db_session, staff, 1)
    with pytest.raises(AccessDeniedError):
        leave_service.review_leave(db_session, staff, leave.id, "approved")


def test_usage_caches_follow_status_changes(db_session, staff, manager):
    leave = _apply(db_session, staff, 2)
    db_session.refresh(staff)
    assert staff.annual_leave_used == 2

    leave_service.review_leave(db_session, manager, leave.id, "rejected")
    db_session.refresh(staff)
    assert staff.annual_leave_used == 0
    assert leave_service.get_or_create_balance(db_session, staff, 2026).used_days == 0


def test_cancel_pending_leave(db_session, staff):
    leave = _apply(db_session, staff, 2)
    result = leave_service.cancel_leave(db_session, staff, leave.id)
    assert result["status"] == LeaveStatus.CANCELLED.value
    assert leave_service.reserved_days(db_session, staff.id, 2026) == 0


def test_cancel_someone_elses_leave_is_denied(db_session, staff, make_employee):
    other = make_employee()
    leave = _apply(db_session, staff, 1)
    with pytest.raises(AccessDeniedError):
        leave_service.cancel_leave(db_session, other, leave.id)


def test_approved_leave_cancellation_flow(db_session, staff, manager):
    leave = _apply(db_session, staff, 3)
    leave_service.review_leave(db_session, manager, leave.id, "approved")

    result = leave_service.cancel_leave(db_session, staff, leave.id, "plans changed")
    assert result["status"] == LeaveStatus.APPROVED.value
    with pytest.raises(ConflictError):
        leave_service.cancel_leave(db_session, staff, leave.id)

    pending = leave_service.get_pending_cancellations(db_session, manager)
    assert [c.id for c in pending] == [result["cancellation_request_id"]]

    leave_service.review_cancellation(db_session, manager, result["cancellation_request_id"], approve=True)
    db_session.refresh(leave)
    assert leave.status == LeaveStatus.CANCELLED.value
    assert leave_service.reserved_days(db_session, staff.id, 2026) == 0

    with pytest.raises(ConflictError):
        leave_service.review_cancellation(db_session, manager, result["cancellation_request_id"], approve=False)


def test_rejected_cancellation_keeps_leave(db_session, staff, manager):
    leave = _apply(db_session, staff, 1)
    leave_service.review_leave(db_session, manager, leave.id, "approved")
    result = leave_service.cancel_leave(db_session, staff, leave.id)

    cancellation = leave_service.review_cancellation(db_session, manager, result["cancellation_request_id"], approve=False)

    assert cancellation.status == "rejected"
    db_session.refresh(leave)
    assert leave.status == LeaveStatus.APPROVED.value


def test_notifications_follow_the_workflow(db_session, staff, manager):
    leave = _apply(db_session, staff, 1)
    assert db_session.query(Notification).filter(
        Notification.employee_id == manager.id, Notification.type == "new_leave_request"
    ).count() == 1

    leave_service.review_leave(db_session, manager, leave.id, "approved")
    assert db_session.query(Notification).filter(
        Notification.employee_id == staff.id, Notification.type == "leave_approved"
    ).count() == 1


def test_notification_failure_does_not_undo_the_leave(db_session, staff, manager, monkeypatch):
    from app.services.notification import NotificationService

    def explode(*args, **kwargs):
        raise RuntimeError("mail server down")

    monkeypatch.setattr(NotificationService, "create_notification", staticmethod(explode))

    leave = _apply(db_session, staff, 1)
    assert db_session.query(LeaveRequest).filter(LeaveRequest.id == leave.id).count() == 1
    assert leave_service.reserved_days(db_session, staff.id, 2026) == 1


def test_balance_view(db_session, staff, manager):
    approved = _apply(db_session, staff, 2)
    leave_service.review_leave(db_session, manager, approved.id, "approved")
    _apply(db_session, staff, 1.5, start=date(2026, 6, 1))

    view = leave_service.get_leave_balance(db_session, staff, staff.id, 2026)
    assert view["total_days"] == 14
    assert view["approved_days"] == 2
    assert view["pending_days"] == 1.5
    assert view["remaining_days"] == 10.5

    with pytest.raises(AccessDeniedError):
        leave_service.get_leave_balance(db_session, staff, manager.id, 2026)


# ---------------------------------------------------------------------------
# HTTP surface
# ---------------------------------------------------------------------------

def test_apply_and_review_over_http(client, staff, manager, auth_headers):
    response = client.post(
        "/api/leave/",
        headers=auth_headers(staff),
        json={"leave_type": "annual", "start_date": "2026-03-02", "end_date": "2026-03-03", "days": 2, "reason": "trip"},
    )
    assert response.status_code == 200
    leave_id = response.json()["id"]
    assert response.json()["status"] == "pending"

    pending = client.get("/api/leave/manage/pending", headers=auth_headers(manager))
    assert [item["id"] for item in pending.json()] == [leave_id]
    assert client.get("/api/leave/manage/pending", headers=auth_headers(staff)).status_code == 403

    review = client.post(
        f"/api/leave/manage/{leave_id}/review",
        headers=auth_headers(manager),
        json={"status": "approved", "comment": "enjoy"},
    )
    assert review.status_code == 200
    assert review.json()["status"] == "approved"

    again = client.post(
        f"/api/leave/manage/{leave_id}/review",
        headers=auth_headers(manager),
        json={"status": "rejected"},
    )
    assert again.status_code == 409
    assert again.json()["errors"][0]["code"] == "CONFLICT"


def test_overbooking_over_http_returns_details(client, db_session, staff, auth_headers):
    _set_total(db_session, staff, 2026, 1)
    response = client.post(
        "/api/leave/",
        headers=auth_headers(staff),
        json={"leave_type": "annual", "start_date": "2026-03-02", "end_date": "2026-03-03", "days": 2, "reason": "trip"},
    )
    assert response.status_code == 409
    assert response.json()["errors"][0]["details"]["remaining_days"] == 1


def test_my_leaves_and_balance_over_http(client, staff, auth_headers):
    client.post(
        "/api/leave/",
        headers=auth_headers(staff),
        json={"leave_type": "sick", "start_date": "2026-02-16", "end_date": "2026-02-16", "days": 1, "reason": "flu"},
    )
    mine = client.get("/api/leave/my", headers=auth_headers(staff))
    assert len(mine.json()) == 1

    balance = client.get("/api/leave/balance", headers=auth_headers(staff))
    assert balance.status_code == 200
    assert balance.json()["year"] == 2026
    assert balance.json()["remaining_days"] == 14


def test_manager_views_employee_leaves_for_a_month(db_session, staff, manager):
    _apply(db_session, staff, 1, start=date(2026, 2, 27))
    rejected = _apply(db_session, staff, 1, start=date(2026, 3, 2))
    leave_service.review_leave(db_session, manager, rejected.id, "rejected")
    _apply(db_session, staff, 1, start=date(2026, 4, 1))
    leave_service.apply_leave(
        db_session, staff, "personal", date(2026, 2, 28), date(2026, 3, 1), 2, "move house",
    )

    march = leave_service.get_employee_leaves(db_session, manager, staff.id, "2026-03")

    assert [(leave.start_date, leave.status) for leave in march] == [
        (date(2026, 2, 28), "pending"),
        (date(2026, 3, 2), "rejected"),
    ]
    with pytest.raises(AccessDeniedError):
        leave_service.get_employee_leaves(db_session, staff, staff.id, "2026-03")
    with pytest.raises(ValidationError):
        leave_service.get_employee_leaves(db_session, manager, staff.id, "March")


def test_employee_leaves_over_http(client, staff, manager, auth_headers):
    client.post(
        "/api/leave/",
        headers=auth_headers(staff),
        json={"leave_type": "sick", "start_date": "2026-02-16", "end_date": "2026-02-16", "days": 1, "reason": "flu"},
    )
    response = client.get(
        f"/api/leave/manage/employee/{staff.id}", params={"year_month": "2026-02"}, headers=auth_headers(manager)
    )
    assert response.status_code == 200
    assert [item["leave_type"] for item in response.json()] == ["sick"]
    assert client.get(
        f"/api/leave/manage/employee/{staff.id}", params={"year_month": "2026-02"}, headers=auth_headers(staff)
    ).status_code == 403
