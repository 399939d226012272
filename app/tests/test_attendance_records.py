"""
Tests for manual attendance marking, editing and bulk weekoff
"""
from datetime import date
from decimal import Decimal

from fastapi import status

from app.models.attendance import AttendanceRecord, AttendanceSource
from app.models.audit_log import AuditLog
from app.models.salary import SalaryType
from app.services.bulk_import_service import reconcile
from app.services.payroll_service import compute_payable, upsert_policy
from conftest import auth_headers

DAY = "2026-03-02"


def _mark(client, user, employee_id, **payload):
    body = {"employee_id": employee_id, "date": DAY, "status": "present"}
    body.update(payload)
    return client.post("/api/v1/attendance/records", json=body, headers=auth_headers(user))


def test_mark_derives_hours_and_lateness(client, hr_user, employee):
    response = _mark(
        client, hr_user, employee.id,
        check_in_time="2026-03-02T09:20:00+05:30",
        check_out_time="2026-03-02T18:30:00+05:30",
    )

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["status"] == "present"
    assert Decimal(data["total_hours"]) == Decimal("9.17")
    assert data["is_late"] is True
    assert data["late_minutes"] == 20
    assert data["is_early_checkout"] is False
    assert data["check_in_time"] == "2026-03-02T09:20:00+05:30"
    assert data["source"] == AttendanceSource.MANUAL.value


def test_mark_twice_overwrites_same_row(client, db, hr_user, employee):
    _mark(client, hr_user, employee.id)
    response = _mark(client, hr_user, employee.id, status="absent")

    assert response.status_code == status.HTTP_201_CREATED
    records = db.query(AttendanceRecord).filter(AttendanceRecord.employee_id == employee.id).all()
    assert len(records) == 1
    assert records[0].status == "absent"


def test_mark_rejects_checkout_before_checkin(client, hr_user, employee):
    response = _mark(
        client, hr_user, employee.id,
        check_in_time="2026-03-02T18:00:00+05:30",
        check_out_time="2026-03-02T09:00:00+05:30",
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_mark_unknown_employee_returns_404(client, hr_user):
    response = _mark(client, hr_user, 9999)

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_employee_cannot_mark_attendance(client, employee):
    response = _mark(client, employee, employee.id)

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_update_without_status_is_rejected(client, hr_user, employee):
    record_id = _mark(client, hr_user, employee.id).json()["id"]

    response = client.patch(
        f"/api/v1/attendance/records/{record_id}",
        json={"notes": "forgot the status"},
        headers=auth_headers(hr_user),
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_update_recomputes_total_hours(client, hr_user, employee):
    record_id = _mark(
        client, hr_user, employee.id,
        check_in_time="2026-03-02T09:00:00+05:30",
        check_out_time="2026-03-02T17:00:00+05:30",
    ).json()["id"]

    response = client.patch(
        f"/api/v1/attendance/records/{record_id}",
        json={"status": "present", "check_out_time": "2026-03-02T18:30:00+05:30"},
        headers=auth_headers(hr_user),
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert Decimal(data["total_hours"]) == Decimal("9.50")
    assert data["is_early_checkout"] is False
    assert data["check_in_time"] == "2026-03-02T09:00:00+05:30"


def test_update_explicit_total_hours_wins(client, hr_user, employee):
    record_id = _mark(
        client, hr_user, employee.id,
        check_in_time="2026-03-02T09:00:00+05:30",
        check_out_time="2026-03-02T17:00:00+05:30",
    ).json()["id"]

    response = client.patch(
        f"/api/v1/attendance/records/{record_id}",
        json={"status": "half_day", "total_hours": "4.5"},
        headers=auth_headers(hr_user),
    )

    data = response.json()
    assert data["status"] == "half_day"
    assert Decimal(data["total_hours"]) == Decimal("4.50")


def test_update_is_audited(client, db, hr_user, employee):
    record_id = _mark(client, hr_user, employee.id).json()["id"]

    client.patch(
        f"/api/v1/attendance/records/{record_id}",
        json={"status": "work_from_home"},
        headers=auth_headers(hr_user),
    )

    actions = [a.action for a in db.query(AuditLog).order_by(AuditLog.id).all()]
    assert actions == ["ATTENDANCE_MARK", "ATTENDANCE_UPDATE"]


def test_employee_lists_only_own_records(client, db, hr_user, employee):
    _mark(client, hr_user, employee.id)
    _mark(client, hr_user, hr_user.id)

    response = client.get(
        "/api/v1/attendance/records",
        params={"employee_id": hr_user.id},
        headers=auth_headers(employee),
    )

    assert response.status_code == status.HTTP_200_OK
    assert [r["employee_id"] for r in response.json()] == [employee.id]


def test_bulk_weekoff_marks_each_date(client, db, hr_user, employee):
    response = client.post(
        "/api/v1/attendance/weekoff/bulk",
        json={"employee_id": employee.id, "dates": ["2026-03-08", "2026-03-01", "2026-03-08"]},
        headers=auth_headers(hr_user),
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["marked"] == 2
    assert data["dates"] == ["2026-03-01", "2026-03-08"]

    records = db.query(AttendanceRecord).order_by(AttendanceRecord.date).all()
    assert [r.status for r in records] == ["weekoff", "weekoff"]
    assert {r.source for r in records} == {AttendanceSource.BULK_WEEKOFF.value}


def test_clear_month_is_admin_only(client, db, hr_user, admin_user, employee):
    _mark(client, hr_user, employee.id)
    params = {"employee_id": employee.id, "month": "2026-03"}

    forbidden = client.delete("/api/v1/attendance/records/month", params=params, headers=auth_headers(hr_user))
    assert forbidden.status_code == status.HTTP_403_FORBIDDEN

    response = client.delete("/api/v1/attendance/records/month", params=params, headers=auth_headers(admin_user))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["deleted"] == 1
    assert db.query(AttendanceRecord).filter(AttendanceRecord.date == date(2026, 3, 2)).count() == 0


def _patch(client, user, record_id, **payload):
    return client.patch(f"/api/v1/attendance/records/{record_id}", json=payload, headers=auth_headers(user))


def test_update_notes_keeps_late_flag_from_upload(client, db, hr_user, employee):
    reconcile(db, "Employee Name,2\nRavi Kumar,L\n", "2026-03", actor_id=hr_user.id)
    record = db.query(AttendanceRecord).one()

    response = _patch(client, hr_user, record.id, status="present", notes="verified by manager")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["is_late"] is True
    assert data["late_minutes"] is None
    assert data["notes"] == "verified by manager"

    resolved = client.get(
        "/api/v1/attendance/resolve",
        params={"employee_id": employee.id, "date": DAY},
        headers=auth_headers(hr_user),
    ).json()
    assert resolved["is_late"] is True


def test_update_notes_keeps_manual_total_hours(client, hr_user, employee):
    record_id = _mark(client, hr_user, employee.id, total_hours="8.00").json()["id"]

    response = _patch(client, hr_user, record_id, status="present", notes="timesheet checked")

    assert response.status_code == status.HTTP_200_OK
    assert Decimal(response.json()["total_hours"]) == Decimal("8.00")


def test_update_keeps_explicit_early_checkout_flag(client, hr_user, employee):
    record_id = _mark(client, hr_user, employee.id, is_early_checkout=True).json()["id"]

    response = _patch(client, hr_user, record_id, status="present")

    assert response.json()["is_early_checkout"] is True


def test_update_rederives_lateness_when_check_in_changes(client, hr_user, employee):
    record_id = _mark(
        client, hr_user, employee.id,
        check_in_time="2026-03-02T09:20:00+05:30",
        is_late=False,
    ).json()["id"]

    response = _patch(client, hr_user, record_id, status="present", check_in_time="2026-03-02T09:45:00+05:30")

    data = response.json()
    assert data["is_late"] is True
    assert data["late_minutes"] == 45
    assert data["late_overridden"] is False


def test_excused_late_arrival_is_not_penalised(client, db, hr_user, employee):
    upsert_policy(
        db, employee.id, SalaryType.FIXED_MONTHLY,
        monthly_salary=Decimal("30000"),
        late_penalty_enabled=True,
        late_penalty_per_minute=Decimal("2"),
    )
    response = _mark(client, hr_user, employee.id, check_in_time="2026-03-02T09:20:00+05:30", is_late=False)

    data = response.json()
    assert data["is_late"] is False
    assert data["late_minutes"] == 0
    assert data["late_overridden"] is True

    _patch(client, hr_user, data["id"], status="present", notes="client visit")

    resolved = client.get(
        "/api/v1/attendance/resolve",
        params={"employee_id": employee.id, "date": DAY},
        headers=auth_headers(hr_user),
    ).json()
    assert resolved["is_late"] is False
    assert resolved["late_minutes"] == 0

    breakdown = compute_payable(db, employee.id, "2026-03")
    assert breakdown.late_days == 0
    assert breakdown.late_penalty == Decimal("0.00")
    assert breakdown.payable == Decimal("30000.00")


def test_forced_late_flag_survives_grace(client, db, hr_user, employee):
    response = _mark(client, hr_user, employee.id, check_in_time="2026-03-02T09:05:00+05:30", is_late=True)
    assert response.json()["late_minutes"] == 5

    client.put("/api/v1/attendance/grace", json={"date": DAY, "minutes": 30}, headers=auth_headers(hr_user))

    resolved = client.get(
        "/api/v1/attendance/resolve",
        params={"employee_id": employee.id, "date": DAY},
        headers=auth_headers(hr_user),
    ).json()
    assert resolved["is_late"] is True
    assert resolved["late_minutes"] == 5
