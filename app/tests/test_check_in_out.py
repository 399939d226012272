"""
Tests for self-service check-in and check-out
"""
from datetime import date, datetime, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest
from fastapi import HTTPException, status

from app.models.attendance import AttendanceRecord, AttendanceSource, AttendanceStatus
from app.models.holiday import Holiday
from app.services.attendance_service import check_in, check_out
from app.services.grace_period_service import set_grace_period
from conftest import auth_headers

IST = ZoneInfo("Asia/Kolkata")
MONDAY = date(2026, 3, 2)
NINE_TWENTY = datetime(2026, 3, 2, 9, 20, tzinfo=IST)
FIVE_THIRTY = datetime(2026, 3, 2, 17, 30, tzinfo=IST)


def test_check_in_creates_checked_in_record(db, employee):
    record = check_in(db, employee.id, now=NINE_TWENTY)

    assert record.date == MONDAY
    assert record.status == AttendanceStatus.CHECKED_IN.value
    assert record.source == AttendanceSource.SELF_SERVICE.value
    assert record.is_late is True
    assert record.late_minutes == 20
    assert record.total_hours is None


def test_check_in_uses_grace_for_the_day(db, employee):
    set_grace_period(db, MONDAY, minutes=30)

    record = check_in(db, employee.id, now=NINE_TWENTY)

    assert record.is_late is False
    assert record.late_minutes == 0


def test_check_out_closes_day_as_present(db, employee):
    check_in(db, employee.id, now=NINE_TWENTY)

    record = check_out(db, employee.id, now=FIVE_THIRTY)

    assert record.status == AttendanceStatus.PRESENT.value
    assert record.total_hours == Decimal("8.17")
    assert record.is_early_checkout is True
    assert record.is_late is True
    assert record.late_minutes == 20
    assert db.query(AttendanceRecord).count() == 1


def test_work_date_follows_organisation_zone(db, employee):
    # 19:00 UTC on the 2nd is 00:30 on the 3rd in Asia/Kolkata
    record = check_in(db, employee.id, now=datetime(2026, 3, 2, 19, 0, tzinfo=timezone.utc))

    assert record.date == date(2026, 3, 3)


def test_second_check_in_is_rejected(db, employee):
    check_in(db, employee.id, now=NINE_TWENTY)

    with pytest.raises(HTTPException) as exc_info:
        check_in(db, employee.id, now=NINE_TWENTY.replace(hour=10))

    assert exc_info.value.status_code == status.HTTP_400_BAD_REQUEST
    assert exc_info.value.detail == "Already checked in"


def test_check_out_without_check_in_is_rejected(db, employee):
    with pytest.raises(HTTPException) as exc_info:
        check_out(db, employee.id, now=FIVE_THIRTY)

    assert exc_info.value.status_code == status.HTTP_400_BAD_REQUEST


def test_check_out_twice_is_rejected(db, employee):
    check_in(db, employee.id, now=NINE_TWENTY)
    check_out(db, employee.id, now=FIVE_THIRTY)

    with pytest.raises(HTTPException) as exc_info:
        check_out(db, employee.id, now=FIVE_THIRTY.replace(hour=18))

    assert exc_info.value.detail == "Already checked out"


def test_check_in_on_holiday_is_rejected(db, employee):
    db.add(Holiday(year=2026, date=MONDAY, name="Founders Day", active=True))
    db.commit()

    with pytest.raises(HTTPException) as exc_info:
        check_in(db, employee.id, now=NINE_TWENTY)

    assert exc_info.value.status_code == status.HTTP_400_BAD_REQUEST
    assert db.query(AttendanceRecord).count() == 0


def test_check_in_fills_record_marked_earlier(db, hr_user, employee):
    db.add(AttendanceRecord(
        employee_id=employee.id, date=MONDAY, status=AttendanceStatus.ABSENT.value, notes="no show yet",
    ))
    db.commit()

    record = check_in(db, employee.id, now=NINE_TWENTY)

    assert record.status == AttendanceStatus.CHECKED_IN.value
    assert record.notes == "no show yet"
    assert db.query(AttendanceRecord).count() == 1


def test_check_in_and_out_endpoints(client, employee):
    headers = auth_headers(employee)

    response = client.post("/api/v1/attendance/check-in", headers=headers)
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["status"] == "checked_in"

    response = client.post("/api/v1/attendance/check-in", headers=headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    response = client.post("/api/v1/attendance/check-out", headers=headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "present"
    assert data["check_out_time"] is not None


def test_check_in_requires_authentication(client):
    response = client.post("/api/v1/attendance/check-in")

    assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)
