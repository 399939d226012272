"""
Tests for the attendance status resolver
"""
from datetime import date, datetime, time, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest
from fastapi import status

from app.models.attendance import AttendanceRecord, AttendanceStatus
from app.models.holiday import Holiday
from app.models.leave import LeaveRequest, LeaveStatus, LeaveType
from app.services.status_resolver import (
    DaySources,
    PRECEDENCE_RULES,
    Thresholds,
    compute_total_hours,
    evaluate_punctuality,
    resolve,
    resolve_day,
    resolve_month,
)
from app.services.grace_period_service import set_grace_period
from conftest import auth_headers, make_employee

IST = ZoneInfo("Asia/Kolkata")
MONDAY = date(2026, 3, 2)


def _ist(day, hour, minute=0):
    return datetime.combine(day, time(hour, minute), tzinfo=IST).astimezone(timezone.utc)


def _record(day=MONDAY, status_value=AttendanceStatus.PRESENT.value, **kwargs):
    return AttendanceRecord(id=1, employee_id=1, date=day, status=status_value, **kwargs)


def _leave(leave_type, from_date, to_date, status_value=LeaveStatus.APPROVED):
    return LeaveRequest(
        employee_id=1, leave_type=leave_type, from_date=from_date, to_date=to_date, status=status_value
    )


def test_precedence_order_is_fixed():
    assert [r.name for r in PRECEDENCE_RULES] == ["holiday", "weekoff", "leave", "record", "default"]


def test_no_sources_resolves_absent(thresholds):
    resolved = resolve(DaySources(day=MONDAY), thresholds)

    assert resolved.status == AttendanceStatus.ABSENT.value
    assert resolved.source_rule == "default"
    assert resolved.is_late is False
    assert resolved.record_id is None


def test_holiday_beats_present_record(thresholds):
    sources = DaySources(
        day=MONDAY,
        record=_record(check_in_time=_ist(MONDAY, 9), check_out_time=_ist(MONDAY, 18)),
        holiday=Holiday(year=2026, date=MONDAY, name="Holi", active=True),
    )

    resolved = resolve(sources, thresholds)

    assert resolved.status == AttendanceStatus.HOLIDAY.value
    assert resolved.holiday_name == "Holi"
    assert resolved.record_id == 1


def test_inactive_holiday_is_ignored(thresholds):
    sources = DaySources(
        day=MONDAY,
        record=_record(),
        holiday=Holiday(year=2026, date=MONDAY, name="Cancelled", active=False),
    )

    assert resolve(sources, thresholds).status == AttendanceStatus.PRESENT.value


def test_weekoff_record_beats_leave(thresholds):
    sources = DaySources(
        day=MONDAY,
        record=_record(status_value=AttendanceStatus.WEEKOFF.value),
        leaves=[_leave(LeaveType.SICK, MONDAY, MONDAY)],
    )

    assert resolve(sources, thresholds).status == AttendanceStatus.WEEKOFF.value


def test_weekly_pattern_applies_without_record():
    sundays_off = Thresholds(check_in=time(9), check_out=time(18), tz=IST, weekly_off_days=(7,))
    sunday = date(2026, 3, 1)

    assert resolve(DaySources(day=sunday), sundays_off).status == AttendanceStatus.WEEKOFF.value
    assert resolve(DaySources(day=MONDAY), sundays_off).status == AttendanceStatus.ABSENT.value


@pytest.mark.parametrize(
    "leave_type,expected",
    [
        (LeaveType.SICK, AttendanceStatus.SICK_LEAVE.value),
        (LeaveType.CASUAL, AttendanceStatus.CASUAL_LEAVE.value),
        (LeaveType.EARNED, AttendanceStatus.LEAVE.value),
        (LeaveType.UNPAID, AttendanceStatus.LEAVE.value),
    ],
)
def test_approved_leave_maps_to_status(thresholds, leave_type, expected):
    sources = DaySources(
        day=MONDAY,
        record=_record(),
        leaves=[_leave(leave_type, date(2026, 3, 1), date(2026, 3, 3))],
    )

    resolved = resolve(sources, thresholds)

    assert resolved.status == expected
    assert resolved.leave_type == leave_type.value
    assert resolved.is_late is False


def test_pending_leave_does_not_apply(thresholds):
    sources = DaySources(
        day=MONDAY,
        leaves=[_leave(LeaveType.SICK, MONDAY, MONDAY, status_value=LeaveStatus.PENDING)],
    )

    assert resolve(sources, thresholds).status == AttendanceStatus.ABSENT.value


def test_first_approved_leave_wins(thresholds):
    sources = DaySources(
        day=MONDAY,
        leaves=[
            _leave(LeaveType.CASUAL, MONDAY, MONDAY),
            _leave(LeaveType.SICK, MONDAY, MONDAY),
        ],
    )

    assert resolve(sources, thresholds).status == AttendanceStatus.CASUAL_LEAVE.value


def test_resolution_is_deterministic(thresholds):
    sources = DaySources(
        day=MONDAY,
        record=_record(check_in_time=_ist(MONDAY, 9, 40), check_out_time=_ist(MONDAY, 17)),
        grace_minutes=15,
    )

    assert resolve(sources, thresholds) == resolve(sources, thresholds)


def test_check_in_after_threshold_is_late(thresholds):
    late, minutes, early = evaluate_punctuality(MONDAY, _ist(MONDAY, 9, 20), None, 0, thresholds)

    assert late is True
    assert minutes == 20
    assert early is False


def test_grace_extends_threshold(thresholds):
    late, minutes, _ = evaluate_punctuality(MONDAY, _ist(MONDAY, 9, 20), None, 30, thresholds)

    assert late is False
    assert minutes == 0


def test_check_in_exactly_at_threshold_is_not_late(thresholds):
    late, minutes, _ = evaluate_punctuality(MONDAY, _ist(MONDAY, 9, 30), None, 30, thresholds)

    assert late is False
    assert minutes == 0


def test_late_minutes_are_floored(thresholds):
    check_in = _ist(MONDAY, 9, 5).replace(second=59)

    _, minutes, _ = evaluate_punctuality(MONDAY, check_in, None, 0, thresholds)

    assert minutes == 5


def test_early_checkout(thresholds):
    _, minutes, early = evaluate_punctuality(MONDAY, None, _ist(MONDAY, 17, 30), 0, thresholds)

    assert minutes is None
    assert early is True


def test_total_hours_rounding_and_missing_times():
    check_in = _ist(MONDAY, 9)

    assert compute_total_hours(check_in, _ist(MONDAY, 17, 30)) == Decimal("8.50")
    assert compute_total_hours(check_in, check_in.replace(second=20)) == Decimal("0.01")
    assert compute_total_hours(check_in, None) is None
    assert compute_total_hours(_ist(MONDAY, 18), check_in) is None


def test_record_without_check_in_keeps_stored_late_flag(thresholds):
    sources = DaySources(day=MONDAY, record=_record(is_late=True, late_minutes=None))

    resolved = resolve(sources, thresholds)

    assert resolved.status == AttendanceStatus.PRESENT.value
    assert resolved.is_late is True
    assert resolved.late_minutes is None


def test_overridden_flags_win_over_check_in_times(thresholds):
    record = _record(
        check_in_time=_ist(MONDAY, 9, 20),
        check_out_time=_ist(MONDAY, 17),
        is_late=False,
        late_minutes=0,
        late_overridden=True,
        is_early_checkout=False,
        early_checkout_overridden=True,
    )

    resolved = resolve(DaySources(day=MONDAY, record=record), thresholds)

    assert resolved.is_late is False
    assert resolved.late_minutes == 0
    assert resolved.is_early_checkout is False


def test_resolve_day_uses_grace_from_database(db, employee, thresholds):
    db.add(AttendanceRecord(
        employee_id=employee.id,
        date=MONDAY,
        status=AttendanceStatus.PRESENT.value,
        check_in_time=_ist(MONDAY, 9, 20),
        check_out_time=_ist(MONDAY, 18),
    ))
    db.commit()

    assert resolve_day(db, employee.id, MONDAY, thresholds).is_late is True

    set_grace_period(db, MONDAY, minutes=30, reason="Heavy rain")

    resolved = resolve_day(db, employee.id, MONDAY, thresholds)
    assert resolved.is_late is False
    assert resolved.total_hours == Decimal("8.67")


def test_resolve_month_counts(db, employee):
    db.add(Holiday(year=2026, date=date(2026, 2, 2), name="Founders Day", active=True))
    db.add(AttendanceRecord(
        employee_id=employee.id, date=date(2026, 2, 3), status=AttendanceStatus.PRESENT.value,
    ))
    db.commit()

    result = resolve_month(db, employee.id, 2026, 2)

    assert result["month"] == "2026-02"
    assert len(result["days"]) == 28
    assert result["counts"]["holiday"] == 1
    assert result["counts"]["present"] == 1
    assert result["counts"]["absent"] == 26


def test_resolve_endpoint_other_employee_requires_reader_role(client, db, employee, hr_user):
    colleague = make_employee(db, "EMP002", "Sita Rao")

    response = client.get(
        "/api/v1/attendance/resolve",
        params={"employee_id": colleague.id, "date": "2026-03-02"},
        headers=auth_headers(employee),
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = client.get(
        "/api/v1/attendance/resolve",
        params={"employee_id": colleague.id, "date": "2026-03-02"},
        headers=auth_headers(hr_user),
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "absent"


def test_resolve_endpoint_requires_auth(client):
    response = client.get("/api/v1/attendance/resolve", params={"employee_id": 1, "date": "2026-03-02"})

    assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)
