"""
Attendance service: the single write path for AttendanceRecord.

Manual edits, self-service check-in/out, bulk uploads and bulk weekoff all go through
upsert_attendance, so every record is shaped the same way (derived total_hours,
punctuality flags, late minutes).
"""
import logging
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from app.models.attendance import AttendanceRecord, AttendanceStatus, AttendanceSource
from app.services.audit_service import log_audit
from app.services.employee_service import get_employee_or_404
from app.services.grace_period_service import get_grace_minutes
from app.services.status_resolver import (
    HOURS_QUANT,
    Thresholds,
    compute_total_hours,
    evaluate_punctuality,
    resolve_day,
)
from app.utils.datetime_utils import ensure_utc, month_bounds, now_utc, to_local

_log = logging.getLogger(__name__)

_UNSET = object()

VALID_STATUSES = frozenset(s.value for s in AttendanceStatus)


def _validate_status(value) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Attendance status is required"
        )
    value = value.value if isinstance(value, AttendanceStatus) else str(value).strip().lower()
    if value not in VALID_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid attendance status '{value}'"
        )
    return value


def _assign(record: AttendanceRecord, fields: dict) -> None:
    for key, value in fields.items():
        setattr(record, key, value)


def _stored_lateness(record: AttendanceRecord) -> Tuple[Optional[bool], Optional[int]]:
    """
    (is_late, late_minutes) to carry into a rewrite with the same check-in.
    A value derived from a check-in is returned as None so it is derived again.
    """
    if record.late_overridden or record.check_in_time is None:
        return bool(record.is_late), record.late_minutes
    return None, None


def _stored_early_checkout(record: AttendanceRecord) -> Optional[bool]:
    if record.early_checkout_overridden or record.check_out_time is None:
        return bool(record.is_early_checkout)
    return None


def upsert_attendance(
    db: Session,
    employee_id: int,
    day: date,
    *,
    status_value,
    check_in_time: Optional[datetime] = None,
    check_out_time: Optional[datetime] = None,
    total_hours: Optional[Decimal] = None,
    is_late: Optional[bool] = None,
    is_early_checkout: Optional[bool] = None,
    late_minutes: Optional[int] = None,
    notes: Optional[str] = None,
    source: AttendanceSource = AttendanceSource.MANUAL,
    actor_id: Optional[int] = None,
    thresholds: Optional[Thresholds] = None,
) -> AttendanceRecord:
    """
    Unconditional write keyed by (employee_id, day). Does not commit.

    total_hours is the explicit override when given, otherwise derived from the times.
    With a check-in, lateness is measured against the standard check-in plus that day's
    grace. An explicit is_late / is_early_checkout wins over the derived value and is
    stored as an override, which the resolver keeps even when a check-in exists.
    A concurrent insert of the same key is retried as an update.
    """
    status_value = _validate_status(status_value)
    thresholds = thresholds or Thresholds.from_settings()
    check_in_time = ensure_utc(check_in_time)
    check_out_time = ensure_utc(check_out_time)

    if check_in_time and check_out_time and check_out_time < check_in_time:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="check_out_time must not be earlier than check_in_time"
        )

    if total_hours is not None:
        total_hours = Decimal(str(total_hours)).quantize(HOURS_QUANT, rounding=ROUND_HALF_UP)
    else:
        total_hours = compute_total_hours(check_in_time, check_out_time)

    derived_late, derived_minutes, derived_early = evaluate_punctuality(
        day, check_in_time, check_out_time, get_grace_minutes(db, day), thresholds
    )
    late_overridden = is_late is not None
    if not late_overridden:
        final_late = derived_late
        late_minutes = derived_minutes if check_in_time is not None else None
    else:
        final_late = bool(is_late)
        if not final_late:
            late_minutes = 0 if check_in_time is not None else None
        elif late_minutes is None and check_in_time is not None:
            late_minutes = derived_minutes
    early_overridden = is_early_checkout is not None
    final_early = is_early_checkout if early_overridden else derived_early

    now = now_utc()
    fields = dict(
        status=status_value,
        check_in_time=check_in_time,
        check_out_time=check_out_time,
        total_hours=total_hours,
        is_late=bool(final_late),
        is_early_checkout=bool(final_early),
        late_minutes=late_minutes,
        late_overridden=late_overridden,
        early_checkout_overridden=early_overridden,
        notes=notes,
        source=source.value if isinstance(source, AttendanceSource) else source,
        marked_by=actor_id,
        updated_at=now,
    )

    def _lookup():
        return db.query(AttendanceRecord).filter(
            AttendanceRecord.employee_id == employee_id,
            AttendanceRecord.date == day,
        ).first()

    try:
        with db.begin_nested():
            record = _lookup()
            if record is None:
                record = AttendanceRecord(employee_id=employee_id, date=day, created_at=now)
                db.add(record)
            _assign(record, fields)
    except IntegrityError:
        _log.debug("Concurrent insert for employee %s on %s, retrying as update", employee_id, day)
        with db.begin_nested():
            record = _lookup()
            if record is None:
                raise
            _assign(record, fields)

    return record


def mark_attendance(
    db: Session,
    employee_id: int,
    day: date,
    *,
    status_value,
    check_in_time: Optional[datetime] = None,
    check_out_time: Optional[datetime] = None,
    total_hours: Optional[Decimal] = None,
    is_late: Optional[bool] = None,
    is_early_checkout: Optional[bool] = None,
    notes: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> AttendanceRecord:
    """Manual mark (create or overwrite) of one day"""
    get_employee_or_404(db, employee_id)
    record = upsert_attendance(
        db,
        employee_id,
        day,
        status_value=status_value,
        check_in_time=check_in_time,
        check_out_time=check_out_time,
        total_hours=total_hours,
        is_late=is_late,
        is_early_checkout=is_early_checkout,
        notes=notes,
        source=AttendanceSource.MANUAL,
        actor_id=actor_id,
    )
    db.commit()
    db.refresh(record)

    if actor_id:
        log_audit(
            db=db,
            actor_id=actor_id,
            action="ATTENDANCE_MARK",
            entity_type="attendance_records",
            entity_id=record.id,
            meta={"employee_id": employee_id, "date": day, "status": record.status}
        )
    return record


def _day_record(db: Session, employee_id: int, day: date) -> Optional[AttendanceRecord]:
    return db.query(AttendanceRecord).filter(
        AttendanceRecord.employee_id == employee_id,
        AttendanceRecord.date == day,
    ).first()


def check_in(db: Session, employee_id: int, now: Optional[datetime] = None) -> AttendanceRecord:
    """
    Self-service check-in at server time. The work date is today in the organisation zone.

    Creates (or fills) the day's record as checked_in; lateness is derived with that day's grace.
    Raises 400 on a holiday or week-off and when the day already has a check-in.
    """
    now = ensure_utc(now) or now_utc()
    day = to_local(now).date()
    get_employee_or_404(db, employee_id)

    resolved = resolve_day(db, employee_id, day)
    if resolved.status in (AttendanceStatus.HOLIDAY.value, AttendanceStatus.WEEKOFF.value):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Today is a holiday or week-off; attendance is not required"
        )

    existing = _day_record(db, employee_id, day)
    if existing is not None and existing.check_in_time is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Already checked in"
        )

    record = upsert_attendance(
        db,
        employee_id,
        day,
        status_value=AttendanceStatus.CHECKED_IN,
        check_in_time=now,
        notes=existing.notes if existing is not None else None,
        source=AttendanceSource.SELF_SERVICE,
        actor_id=employee_id,
    )
    db.commit()
    db.refresh(record)
    _log.info("Employee %s checked in for %s (late=%s)", employee_id, day, record.is_late)

    log_audit(
        db=db,
        actor_id=employee_id,
        action="ATTENDANCE_CHECK_IN",
        entity_type="attendance_records",
        entity_id=record.id,
        meta={"date": day, "check_in_time": now, "is_late": record.is_late}
    )
    return record


def check_out(db: Session, employee_id: int, now: Optional[datetime] = None) -> AttendanceRecord:
    """
    Self-service check-out: closes today's check-in as present with derived hours.

    Raises 400 when there is no check-in for today or it is already closed.
    """
    now = ensure_utc(now) or now_utc()
    day = to_local(now).date()

    record = _day_record(db, employee_id, day)
    if record is None or record.check_in_time is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No active check-in"
        )
    if record.check_out_time is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Already checked out"
        )

    is_late, late_minutes = _stored_lateness(record)
    record = upsert_attendance(
        db,
        employee_id,
        day,
        status_value=AttendanceStatus.PRESENT,
        check_in_time=record.check_in_time,
        check_out_time=now,
        is_late=is_late,
        late_minutes=late_minutes,
        notes=record.notes,
        source=AttendanceSource.SELF_SERVICE,
        actor_id=employee_id,
    )
    db.commit()
    db.refresh(record)

    log_audit(
        db=db,
        actor_id=employee_id,
        action="ATTENDANCE_CHECK_OUT",
        entity_type="attendance_records",
        entity_id=record.id,
        meta={"date": day, "check_out_time": now, "total_hours": record.total_hours}
    )
    return record


def get_attendance_record(db: Session, record_id: int) -> AttendanceRecord:
    record = db.query(AttendanceRecord).filter(AttendanceRecord.id == record_id).first()
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Attendance record with id {record_id} not found"
        )
    return record


def update_attendance(
    db: Session,
    record_id: int,
    *,
    status_value=_UNSET,
    check_in_time=_UNSET,
    check_out_time=_UNSET,
    total_hours=_UNSET,
    is_late=_UNSET,
    is_early_checkout=_UNSET,
    notes=_UNSET,
    actor_id: Optional[int] = None,
) -> AttendanceRecord:
    """
    Manual edit of an existing record.

    Omitted fields keep their stored values; status is always required.
    Omitted total_hours and punctuality flags are only re-derived when the times they
    depend on change.

    Raises:
        HTTPException: 422 when status is missing or invalid, 404 when the record does not exist
    """
    if status_value is _UNSET or status_value is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Attendance status is required"
        )
    record = get_attendance_record(db, record_id)
    before = {"status": record.status, "total_hours": record.total_hours, "is_late": record.is_late}

    def keep(value, current):
        return current if value is _UNSET else value

    new_in = ensure_utc(keep(check_in_time, record.check_in_time))
    new_out = ensure_utc(keep(check_out_time, record.check_out_time))
    in_changed = new_in != ensure_utc(record.check_in_time)
    out_changed = new_out != ensure_utc(record.check_out_time)

    if total_hours is _UNSET:
        total_hours = None if (in_changed or out_changed) else record.total_hours

    late_minutes = None
    if is_late is _UNSET:
        is_late = None
        if not in_changed:
            is_late, late_minutes = _stored_lateness(record)
    if is_early_checkout is _UNSET:
        is_early_checkout = None
        if not out_changed:
            is_early_checkout = _stored_early_checkout(record)

    updated = upsert_attendance(
        db,
        record.employee_id,
        record.date,
        status_value=status_value,
        check_in_time=new_in,
        check_out_time=new_out,
        total_hours=total_hours,
        is_late=is_late,
        is_early_checkout=is_early_checkout,
        late_minutes=late_minutes,
        notes=keep(notes, record.notes),
        source=AttendanceSource.MANUAL,
        actor_id=actor_id,
    )
    db.commit()
    db.refresh(updated)

    if actor_id:
        log_audit(
            db=db,
            actor_id=actor_id,
            action="ATTENDANCE_UPDATE",
            entity_type="attendance_records",
            entity_id=updated.id,
            meta={
                "before": before,
                "after": {"status": updated.status, "total_hours": updated.total_hours, "is_late": updated.is_late},
            }
        )
    return updated


def list_attendance(
    db: Session,
    employee_id: Optional[int] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    status_value: Optional[str] = None,
) -> List[AttendanceRecord]:
    """List stored records (not resolved) with optional filters"""
    query = db.query(AttendanceRecord)
    if employee_id is not None:
        query = query.filter(AttendanceRecord.employee_id == employee_id)
    if from_date is not None:
        query = query.filter(AttendanceRecord.date >= from_date)
    if to_date is not None:
        query = query.filter(AttendanceRecord.date <= to_date)
    if status_value is not None:
        query = query.filter(AttendanceRecord.status == _validate_status(status_value))
    return query.order_by(AttendanceRecord.date, AttendanceRecord.employee_id).all()


def bulk_mark_weekoff(
    db: Session,
    employee_id: int,
    dates: Iterable[date],
    actor_id: Optional[int] = None,
) -> List[AttendanceRecord]:
    """Mark a set of dates as weekoff for one employee through the canonical write"""
    get_employee_or_404(db, employee_id)
    unique_dates = sorted(set(dates))
    if not unique_dates:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="At least one date is required"
        )

    records = [
        upsert_attendance(
            db,
            employee_id,
            day,
            status_value=AttendanceStatus.WEEKOFF,
            source=AttendanceSource.BULK_WEEKOFF,
            actor_id=actor_id,
        )
        for day in unique_dates
    ]
    db.commit()
    _log.info("Marked %d weekoff days for employee %s", len(records), employee_id)

    if actor_id:
        log_audit(
            db=db,
            actor_id=actor_id,
            action="ATTENDANCE_BULK_WEEKOFF",
            entity_type="attendance_records",
            meta={"employee_id": employee_id, "dates": unique_dates}
        )
    return records


def clear_month(
    db: Session,
    employee_id: int,
    year: int,
    month: int,
    actor_id: Optional[int] = None,
) -> int:
    """
    Delete one employee's attendance records for a month (explicit admin action)

    Returns:
        Number of deleted records
    """
    get_employee_or_404(db, employee_id)
    first, last = month_bounds(year, month)
    deleted = db.query(AttendanceRecord).filter(
        AttendanceRecord.employee_id == employee_id,
        AttendanceRecord.date >= first,
        AttendanceRecord.date <= last,
    ).delete(synchronize_session=False)
    db.commit()
    _log.info("Cleared %d attendance records for employee %s in %04d-%02d", deleted, employee_id, year, month)

    if actor_id:
        log_audit(
            db=db,
            actor_id=actor_id,
            action="ATTENDANCE_CLEAR_MONTH",
            entity_type="attendance_records",
            meta={"employee_id": employee_id, "month": f"{year:04d}-{month:02d}", "deleted": deleted}
        )
    return deleted
