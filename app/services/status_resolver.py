"""
Status resolver: decides the one authoritative attendance status for (employee, date).

Precedence lives only in PRECEDENCE_RULES and is evaluated top-down:
holiday > weekoff (record or weekly pattern) > approved leave > explicit record > absent.

resolve() is pure; resolve_day/resolve_range load the inputs from the database in bulk.
"""
import logging
from collections import Counter, namedtuple
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.attendance import AttendanceRecord, AttendanceStatus
from app.models.grace_period import GracePeriod
from app.models.holiday import Holiday
from app.models.leave import LeaveRequest, LeaveStatus, LeaveType
from app.utils.datetime_utils import ensure_utc, iter_days, month_bounds

_log = logging.getLogger(__name__)

HOURS_QUANT = Decimal("0.01")


@dataclass(frozen=True)
class Thresholds:
    """Organisation-wide punctuality thresholds"""
    check_in: time
    check_out: time
    tz: ZoneInfo
    weekly_off_days: Tuple[int, ...] = ()

    @classmethod
    def from_settings(cls) -> "Thresholds":
        return cls(
            check_in=settings.get_check_in_time(),
            check_out=settings.get_check_out_time(),
            tz=ZoneInfo(settings.ORG_TIMEZONE),
            weekly_off_days=tuple(settings.get_weekly_off_days()),
        )


@dataclass
class DaySources:
    """Every fact that can influence one (employee, date)"""
    day: date
    record: Optional[AttendanceRecord] = None
    holiday: Optional[Holiday] = None
    leaves: Sequence[LeaveRequest] = field(default_factory=list)
    grace_minutes: int = 0


@dataclass
class ResolvedDay:
    date: date
    status: str
    source_rule: str
    is_late: bool = False
    is_early_checkout: bool = False
    late_minutes: Optional[int] = None
    total_hours: Optional[Decimal] = None
    record_id: Optional[int] = None
    holiday_name: Optional[str] = None
    leave_type: Optional[str] = None
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None


ResolutionRule = namedtuple("ResolutionRule", ["name", "applies", "status"])


def round_hours(seconds) -> Decimal:
    """Seconds to hours, rounded half-up to two decimals"""
    return (Decimal(seconds) / Decimal(3600)).quantize(HOURS_QUANT, rounding=ROUND_HALF_UP)


def compute_total_hours(check_in: Optional[datetime], check_out: Optional[datetime]) -> Optional[Decimal]:
    """Worked hours between check-in and check-out; None when either is missing or out precedes in"""
    if check_in is None or check_out is None:
        return None
    seconds = (ensure_utc(check_out) - ensure_utc(check_in)).total_seconds()
    if seconds < 0:
        return None
    return round_hours(seconds)


def evaluate_punctuality(
    day: date,
    check_in: Optional[datetime],
    check_out: Optional[datetime],
    grace_minutes: int,
    thresholds: Thresholds,
) -> Tuple[bool, Optional[int], bool]:
    """
    Lateness against standard check-in + grace, early checkout against standard check-out.

    Returns:
        (is_late, late_minutes, is_early_checkout); late_minutes is None without a check-in
    """
    is_late, late_minutes, is_early = False, None, False

    if check_in is not None:
        local_in = ensure_utc(check_in).astimezone(thresholds.tz)
        threshold = datetime.combine(day, thresholds.check_in, tzinfo=thresholds.tz)
        threshold += timedelta(minutes=grace_minutes or 0)
        if local_in > threshold:
            is_late = True
            late_minutes = int((local_in - threshold).total_seconds() // 60)
        else:
            late_minutes = 0

    if check_out is not None:
        local_out = ensure_utc(check_out).astimezone(thresholds.tz)
        is_early = local_out < datetime.combine(day, thresholds.check_out, tzinfo=thresholds.tz)

    return is_late, late_minutes, is_early


def _covering_leave(sources: DaySources) -> Optional[LeaveRequest]:
    # first approved leave wins (callers pass leaves ordered by from_date, id)
    for leave in sources.leaves:
        if leave.status == LeaveStatus.APPROVED and leave.from_date <= sources.day <= leave.to_date:
            return leave
    return None


def _leave_status(sources: DaySources, thresholds: Thresholds) -> str:
    leave_type = _covering_leave(sources).leave_type
    if leave_type == LeaveType.SICK:
        return AttendanceStatus.SICK_LEAVE.value
    if leave_type == LeaveType.CASUAL:
        return AttendanceStatus.CASUAL_LEAVE.value
    return AttendanceStatus.LEAVE.value


def _is_weekoff(sources: DaySources, thresholds: Thresholds) -> bool:
    if sources.record is not None and sources.record.status == AttendanceStatus.WEEKOFF.value:
        return True
    return sources.day.isoweekday() in thresholds.weekly_off_days


PRECEDENCE_RULES: Tuple[ResolutionRule, ...] = (
    ResolutionRule(
        "holiday",
        lambda s, t: s.holiday is not None and s.holiday.active,
        lambda s, t: AttendanceStatus.HOLIDAY.value,
    ),
    ResolutionRule(
        "weekoff",
        _is_weekoff,
        lambda s, t: AttendanceStatus.WEEKOFF.value,
    ),
    ResolutionRule(
        "leave",
        lambda s, t: _covering_leave(s) is not None,
        _leave_status,
    ),
    ResolutionRule(
        "record",
        lambda s, t: s.record is not None,
        lambda s, t: s.record.status,
    ),
    ResolutionRule(
        "default",
        lambda s, t: True,
        lambda s, t: AttendanceStatus.ABSENT.value,
    ),
)


def resolve(sources: DaySources, thresholds: Optional[Thresholds] = None) -> ResolvedDay:
    """Resolve one day. Total and deterministic: the last rule always applies."""
    thresholds = thresholds or Thresholds.from_settings()
    rule = next(r for r in PRECEDENCE_RULES if r.applies(sources, thresholds))
    record = sources.record

    resolved = ResolvedDay(
        date=sources.day,
        status=rule.status(sources, thresholds),
        source_rule=rule.name,
        record_id=record.id if record is not None else None,
    )
    if rule.name == "holiday":
        resolved.holiday_name = sources.holiday.name
    elif rule.name == "leave":
        leave_type = _covering_leave(sources).leave_type
        resolved.leave_type = leave_type.value if isinstance(leave_type, LeaveType) else leave_type
    elif rule.name == "record":
        _apply_record(resolved, sources, thresholds)
    return resolved


def _apply_record(resolved: ResolvedDay, sources: DaySources, thresholds: Thresholds) -> None:
    record = sources.record
    resolved.check_in_time = record.check_in_time
    resolved.check_out_time = record.check_out_time

    if record.total_hours is not None:
        resolved.total_hours = Decimal(str(record.total_hours)).quantize(HOURS_QUANT, rounding=ROUND_HALF_UP)
    else:
        resolved.total_hours = compute_total_hours(record.check_in_time, record.check_out_time)

    is_late, late_minutes, is_early = evaluate_punctuality(
        sources.day, record.check_in_time, record.check_out_time, sources.grace_minutes, thresholds
    )
    # explicit overrides, or no time to derive from (e.g. an 'L' upload cell): keep the stored flag
    if record.late_overridden or record.check_in_time is None:
        is_late = bool(record.is_late)
        if is_late:
            late_minutes = record.late_minutes
        else:
            late_minutes = 0 if record.check_in_time is not None else None
    if record.early_checkout_overridden or record.check_out_time is None:
        is_early = bool(record.is_early_checkout)

    resolved.is_late = is_late
    resolved.late_minutes = late_minutes
    resolved.is_early_checkout = is_early


def load_sources(
    db: Session,
    employee_id: int,
    from_date: date,
    to_date: date,
) -> List[DaySources]:
    """Load every source for a date range with one query per source"""
    records = {
        r.date: r
        for r in db.query(AttendanceRecord).filter(
            AttendanceRecord.employee_id == employee_id,
            AttendanceRecord.date >= from_date,
            AttendanceRecord.date <= to_date,
        ).all()
    }
    holidays = {
        h.date: h
        for h in db.query(Holiday).filter(
            Holiday.active == True,  # noqa: E712
            Holiday.date >= from_date,
            Holiday.date <= to_date,
        ).all()
    }
    leaves = db.query(LeaveRequest).filter(
        LeaveRequest.employee_id == employee_id,
        LeaveRequest.status == LeaveStatus.APPROVED,
        LeaveRequest.from_date <= to_date,
        LeaveRequest.to_date >= from_date,
    ).order_by(LeaveRequest.from_date, LeaveRequest.id).all()
    graces = {
        g.date: g.minutes
        for g in db.query(GracePeriod).filter(
            GracePeriod.date >= from_date,
            GracePeriod.date <= to_date,
        ).all()
    }

    return [
        DaySources(
            day=day,
            record=records.get(day),
            holiday=holidays.get(day),
            leaves=leaves,
            grace_minutes=graces.get(day, 0),
        )
        for day in iter_days(from_date, to_date)
    ]


def resolve_range(
    db: Session,
    employee_id: int,
    from_date: date,
    to_date: date,
    thresholds: Optional[Thresholds] = None,
) -> List[ResolvedDay]:
    """Resolve every day in [from_date, to_date] for one employee"""
    thresholds = thresholds or Thresholds.from_settings()
    days = [resolve(s, thresholds) for s in load_sources(db, employee_id, from_date, to_date)]
    _log.debug("Resolved %d days for employee %s (%s..%s)", len(days), employee_id, from_date, to_date)
    return days


def resolve_day(
    db: Session,
    employee_id: int,
    day: date,
    thresholds: Optional[Thresholds] = None,
) -> ResolvedDay:
    return resolve_range(db, employee_id, day, day, thresholds)[0]


def resolve_month(db: Session, employee_id: int, year: int, month: int) -> Dict:
    """Month calendar with per-status counts"""
    first, last = month_bounds(year, month)
    days = resolve_range(db, employee_id, first, last)
    counts = Counter(d.status for d in days)
    return {
        "employee_id": employee_id,
        "month": f"{year:04d}-{month:02d}",
        "days": days,
        "counts": dict(counts),
        "late_days": sum(1 for d in days if d.is_late),
    }
