"""
Task timer service: per-(task, holder) idle/running/paused state machine.

The session row is committed on every transition and elapsed time is always recomputed
from started_at, so a restart of the process (or the client) never loses running time.
"""
import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from app.models.task import Task, TimerSession, TimerState
from app.services.audit_service import log_audit
from app.services.status_resolver import HOURS_QUANT, round_hours
from app.utils.datetime_utils import ensure_utc, now_utc

_log = logging.getLogger(__name__)


def get_task(db: Session, task_id: int) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if task is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Task with id {task_id} not found"
        )
    return task


def _get_session(db: Session, task_id: int, holder_id: int) -> TimerSession:
    session = db.query(TimerSession).filter(
        TimerSession.task_id == task_id,
        TimerSession.holder_id == holder_id,
    ).first()
    if session is not None:
        return session

    get_task(db, task_id)
    try:
        with db.begin_nested():
            session = TimerSession(
                task_id=task_id,
                holder_id=holder_id,
                state=TimerState.IDLE,
                started_at=None,
                accumulated_seconds=0,
                updated_at=now_utc(),
            )
            db.add(session)
    except IntegrityError:
        # another request created it first
        session = db.query(TimerSession).filter(
            TimerSession.task_id == task_id,
            TimerSession.holder_id == holder_id,
        ).one()
    return session


def _running_seconds(session: TimerSession, now: datetime) -> int:
    if session.state != TimerState.RUNNING or session.started_at is None:
        return 0
    return max(0, int((ensure_utc(now) - ensure_utc(session.started_at)).total_seconds()))


def elapsed_seconds(session: TimerSession, now: Optional[datetime] = None) -> int:
    """accumulated + (now - started_at) while running"""
    now = now or now_utc()
    return (session.accumulated_seconds or 0) + _running_seconds(session, now)


def _fold(session: TimerSession, now: datetime) -> None:
    session.accumulated_seconds = elapsed_seconds(session, now)
    session.started_at = None


def _persist(db: Session, session: TimerSession, actor_id: int, action: str, meta: Dict) -> TimerSession:
    log_audit(
        db=db,
        actor_id=actor_id,
        action=action,
        entity_type="timer_sessions",
        entity_id=session.id,
        meta=meta,
        commit=False,
    )
    db.commit()
    db.refresh(session)
    return session


def start_timer(db: Session, task_id: int, holder_id: int, now: Optional[datetime] = None) -> TimerSession:
    """Start or resume. Starting a running timer is a no-op."""
    now = now or now_utc()
    session = _get_session(db, task_id, holder_id)
    if session.state == TimerState.RUNNING:
        return session

    session.state = TimerState.RUNNING
    session.started_at = now
    session.updated_at = now
    _log.debug("Timer started: task=%s holder=%s carried=%ss", task_id, holder_id, session.accumulated_seconds)
    return _persist(db, session, holder_id, "TIMER_START", {"task_id": task_id})


def pause_timer(db: Session, task_id: int, holder_id: int, now: Optional[datetime] = None) -> TimerSession:
    """Fold running time into accumulated. Pausing a timer that is not running is a no-op."""
    now = now or now_utc()
    session = _get_session(db, task_id, holder_id)
    if session.state != TimerState.RUNNING:
        return session

    _fold(session, now)
    session.state = TimerState.PAUSED
    session.updated_at = now
    return _persist(
        db, session, holder_id, "TIMER_PAUSE",
        {"task_id": task_id, "accumulated_seconds": session.accumulated_seconds},
    )


def stop_timer(db: Session, task_id: int, holder_id: int, now: Optional[datetime] = None) -> Dict:
    """
    Stop and reset the timer.

    Returns:
        {task_id, seconds, hours}; the caller decides whether to log the hours or discard them
    """
    now = now or now_utc()
    session = _get_session(db, task_id, holder_id)
    seconds = elapsed_seconds(session, now)

    session.state = TimerState.IDLE
    session.started_at = None
    session.accumulated_seconds = 0
    session.updated_at = now
    hours = round_hours(seconds)
    _persist(db, session, holder_id, "TIMER_STOP", {"task_id": task_id, "seconds": seconds, "hours": hours})
    _log.info("Timer stopped: task=%s holder=%s seconds=%s", task_id, holder_id, seconds)
    return {"task_id": task_id, "seconds": seconds, "hours": hours}


def discard_timer(db: Session, task_id: int, holder_id: int, now: Optional[datetime] = None) -> TimerSession:
    """Reset the timer without returning any time"""
    now = now or now_utc()
    session = _get_session(db, task_id, holder_id)
    discarded = elapsed_seconds(session, now)
    session.state = TimerState.IDLE
    session.started_at = None
    session.accumulated_seconds = 0
    session.updated_at = now
    return _persist(db, session, holder_id, "TIMER_DISCARD", {"task_id": task_id, "seconds": discarded})


def get_timer(db: Session, task_id: int, holder_id: int, now: Optional[datetime] = None) -> Dict:
    """Current timer view with elapsed recomputed from timestamps"""
    now = now or now_utc()
    get_task(db, task_id)
    session = db.query(TimerSession).filter(
        TimerSession.task_id == task_id,
        TimerSession.holder_id == holder_id,
    ).first()
    if session is None:
        return {
            "task_id": task_id,
            "state": TimerState.IDLE.value,
            "started_at": None,
            "accumulated_seconds": 0,
            "elapsed_seconds": 0,
        }
    return {
        "task_id": task_id,
        "state": TimerState(session.state).value,
        "started_at": ensure_utc(session.started_at),
        "accumulated_seconds": session.accumulated_seconds,
        "elapsed_seconds": elapsed_seconds(session, now),
    }


def _seconds_from_hours(hours) -> int:
    return int((Decimal(str(hours)) * 3600).to_integral_value(rounding=ROUND_HALF_UP))


def _add_logged_seconds(db: Session, task_id: int, seconds: int, actor_id: int) -> Task:
    """
    Add seconds to the task's exact total and re-derive actual_hours from it.

    Rounding happens once on the total, so repeated small entries do not drift.
    For a subtask tracked_minutes follows the same total, which the parent rolls up.
    """
    if seconds <= 0:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Logged time must be greater than zero"
        )
    task = get_task(db, task_id)
    # rows written before logged_seconds existed only carry actual_hours
    total = (task.logged_seconds or _seconds_from_hours(task.actual_hours or 0)) + seconds
    task.logged_seconds = total
    task.actual_hours = round_hours(total)
    if task.parent_task_id is not None:
        task.tracked_minutes = int((Decimal(total) / Decimal(60)).to_integral_value(rounding=ROUND_HALF_UP))

    log_audit(
        db=db,
        actor_id=actor_id,
        action="TASK_TIME_LOG",
        entity_type="tasks",
        entity_id=task.id,
        meta={"seconds": seconds, "actual_hours": task.actual_hours},
        commit=False,
    )
    db.commit()
    db.refresh(task)
    return task


def log_time(db: Session, task_id: int, hours, actor_id: int) -> Task:
    """Add hours (e.g. a stopped timer's result) to the task's logged time"""
    return _add_logged_seconds(db, task_id, _seconds_from_hours(hours), actor_id)


def log_manual(db: Session, task_id: int, hours: int = 0, minutes: int = 0, actor_id: int = None) -> Task:
    """Manual entry of hours + minutes; timer state is untouched"""
    if hours < 0 or minutes < 0:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Hours and minutes must not be negative"
        )
    return _add_logged_seconds(db, task_id, hours * 3600 + minutes * 60, actor_id)


def effort_summary(db: Session, task_id: int) -> Dict:
    """
    Effective logged time against the estimate.

    effective = actual_hours + sum(subtask.tracked_minutes) / 60;
    progress = min(effective / estimated, 1) when an estimate exists. Going over is flagged, never blocked.
    """
    task = get_task(db, task_id)
    subtask_minutes = sum(
        (minutes or 0)
        for (minutes,) in db.query(Task.tracked_minutes).filter(Task.parent_task_id == task_id).all()
    )
    actual = Decimal(str(task.actual_hours or 0))
    subtask_hours = (Decimal(subtask_minutes) / Decimal(60)).quantize(HOURS_QUANT, rounding=ROUND_HALF_UP)
    effective = actual + subtask_hours
    estimated = Decimal(str(task.estimated_hours)) if task.estimated_hours is not None else None

    progress = None
    over_estimate = False
    if estimated is not None and estimated > 0:
        progress = min(effective / estimated, Decimal(1)).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)
        over_estimate = effective > estimated

    return {
        "task_id": task_id,
        "estimated_hours": estimated,
        "actual_hours": actual,
        "subtask_hours": subtask_hours,
        "effective_hours": effective,
        "progress": progress,
        "over_estimate": over_estimate,
    }
