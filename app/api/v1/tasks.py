"""
Task timer and time logging endpoints (any active employee; the caller is the timer holder)
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.core.deps import get_db, get_current_user
from app.models.employee import Employee
from app.schemas.task_timer import (
    EffortSummaryOut,
    ManualTimeLogRequest,
    TaskTimeOut,
    TimeLogRequest,
    TimerOut,
    TimerStopOut,
)
from app.services import timer_service

router = APIRouter()


@router.get("/{task_id}/timer", response_model=TimerOut)
async def get_timer_endpoint(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """Current timer state with elapsed seconds recomputed from timestamps"""
    return timer_service.get_timer(db, task_id, current_user.id)


@router.post("/{task_id}/timer/start", response_model=TimerOut)
async def start_timer_endpoint(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """Start or resume the caller's timer on a task"""
    timer_service.start_timer(db, task_id, current_user.id)
    return timer_service.get_timer(db, task_id, current_user.id)


@router.post("/{task_id}/timer/pause", response_model=TimerOut)
async def pause_timer_endpoint(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    timer_service.pause_timer(db, task_id, current_user.id)
    return timer_service.get_timer(db, task_id, current_user.id)


@router.post("/{task_id}/timer/stop", response_model=TimerStopOut)
async def stop_timer_endpoint(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """Stop the timer and return the elapsed time; log it with POST /time-logs"""
    return timer_service.stop_timer(db, task_id, current_user.id)


@router.post("/{task_id}/timer/discard", response_model=TimerOut)
async def discard_timer_endpoint(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    timer_service.discard_timer(db, task_id, current_user.id)
    return timer_service.get_timer(db, task_id, current_user.id)


@router.post("/{task_id}/time-logs", response_model=TaskTimeOut)
async def log_time_endpoint(
    task_id: int,
    payload: TimeLogRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """Add hours to the task (subtasks also roll the minutes up to their parent)"""
    return timer_service.log_time(db, task_id, payload.hours, actor_id=current_user.id)


@router.post("/{task_id}/time-logs/manual", response_model=TaskTimeOut)
async def log_manual_endpoint(
    task_id: int,
    payload: ManualTimeLogRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """Manual hours + minutes entry"""
    return timer_service.log_manual(
        db, task_id, hours=payload.hours, minutes=payload.minutes, actor_id=current_user.id
    )


@router.get("/{task_id}/effort", response_model=EffortSummaryOut)
async def effort_summary_endpoint(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """Logged time (own + subtasks) against the estimate"""
    return timer_service.effort_summary(db, task_id)
