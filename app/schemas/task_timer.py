"""
Task timer and time logging schemas
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer
from app.utils.datetime_utils import iso_local


class TimerOut(BaseModel):
    task_id: int
    state: str
    started_at: Optional[datetime] = None
    accumulated_seconds: int
    elapsed_seconds: int

    @field_serializer("started_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)


class TimerStopOut(BaseModel):
    task_id: int
    seconds: int
    hours: Decimal


class TimeLogRequest(BaseModel):
    """Log hours against a task (usually the hours returned by a timer stop)"""
    hours: Decimal = Field(..., gt=0, le=1000)


class ManualTimeLogRequest(BaseModel):
    """Manual entry; timer state is untouched"""
    hours: int = Field(0, ge=0, le=1000)
    minutes: int = Field(0, ge=0, le=59)


class TaskTimeOut(BaseModel):
    id: int
    title: str
    parent_task_id: Optional[int] = None
    estimated_hours: Optional[Decimal] = None
    actual_hours: Decimal
    tracked_minutes: int
    logged_seconds: int = 0

    model_config = ConfigDict(from_attributes=True)


class EffortSummaryOut(BaseModel):
    task_id: int
    estimated_hours: Optional[Decimal] = None
    actual_hours: Decimal
    subtask_hours: Decimal
    effective_hours: Decimal
    progress: Optional[Decimal] = None
    over_estimate: bool
