"""
Task and timer session models.
Task rows are owned by task CRUD; this core reads them and adds logged time.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric, Enum as SQLEnum, UniqueConstraint
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class TimerState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    parent_task_id = Column(Integer, ForeignKey("tasks.id"), nullable=True, index=True)
    estimated_hours = Column(Numeric(8, 2), nullable=True)
    actual_hours = Column(Numeric(8, 2), nullable=False, default=0)
    tracked_minutes = Column(Integer, nullable=False, default=0)  # subtask time rolled up into the parent
    logged_seconds = Column(Integer, nullable=False, default=0)  # exact total behind actual_hours
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)


class TimerSession(Base):
    __tablename__ = "timer_sessions"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False, index=True)
    holder_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    state = Column(SQLEnum(TimerState, native_enum=False), nullable=False, default=TimerState.IDLE)
    started_at = Column(DateTime(timezone=True), nullable=True)  # UTC, set only while running
    accumulated_seconds = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint('task_id', 'holder_id', name='uq_timer_task_holder'),
    )
