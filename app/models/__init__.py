"""
Database models
"""
from app.models.employee import Employee, Role
from app.models.audit_log import AuditLog
from app.models.attendance import AttendanceRecord, AttendanceStatus, AttendanceSource
from app.models.leave import LeaveRequest, LeaveType, LeaveStatus
from app.models.holiday import Holiday
from app.models.grace_period import GracePeriod
from app.models.task import Task, TimerSession, TimerState
from app.models.salary import (
    SalaryPolicy,
    SalaryAdjustment,
    SalaryAdvance,
    SalaryType,
    AdjustmentType,
    AdvanceStatus,
)

__all__ = [
    "Employee",
    "Role",
    "AuditLog",
    "AttendanceRecord",
    "AttendanceStatus",
    "AttendanceSource",
    "LeaveRequest",
    "LeaveType",
    "LeaveStatus",
    "Holiday",
    "GracePeriod",
    "Task",
    "TimerSession",
    "TimerState",
    "SalaryPolicy",
    "SalaryAdjustment",
    "SalaryAdvance",
    "SalaryType",
    "AdjustmentType",
    "AdvanceStatus",
]
