"""
Attendance schemas: stored records, resolved days, bulk actions and grace periods.
"""
from datetime import date as date_type, datetime
from decimal import Decimal
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from app.models.attendance import AttendanceStatus
from app.utils.datetime_utils import iso_local


def _serialize_dt_local(dt: Optional[datetime]) -> Optional[str]:
    """Serialize datetime in the organisation zone for API responses."""
    return iso_local(dt)


class AttendanceMark(BaseModel):
    """Schema for manually marking a day"""
    employee_id: int = Field(..., description="Employee ID")
    date: date_type
    status: AttendanceStatus
    check_in_time: Optional[datetime] = Field(None, description="Check-in instant (naive values are UTC)")
    check_out_time: Optional[datetime] = Field(None, description="Check-out instant (naive values are UTC)")
    total_hours: Optional[Decimal] = Field(None, ge=0, le=24, description="Explicit override; derived from times when omitted")
    is_late: Optional[bool] = None
    is_early_checkout: Optional[bool] = None
    notes: Optional[str] = Field(None, max_length=1000)


class AttendanceUpdate(BaseModel):
    """Schema for editing a record. Omitted fields keep their stored values; status is required."""
    status: Optional[AttendanceStatus] = None
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    total_hours: Optional[Decimal] = Field(None, ge=0, le=24)
    is_late: Optional[bool] = None
    is_early_checkout: Optional[bool] = None
    notes: Optional[str] = Field(None, max_length=1000)


class AttendanceRecordOut(BaseModel):
    """Stored attendance record. Datetimes in the organisation zone."""
    id: int
    employee_id: int
    date: date_type
    status: str
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    total_hours: Optional[Decimal] = None
    is_late: bool
    is_early_checkout: bool
    late_minutes: Optional[int] = None
    late_overridden: bool = False
    early_checkout_overridden: bool = False
    source: str
    marked_by: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("check_in_time", "check_out_time", "created_at", "updated_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: Optional[datetime]) -> Optional[str]:
        return _serialize_dt_local(dt)


class ResolvedDayOut(BaseModel):
    """The authoritative status of one day"""
    date: date_type
    status: str
    source_rule: str
    is_late: bool
    is_early_checkout: bool
    late_minutes: Optional[int] = None
    total_hours: Optional[Decimal] = None
    record_id: Optional[int] = None
    holiday_name: Optional[str] = None
    leave_type: Optional[str] = None
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("check_in_time", "check_out_time", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: Optional[datetime]) -> Optional[str]:
        return _serialize_dt_local(dt)


class ResolvedMonthOut(BaseModel):
    employee_id: int
    month: str
    days: List[ResolvedDayOut]
    counts: Dict[str, int]
    late_days: int


class BulkWeekoffRequest(BaseModel):
    """Mark several dates as weekoff for one employee"""
    employee_id: int
    dates: List[date_type] = Field(..., min_length=1)


class BulkWeekoffOut(BaseModel):
    employee_id: int
    marked: int
    dates: List[date_type]


class ClearMonthOut(BaseModel):
    employee_id: int
    month: str
    deleted: int


class GracePeriodSet(BaseModel):
    """Schema for setting the grace period of a date (replaces any existing one)"""
    date: date_type
    minutes: Optional[int] = Field(None, ge=0, le=480, description="Defaults to DEFAULT_GRACE_MINUTES")
    reason: Optional[str] = Field(None, max_length=255)
    created_by: Optional[int] = None

    @field_validator("reason")
    @classmethod
    def _strip_reason(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class GracePeriodOut(BaseModel):
    """Grace period state for a date; active=False when none is set"""
    active: bool
    date: date_type
    minutes: int = 0
    reason: Optional[str] = None
    created_by: Optional[int] = None


class BulkUploadRequest(BaseModel):
    """Raw table text (comma or tab separated) plus the YYYY-MM month it covers"""
    file_content: str = Field(..., description="Header row 'Employee Name,1,2,...' followed by one row per employee")
    month: str = Field(..., description="Target month, YYYY-MM")


class BulkUploadError(BaseModel):
    employeeName: str
    date: str
    error: str


class BulkUploadResult(BaseModel):
    success: bool
    message: str
    successCount: int
    errorCount: int
    errors: List[BulkUploadError]
