"""
Attendance record model: one canonical row per (employee, date)
"""
from sqlalchemy import Column, Integer, Date, DateTime, ForeignKey, String, Text, Numeric, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class AttendanceStatus(str, enum.Enum):
    PRESENT = "present"
    ABSENT = "absent"
    HALF_DAY = "half_day"
    LEAVE = "leave"
    WORK_FROM_HOME = "work_from_home"
    SICK_LEAVE = "sick_leave"
    CASUAL_LEAVE = "casual_leave"
    HOLIDAY = "holiday"
    WEEKOFF = "weekoff"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"


class AttendanceSource(str, enum.Enum):
    MANUAL = "manual"
    BULK_UPLOAD = "bulk_upload"
    BULK_WEEKOFF = "bulk_weekoff"
    SELF_SERVICE = "self_service"


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)  # organisation calendar date
    status = Column(String, nullable=False)
    check_in_time = Column(DateTime(timezone=True), nullable=True)  # UTC
    check_out_time = Column(DateTime(timezone=True), nullable=True)  # UTC
    total_hours = Column(Numeric(5, 2), nullable=True)
    is_late = Column(Boolean, default=False, nullable=False)
    is_early_checkout = Column(Boolean, default=False, nullable=False)
    late_minutes = Column(Integer, nullable=True)
    # set when is_late / is_early_checkout were given explicitly; the resolver then keeps them
    late_overridden = Column(Boolean, default=False, nullable=False)
    early_checkout_overridden = Column(Boolean, default=False, nullable=False)
    source = Column(String, default=AttendanceSource.MANUAL.value, nullable=False)
    marked_by = Column(Integer, ForeignKey("employees.id"), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint('employee_id', 'date', name='uq_attendance_employee_date'),
    )

    employee = relationship("Employee", foreign_keys=[employee_id])
