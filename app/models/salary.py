"""
Salary policy and adjustment models
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Numeric, Text, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class SalaryType(str, enum.Enum):
    PER_DAY = "per_day"
    PER_HOUR = "per_hour"
    FIXED_MONTHLY = "fixed_monthly"


class AdjustmentType(str, enum.Enum):
    BONUS = "bonus"
    INCENTIVE = "incentive"
    REIMBURSEMENT = "reimbursement"
    ALLOWANCE = "allowance"
    OTHER = "other"
    ADVANCE_DEDUCTION = "advance_deduction"
    PENALTY = "penalty"


class SalaryPolicy(Base):
    __tablename__ = "salary_policies"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, unique=True, index=True)
    salary_type = Column(String, nullable=False)
    per_day_rate = Column(Numeric(12, 2), nullable=True)
    hourly_rate = Column(Numeric(12, 2), nullable=True)
    monthly_salary = Column(Numeric(12, 2), nullable=True)
    late_penalty_enabled = Column(Boolean, default=False, nullable=False)
    late_penalty_per_minute = Column(Numeric(12, 2), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    employee = relationship("Employee", foreign_keys=[employee_id])


class SalaryAdjustment(Base):
    __tablename__ = "salary_adjustments"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    period = Column(String(7), nullable=False)  # YYYY-MM
    adjustment_type = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)  # positive magnitude; sign comes from the type
    reason = Column(Text, nullable=True)
    added_by = Column(Integer, ForeignKey("employees.id"), nullable=True)
    status = Column(String, default="active", nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    __table_args__ = (
        Index('ix_salary_adjustments_employee_period', 'employee_id', 'period'),
    )


class AdvanceStatus(str, enum.Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class SalaryAdvance(Base):
    """Money paid ahead of salary, recovered in monthly installments"""
    __tablename__ = "salary_advances"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    advance_amount = Column(Numeric(12, 2), nullable=False)
    installment_amount = Column(Numeric(12, 2), nullable=False)
    total_paid = Column(Numeric(12, 2), nullable=False, default=0)
    remaining_balance = Column(Numeric(12, 2), nullable=False)
    recovery_start_month = Column(String(7), nullable=False)  # YYYY-MM
    status = Column(String, default=AdvanceStatus.ACTIVE.value, nullable=False)
    reason = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("employees.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    employee = relationship("Employee", foreign_keys=[employee_id])
