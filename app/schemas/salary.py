"""
Salary policy, adjustment and payable schemas
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from app.models.salary import AdjustmentType, AdvanceStatus, SalaryType
from app.utils.datetime_utils import iso_local, parse_period


class SalaryPolicyIn(BaseModel):
    """Schema for creating or replacing a salary policy"""
    salary_type: SalaryType
    per_day_rate: Optional[Decimal] = Field(None, ge=0)
    hourly_rate: Optional[Decimal] = Field(None, ge=0)
    monthly_salary: Optional[Decimal] = Field(None, ge=0)
    late_penalty_enabled: bool = False
    late_penalty_per_minute: Optional[Decimal] = Field(None, ge=0)
    is_active: bool = True


class SalaryPolicyOut(BaseModel):
    id: int
    employee_id: int
    salary_type: str
    per_day_rate: Optional[Decimal] = None
    hourly_rate: Optional[Decimal] = None
    monthly_salary: Optional[Decimal] = None
    late_penalty_enabled: bool
    late_penalty_per_minute: Optional[Decimal] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class AdjustmentCreate(BaseModel):
    """Schema for a salary adjustment; amount is a positive magnitude, the type decides the sign"""
    employee_id: int
    period: str = Field(..., description="YYYY-MM")
    adjustment_type: AdjustmentType
    amount: Decimal = Field(..., gt=0)
    reason: Optional[str] = Field(None, max_length=500)

    @field_validator("period")
    @classmethod
    def _validate_period(cls, v: str) -> str:
        year, month = parse_period(v)
        return f"{year:04d}-{month:02d}"


class AdjustmentOut(BaseModel):
    id: int
    employee_id: int
    period: str
    adjustment_type: str
    amount: Decimal
    reason: Optional[str] = None
    added_by: Optional[int] = None
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        return iso_local(dt)


class AdvanceCreate(BaseModel):
    """Schema for a salary advance, recovered in installments starting recovery_start_month"""
    employee_id: int
    advance_amount: Decimal = Field(..., gt=0)
    installment_amount: Decimal = Field(..., gt=0)
    recovery_start_month: str = Field(..., description="YYYY-MM")
    reason: Optional[str] = Field(None, max_length=500)

    @field_validator("recovery_start_month")
    @classmethod
    def _validate_period(cls, v: str) -> str:
        year, month = parse_period(v)
        return f"{year:04d}-{month:02d}"


class AdvanceRecoveryRequest(BaseModel):
    period: str = Field(..., description="YYYY-MM")


class AdvanceOut(BaseModel):
    id: int
    employee_id: int
    advance_amount: Decimal
    installment_amount: Decimal
    total_paid: Decimal
    remaining_balance: Decimal
    recovery_start_month: str
    status: AdvanceStatus
    reason: Optional[str] = None
    created_by: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        return iso_local(dt)


class PayableOut(BaseModel):
    employee_id: int
    period: str
    policy_missing: bool
    salary_type: Optional[str] = None
    worked_days: Decimal
    worked_hours: Decimal
    base_wage: Decimal
    late_days: int
    late_minutes: int
    late_penalty: Decimal
    additions: Decimal
    deductions: Decimal
    advance_recovery: Decimal
    payable: Optional[Decimal] = None
    errors: List[str]

    model_config = ConfigDict(from_attributes=True)


class EmployeeRef(BaseModel):
    employee_id: int
    emp_code: str
    name: str


class PayrollRunOut(BaseModel):
    period: str
    results: List[PayableOut]
    without_policy: List[EmployeeRef]
    total_payable: Decimal
