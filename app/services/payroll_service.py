"""
Payroll service: salary policies and payable computation.

payable = base wage - late penalty + additive adjustments - subtractive adjustments - advance recovery,
always recomputed from current attendance, policy, adjustments and advance balances.
Attendance is never mutated here.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from app.core.config import settings
from app.models.attendance import AttendanceStatus
from app.models.salary import AdvanceStatus, SalaryPolicy, SalaryType
from app.services.audit_service import log_audit
from app.services.employee_service import get_employee_or_404, list_active_employees
from app.services.salary_advance_service import installment_due, list_advances
from app.services.salary_adjustment_service import (
    list_adjustments,
    quantize_money,
    signed_amount,
    validate_period,
)
from app.services.status_resolver import resolve_range
from app.utils.datetime_utils import month_bounds, now_utc, parse_period

_log = logging.getLogger(__name__)

# Paid-day weight per resolved status (per_day policies)
DAY_WEIGHTS: Dict[str, Decimal] = {
    AttendanceStatus.PRESENT.value: Decimal(1),
    AttendanceStatus.CHECKED_IN.value: Decimal(1),
    AttendanceStatus.CHECKED_OUT.value: Decimal(1),
    AttendanceStatus.WORK_FROM_HOME.value: Decimal(1),
    AttendanceStatus.HALF_DAY.value: Decimal("0.5"),
}

_RATE_FIELD = {
    SalaryType.PER_DAY: "per_day_rate",
    SalaryType.PER_HOUR: "hourly_rate",
    SalaryType.FIXED_MONTHLY: "monthly_salary",
}


@dataclass
class PayableBreakdown:
    employee_id: int
    period: str
    policy_missing: bool = False
    salary_type: Optional[str] = None
    worked_days: Decimal = Decimal(0)
    worked_hours: Decimal = Decimal(0)
    base_wage: Decimal = Decimal("0.00")
    late_days: int = 0
    late_minutes: int = 0
    late_penalty: Decimal = Decimal("0.00")
    additions: Decimal = Decimal("0.00")
    deductions: Decimal = Decimal("0.00")
    advance_recovery: Decimal = Decimal("0.00")
    payable: Optional[Decimal] = None
    errors: List[str] = field(default_factory=list)


def get_policy(db: Session, employee_id: int) -> Optional[SalaryPolicy]:
    return db.query(SalaryPolicy).filter(SalaryPolicy.employee_id == employee_id).first()


def get_policy_or_404(db: Session, employee_id: int) -> SalaryPolicy:
    policy = get_policy(db, employee_id)
    if policy is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No salary policy for employee {employee_id}"
        )
    return policy


def list_policies(db: Session, active_only: bool = False) -> List[SalaryPolicy]:
    query = db.query(SalaryPolicy)
    if active_only:
        query = query.filter(SalaryPolicy.is_active == True)  # noqa: E712
    return query.order_by(SalaryPolicy.employee_id).all()


def upsert_policy(
    db: Session,
    employee_id: int,
    salary_type,
    per_day_rate=None,
    hourly_rate=None,
    monthly_salary=None,
    late_penalty_enabled: bool = False,
    late_penalty_per_minute=None,
    is_active: bool = True,
    actor_id: Optional[int] = None,
) -> SalaryPolicy:
    """
    Create or replace an employee's salary policy

    Raises:
        HTTPException: 422 for an unknown salary_type, when the rate it requires is missing,
            or late penalties are enabled without a per-minute amount
    """
    get_employee_or_404(db, employee_id)
    try:
        salary_type = SalaryType(salary_type)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown salary type '{salary_type}'"
        )
    values = {
        "per_day_rate": per_day_rate,
        "hourly_rate": hourly_rate,
        "monthly_salary": monthly_salary,
        "late_penalty_per_minute": late_penalty_per_minute,
    }
    values = {k: (quantize_money(v) if v is not None else None) for k, v in values.items()}

    required = _RATE_FIELD[salary_type]
    if values[required] is None or values[required] < 0:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"{required} is required for salary_type {salary_type.value}"
        )
    if late_penalty_enabled and values["late_penalty_per_minute"] is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="late_penalty_per_minute is required when late penalties are enabled"
        )

    now = now_utc()
    policy = get_policy(db, employee_id)
    created = policy is None
    if created:
        policy = SalaryPolicy(employee_id=employee_id, created_at=now)
        db.add(policy)
    policy.salary_type = salary_type.value
    policy.per_day_rate = values["per_day_rate"]
    policy.hourly_rate = values["hourly_rate"]
    policy.monthly_salary = values["monthly_salary"]
    policy.late_penalty_enabled = late_penalty_enabled
    policy.late_penalty_per_minute = values["late_penalty_per_minute"]
    policy.is_active = is_active
    policy.updated_at = now

    db.commit()
    db.refresh(policy)

    if actor_id:
        log_audit(
            db=db,
            actor_id=actor_id,
            action="SALARY_POLICY_CREATE" if created else "SALARY_POLICY_UPDATE",
            entity_type="salary_policies",
            entity_id=policy.id,
            meta={"employee_id": employee_id, "salary_type": salary_type, **values}
        )
    return policy


def compute_payable(db: Session, employee_id: int, period: str) -> PayableBreakdown:
    """
    Compute the payable amount for (employee, period) from current state.

    A missing or inactive policy is not an exception: the breakdown carries
    policy_missing=True, payable=None and an error entry.
    """
    period = validate_period(period)
    get_employee_or_404(db, employee_id)
    breakdown = PayableBreakdown(employee_id=employee_id, period=period)

    policy = get_policy(db, employee_id)
    if policy is None or not policy.is_active:
        breakdown.policy_missing = True
        breakdown.errors.append(f"No active salary policy for employee {employee_id}")
        return breakdown

    year, month = parse_period(period)
    first, last = month_bounds(year, month)
    days = resolve_range(db, employee_id, first, last)

    salary_type = SalaryType(policy.salary_type)
    breakdown.salary_type = salary_type.value
    breakdown.worked_days = sum((DAY_WEIGHTS.get(d.status, Decimal(0)) for d in days), Decimal(0))
    breakdown.worked_hours = sum((d.total_hours or Decimal(0) for d in days), Decimal(0))

    if salary_type == SalaryType.PER_DAY:
        base = breakdown.worked_days * Decimal(str(policy.per_day_rate or 0))
    elif salary_type == SalaryType.PER_HOUR:
        base = breakdown.worked_hours * Decimal(str(policy.hourly_rate or 0))
    else:
        base = Decimal(str(policy.monthly_salary or 0))
    breakdown.base_wage = quantize_money(base)

    late_days = [d for d in days if d.is_late]
    breakdown.late_days = len(late_days)
    breakdown.late_minutes = sum(
        d.late_minutes if d.late_minutes is not None else settings.LATE_MINUTES_WITHOUT_CHECK_IN
        for d in late_days
    )
    if policy.late_penalty_enabled and policy.late_penalty_per_minute:
        breakdown.late_penalty = quantize_money(
            Decimal(breakdown.late_minutes) * Decimal(str(policy.late_penalty_per_minute))
        )

    for adjustment in list_adjustments(db, employee_id=employee_id, period=period):
        amount = signed_amount(adjustment)
        if amount >= 0:
            breakdown.additions += amount
        else:
            breakdown.deductions += -amount

    for advance in list_advances(db, employee_id=employee_id, status_value=AdvanceStatus.ACTIVE):
        breakdown.advance_recovery += installment_due(advance, period)

    breakdown.payable = quantize_money(
        breakdown.base_wage
        - breakdown.late_penalty
        + breakdown.additions
        - breakdown.deductions
        - breakdown.advance_recovery
    )
    return breakdown


def run_payroll(db: Session, period: str, actor_id: Optional[int] = None) -> Dict:
    """
    Compute payables for every active employee

    Returns:
        {period, results: [PayableBreakdown], without_policy: [{employee_id, emp_code, name}], total_payable}
    """
    period = validate_period(period)
    results: List[PayableBreakdown] = []
    without_policy: List[Dict] = []
    total = Decimal("0.00")

    for employee in list_active_employees(db):
        breakdown = compute_payable(db, employee.id, period)
        results.append(breakdown)
        if breakdown.policy_missing:
            without_policy.append({"employee_id": employee.id, "emp_code": employee.emp_code, "name": employee.name})
        else:
            total += breakdown.payable

    _log.info(
        "Payroll run for %s: %d employees, %d without policy",
        period, len(results), len(without_policy),
    )
    if actor_id:
        log_audit(
            db=db,
            actor_id=actor_id,
            action="PAYROLL_RUN",
            entity_type="salary_policies",
            meta={"period": period, "employees": len(results), "without_policy": len(without_policy), "total": total}
        )
    return {
        "period": period,
        "results": results,
        "without_policy": without_policy,
        "total_payable": quantize_money(total),
    }
