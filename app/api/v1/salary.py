"""
Salary endpoints: policies, adjustments, advances, payable and payroll runs (HR/Admin)
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from app.core.deps import get_db, require_roles
from app.models.employee import Employee, Role
from app.models.salary import AdvanceStatus
from app.schemas.salary import (
    AdjustmentCreate,
    AdjustmentOut,
    AdvanceCreate,
    AdvanceOut,
    AdvanceRecoveryRequest,
    PayableOut,
    PayrollRunOut,
    SalaryPolicyIn,
    SalaryPolicyOut,
)
from app.services import payroll_service, salary_adjustment_service, salary_advance_service

router = APIRouter()

_payroll_admins = require_roles(Role.HR, Role.ADMIN)


@router.get("/policies", response_model=List[SalaryPolicyOut])
async def list_policies_endpoint(
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(_payroll_admins)
):
    return payroll_service.list_policies(db, active_only=active_only)


@router.get("/policies/{employee_id}", response_model=SalaryPolicyOut)
async def get_policy_endpoint(
    employee_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(_payroll_admins)
):
    return payroll_service.get_policy_or_404(db, employee_id)


@router.put("/policies/{employee_id}", response_model=SalaryPolicyOut)
async def upsert_policy_endpoint(
    employee_id: int,
    payload: SalaryPolicyIn,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(_payroll_admins)
):
    """Create or replace an employee's salary policy"""
    return payroll_service.upsert_policy(
        db,
        employee_id,
        actor_id=current_user.id,
        **payload.model_dump(),
    )


@router.post("/adjustments", response_model=AdjustmentOut, status_code=status.HTTP_201_CREATED)
async def create_adjustment_endpoint(
    payload: AdjustmentCreate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(_payroll_admins)
):
    """Add a bonus/allowance/penalty/... for an employee-month"""
    return salary_adjustment_service.create_adjustment(
        db,
        employee_id=payload.employee_id,
        period=payload.period,
        adjustment_type=payload.adjustment_type,
        amount=payload.amount,
        reason=payload.reason,
        actor_id=current_user.id,
    )


@router.delete("/adjustments/{adjustment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_adjustment_endpoint(
    adjustment_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(_payroll_admins)
):
    salary_adjustment_service.delete_adjustment(db, adjustment_id, actor_id=current_user.id)


@router.get("/adjustments", response_model=List[AdjustmentOut])
async def list_adjustments_endpoint(
    employee_id: Optional[int] = Query(None),
    period: Optional[str] = Query(None, description="YYYY-MM"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(_payroll_admins)
):
    return salary_adjustment_service.list_adjustments(db, employee_id=employee_id, period=period)


@router.post("/advances", response_model=AdvanceOut, status_code=status.HTTP_201_CREATED)
async def create_advance_endpoint(
    payload: AdvanceCreate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(_payroll_admins)
):
    """Record a salary advance; installments are deducted from payables from recovery_start_month on"""
    return salary_advance_service.create_advance(
        db,
        employee_id=payload.employee_id,
        advance_amount=payload.advance_amount,
        installment_amount=payload.installment_amount,
        recovery_start_month=payload.recovery_start_month,
        reason=payload.reason,
        actor_id=current_user.id,
    )


@router.get("/advances", response_model=List[AdvanceOut])
async def list_advances_endpoint(
    employee_id: Optional[int] = Query(None),
    status_filter: Optional[AdvanceStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(_payroll_admins)
):
    return salary_advance_service.list_advances(db, employee_id=employee_id, status_value=status_filter)


@router.post("/advances/{advance_id}/recover", response_model=AdvanceOut)
async def recover_advance_endpoint(
    advance_id: int,
    payload: AdvanceRecoveryRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(_payroll_admins)
):
    """Apply the installment due for a paid-out period to the advance balance"""
    return salary_advance_service.record_recovery(db, advance_id, payload.period, actor_id=current_user.id)


@router.post("/advances/{advance_id}/close", response_model=AdvanceOut)
async def close_advance_endpoint(
    advance_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(_payroll_admins)
):
    return salary_advance_service.close_advance(db, advance_id, actor_id=current_user.id)


@router.get("/payable", response_model=PayableOut)
async def payable_endpoint(
    employee_id: int = Query(...),
    period: str = Query(..., description="YYYY-MM"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(_payroll_admins)
):
    """Payable breakdown, recomputed from current attendance, policy and adjustments"""
    return payroll_service.compute_payable(db, employee_id, period)


@router.post("/payroll/{period}", response_model=PayrollRunOut)
async def run_payroll_endpoint(
    period: str,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(_payroll_admins)
):
    """Compute payables for every active employee; employees without a policy are listed separately"""
    return payroll_service.run_payroll(db, period, actor_id=current_user.id)
