"""
Salary advance service.

An advance is recovered from payroll in installments of min(installment_amount, remaining_balance)
for every period on or after recovery_start_month while it is active.
"""
import logging
from decimal import Decimal
from typing import List, Optional
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from app.models.salary import AdvanceStatus, SalaryAdvance
from app.services.audit_service import log_audit
from app.services.employee_service import get_employee_or_404
from app.services.salary_adjustment_service import quantize_money, validate_period
from app.utils.datetime_utils import now_utc

_log = logging.getLogger(__name__)


def installment_due(advance: SalaryAdvance, period: str) -> Decimal:
    """Amount this advance recovers in `period` (zero before its start month or once closed)"""
    if advance.status != AdvanceStatus.ACTIVE.value or period < advance.recovery_start_month:
        return Decimal("0.00")
    return quantize_money(min(Decimal(str(advance.installment_amount)), Decimal(str(advance.remaining_balance))))


def get_advance(db: Session, advance_id: int) -> SalaryAdvance:
    advance = db.query(SalaryAdvance).filter(SalaryAdvance.id == advance_id).first()
    if advance is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Salary advance with id {advance_id} not found"
        )
    return advance


def list_advances(
    db: Session,
    employee_id: Optional[int] = None,
    status_value: Optional[str] = None,
) -> List[SalaryAdvance]:
    query = db.query(SalaryAdvance)
    if employee_id is not None:
        query = query.filter(SalaryAdvance.employee_id == employee_id)
    if status_value is not None:
        try:
            status_value = AdvanceStatus(status_value)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Unknown advance status '{status_value}'"
            )
        query = query.filter(SalaryAdvance.status == status_value.value)
    return query.order_by(SalaryAdvance.created_at, SalaryAdvance.id).all()


def create_advance(
    db: Session,
    employee_id: int,
    advance_amount,
    installment_amount,
    recovery_start_month: str,
    reason: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> SalaryAdvance:
    """
    Record an advance paid to an employee

    Raises:
        HTTPException: 422 for non-positive amounts, 400 for a malformed recovery_start_month
    """
    recovery_start_month = validate_period(recovery_start_month)
    get_employee_or_404(db, employee_id)
    advance_amount = quantize_money(advance_amount)
    installment_amount = quantize_money(installment_amount)
    if advance_amount <= 0 or installment_amount <= 0:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Advance and installment amounts must be positive values"
        )

    now = now_utc()
    advance = SalaryAdvance(
        employee_id=employee_id,
        advance_amount=advance_amount,
        installment_amount=installment_amount,
        total_paid=Decimal("0.00"),
        remaining_balance=advance_amount,
        recovery_start_month=recovery_start_month,
        status=AdvanceStatus.ACTIVE.value,
        reason=reason,
        created_by=actor_id,
        created_at=now,
        updated_at=now,
    )
    db.add(advance)
    db.commit()
    db.refresh(advance)

    if actor_id:
        log_audit(
            db=db,
            actor_id=actor_id,
            action="ADVANCE_CREATE",
            entity_type="salary_advances",
            entity_id=advance.id,
            meta={
                "employee_id": employee_id,
                "advance_amount": advance_amount,
                "installment_amount": installment_amount,
                "recovery_start_month": recovery_start_month,
            }
        )
    return advance


def record_recovery(db: Session, advance_id: int, period: str, actor_id: Optional[int] = None) -> SalaryAdvance:
    """
    Apply the installment due for `period` to the advance balance; closes it when fully repaid.

    Raises:
        HTTPException: 400 when the advance is closed or nothing is due for the period
    """
    period = validate_period(period)
    advance = get_advance(db, advance_id)
    if advance.status != AdvanceStatus.ACTIVE.value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Advance is already closed"
        )
    amount = installment_due(advance, period)
    if amount <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"No installment due for {period}; recovery starts {advance.recovery_start_month}"
        )

    advance.total_paid = quantize_money(Decimal(str(advance.total_paid or 0)) + amount)
    advance.remaining_balance = quantize_money(Decimal(str(advance.remaining_balance)) - amount)
    if advance.remaining_balance <= 0:
        advance.status = AdvanceStatus.CLOSED.value
    advance.updated_at = now_utc()
    db.commit()
    db.refresh(advance)
    _log.info("Recovered %s from advance %s for %s (remaining %s)", amount, advance_id, period, advance.remaining_balance)

    if actor_id:
        log_audit(
            db=db,
            actor_id=actor_id,
            action="ADVANCE_RECOVERY",
            entity_type="salary_advances",
            entity_id=advance.id,
            meta={"period": period, "amount": amount, "remaining_balance": advance.remaining_balance}
        )
    return advance


def close_advance(db: Session, advance_id: int, actor_id: Optional[int] = None) -> SalaryAdvance:
    """Stop recovering an advance (e.g. waived or settled outside payroll)"""
    advance = get_advance(db, advance_id)
    if advance.status == AdvanceStatus.CLOSED.value:
        return advance
    advance.status = AdvanceStatus.CLOSED.value
    advance.updated_at = now_utc()
    db.commit()
    db.refresh(advance)

    if actor_id:
        log_audit(
            db=db,
            actor_id=actor_id,
            action="ADVANCE_CLOSE",
            entity_type="salary_advances",
            entity_id=advance.id,
            meta={"remaining_balance": advance.remaining_balance}
        )
    return advance
