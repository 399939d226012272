"""
Salary adjustment service. Amounts are stored as positive magnitudes; the sign comes from the type.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from app.models.salary import AdjustmentType, SalaryAdjustment
from app.services.audit_service import log_audit
from app.services.employee_service import get_employee_or_404
from app.utils.datetime_utils import now_utc, parse_period

_log = logging.getLogger(__name__)

MONEY_QUANT = Decimal("0.01")

ADJUSTMENT_SIGNS: Dict[AdjustmentType, int] = {
    AdjustmentType.BONUS: 1,
    AdjustmentType.INCENTIVE: 1,
    AdjustmentType.REIMBURSEMENT: 1,
    AdjustmentType.ALLOWANCE: 1,
    AdjustmentType.OTHER: 1,
    AdjustmentType.ADVANCE_DEDUCTION: -1,
    AdjustmentType.PENALTY: -1,
}


def quantize_money(value) -> Decimal:
    return Decimal(str(value)).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def validate_period(period: str) -> str:
    try:
        year, month = parse_period(period)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return f"{year:04d}-{month:02d}"


def signed_amount(adjustment: SalaryAdjustment) -> Decimal:
    """Amount with the sign implied by its type"""
    sign = ADJUSTMENT_SIGNS[AdjustmentType(adjustment.adjustment_type)]
    return quantize_money(adjustment.amount) * sign


def create_adjustment(
    db: Session,
    employee_id: int,
    period: str,
    adjustment_type,
    amount,
    reason: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> SalaryAdjustment:
    """
    Record an adjustment for (employee, period)

    Raises:
        HTTPException: 422 for a non-positive amount or unknown type, 400 for a malformed period
    """
    period = validate_period(period)
    get_employee_or_404(db, employee_id)
    try:
        adjustment_type = AdjustmentType(adjustment_type)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown adjustment type '{adjustment_type}'"
        )
    amount = quantize_money(amount)
    if amount <= 0:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Adjustment amount must be a positive value"
        )

    adjustment = SalaryAdjustment(
        employee_id=employee_id,
        period=period,
        adjustment_type=adjustment_type.value,
        amount=amount,
        reason=reason,
        added_by=actor_id,
        status="active",
        created_at=now_utc(),
    )
    db.add(adjustment)
    db.commit()
    db.refresh(adjustment)

    if actor_id:
        log_audit(
            db=db,
            actor_id=actor_id,
            action="ADJUSTMENT_CREATE",
            entity_type="salary_adjustments",
            entity_id=adjustment.id,
            meta={
                "employee_id": employee_id,
                "period": period,
                "type": adjustment_type,
                "amount": amount,
            }
        )
    return adjustment


def delete_adjustment(db: Session, adjustment_id: int, actor_id: Optional[int] = None) -> None:
    """Delete an adjustment; every payable computed afterwards excludes it"""
    adjustment = db.query(SalaryAdjustment).filter(SalaryAdjustment.id == adjustment_id).first()
    if adjustment is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Salary adjustment with id {adjustment_id} not found"
        )
    meta = {
        "employee_id": adjustment.employee_id,
        "period": adjustment.period,
        "type": adjustment.adjustment_type,
        "amount": adjustment.amount,
    }
    db.delete(adjustment)
    db.commit()
    _log.info("Deleted salary adjustment %s (%s)", adjustment_id, meta["type"])

    if actor_id:
        log_audit(
            db=db,
            actor_id=actor_id,
            action="ADJUSTMENT_DELETE",
            entity_type="salary_adjustments",
            entity_id=adjustment_id,
            meta=meta
        )


def list_adjustments(
    db: Session,
    employee_id: Optional[int] = None,
    period: Optional[str] = None,
) -> List[SalaryAdjustment]:
    query = db.query(SalaryAdjustment)
    if employee_id is not None:
        query = query.filter(SalaryAdjustment.employee_id == employee_id)
    if period is not None:
        query = query.filter(SalaryAdjustment.period == validate_period(period))
    return query.order_by(SalaryAdjustment.created_at, SalaryAdjustment.id).all()
