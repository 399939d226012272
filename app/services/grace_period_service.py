"""
Grace period service - per-date lateness extension (weather exceptions)
"""
import logging
from datetime import date
from typing import Optional
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from app.core.config import settings
from app.models.grace_period import GracePeriod
from app.services.audit_service import log_audit
from app.utils.datetime_utils import now_utc

_log = logging.getLogger(__name__)


def get_grace_period(db: Session, day: date) -> Optional[GracePeriod]:
    """Active grace period for a date, if any"""
    return db.query(GracePeriod).filter(GracePeriod.date == day).first()


def get_grace_minutes(db: Session, day: date) -> int:
    grace = get_grace_period(db, day)
    return grace.minutes if grace else 0


def set_grace_period(
    db: Session,
    day: date,
    minutes: Optional[int] = None,
    reason: Optional[str] = None,
    created_by: Optional[int] = None,
    actor_id: Optional[int] = None,
) -> GracePeriod:
    """
    Set the grace period for a date. Idempotent: an existing row for the date is replaced.

    Args:
        db: Database session
        day: Date the grace applies to (only that date)
        minutes: Grace minutes; defaults to settings.DEFAULT_GRACE_MINUTES
        reason: Free-text reason (e.g. "Heavy rain")
        created_by: Recorded creator; defaults to actor_id
        actor_id: ID of the user performing the change

    Returns:
        The GracePeriod for the date
    """
    if minutes is None:
        minutes = settings.DEFAULT_GRACE_MINUTES
    if minutes < 0:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Grace minutes must not be negative"
        )

    grace = get_grace_period(db, day)
    if grace is None:
        grace = GracePeriod(date=day, created_at=now_utc())
        db.add(grace)
    grace.minutes = minutes
    grace.reason = reason
    grace.created_by = created_by if created_by is not None else actor_id

    db.commit()
    db.refresh(grace)
    _log.info("Grace period set for %s: %s minutes", day, minutes)

    if actor_id:
        log_audit(
            db=db,
            actor_id=actor_id,
            action="GRACE_SET",
            entity_type="grace_periods",
            entity_id=grace.id,
            meta={"date": day, "minutes": minutes, "reason": reason}
        )
    return grace


def delete_grace_period(db: Session, day: date, actor_id: Optional[int] = None) -> None:
    """
    Remove the grace period for a date

    Raises:
        HTTPException: If no grace period exists for the date
    """
    grace = get_grace_period(db, day)
    if grace is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No grace period set for {day}"
        )
    grace_id, minutes = grace.id, grace.minutes
    db.delete(grace)
    db.commit()
    _log.info("Grace period removed for %s", day)

    if actor_id:
        log_audit(
            db=db,
            actor_id=actor_id,
            action="GRACE_DELETE",
            entity_type="grace_periods",
            entity_id=grace_id,
            meta={"date": day, "minutes": minutes}
        )
