"""
Holiday calendar service - business logic for holiday management
"""
from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from app.models.holiday import Holiday
from app.services.audit_service import log_audit
from app.utils.datetime_utils import now_utc


def create_holiday(
    db: Session,
    year: int,
    holiday_date: date,
    name: str,
    active: bool = True,
    actor_id: int = None
) -> Holiday:
    """
    Create a new holiday

    Args:
        db: Database session
        year: Calendar year
        holiday_date: Holiday date
        name: Holiday name
        active: Whether holiday is active
        actor_id: ID of user creating the holiday

    Returns:
        Created Holiday instance

    Raises:
        HTTPException: If the date is outside the year or already a holiday
    """
    if holiday_date.year != year:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Date {holiday_date} does not fall within year {year}"
        )

    existing = db.query(Holiday).filter(
        Holiday.year == year,
        Holiday.date == holiday_date
    ).first()

    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Holiday already exists for date {holiday_date} in year {year}"
        )

    # Explicitly set created_at/updated_at to avoid SQLite issues with server_default
    now = now_utc()
    holiday = Holiday(
        year=year,
        date=holiday_date,
        name=name,
        active=active,
        created_at=now,
        updated_at=now
    )

    db.add(holiday)
    db.commit()
    db.refresh(holiday)

    if actor_id:
        log_audit(
            db=db,
            actor_id=actor_id,
            action="HOLIDAY_CREATE",
            entity_type="holidays",
            entity_id=holiday.id,
            meta={
                "year": year,
                "date": str(holiday_date),
                "name": name
            }
        )

    return holiday


def list_holidays(
    db: Session,
    year: Optional[int] = None,
    active_only: bool = False
) -> List[Holiday]:
    """List holidays, optionally filtered by year and active flag"""
    query = db.query(Holiday)

    if year:
        query = query.filter(Holiday.year == year)

    if active_only:
        query = query.filter(Holiday.active == True)  # noqa: E712

    return query.order_by(Holiday.date).all()


def get_holiday(db: Session, holiday_id: int) -> Optional[Holiday]:
    """Get a holiday by ID"""
    return db.query(Holiday).filter(Holiday.id == holiday_id).first()


def _get_holiday_or_404(db: Session, holiday_id: int) -> Holiday:
    holiday = get_holiday(db, holiday_id)
    if not holiday:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Holiday with id {holiday_id} not found"
        )
    return holiday


def update_holiday(
    db: Session,
    holiday_id: int,
    name: Optional[str] = None,
    active: Optional[bool] = None,
    actor_id: int = None
) -> Holiday:
    """
    Update a holiday's name or active flag

    Raises:
        HTTPException: If holiday not found
    """
    holiday = _get_holiday_or_404(db, holiday_id)

    if name is not None:
        holiday.name = name
    if active is not None:
        holiday.active = active

    # Explicitly update updated_at for SQLite compatibility
    holiday.updated_at = now_utc()

    db.commit()
    db.refresh(holiday)

    if actor_id:
        log_audit(
            db=db,
            actor_id=actor_id,
            action="HOLIDAY_UPDATE",
            entity_type="holidays",
            entity_id=holiday.id,
            meta={
                "name": name,
                "active": active
            }
        )

    return holiday


def delete_holiday(db: Session, holiday_id: int, actor_id: int = None) -> None:
    """
    Delete a holiday. Attendance records on that date are untouched and resolve normally again.

    Raises:
        HTTPException: If holiday not found
    """
    holiday = _get_holiday_or_404(db, holiday_id)
    meta = {"date": str(holiday.date), "name": holiday.name}
    db.delete(holiday)
    db.commit()

    if actor_id:
        log_audit(
            db=db,
            actor_id=actor_id,
            action="HOLIDAY_DELETE",
            entity_type="holidays",
            entity_id=holiday_id,
            meta=meta
        )
