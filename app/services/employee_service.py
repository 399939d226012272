"""
Employee lookup service. Employees are owned by the HR directory; this core only reads them.
"""
import logging
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import func
from fastapi import HTTPException, status
from app.models.employee import Employee

_log = logging.getLogger(__name__)


def get_employee(db: Session, employee_id: int) -> Optional[Employee]:
    """Get an employee by ID"""
    return db.query(Employee).filter(Employee.id == employee_id).first()


def get_employee_or_404(db: Session, employee_id: int) -> Employee:
    employee = get_employee(db, employee_id)
    if employee is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Employee with id {employee_id} not found"
        )
    return employee


def list_active_employees(db: Session) -> List[Employee]:
    """Active employees ordered by display name"""
    return (
        db.query(Employee)
        .filter(Employee.active == True)  # noqa: E712
        .order_by(Employee.name, Employee.id)
        .all()
    )


def find_employee_by_identifier(db: Session, identifier: str) -> Employee:
    """
    Resolve a free-text identifier to one active employee.

    Tried in order, case-insensitive: display name, emp_code, email.

    Raises:
        HTTPException: 404 when nothing matches, 409 when a display name is shared
    """
    needle = (identifier or "").strip().lower()
    if not needle:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Employee identifier is empty"
        )

    active = db.query(Employee).filter(Employee.active == True)  # noqa: E712

    by_name = active.filter(func.lower(Employee.name) == needle).all()
    if len(by_name) == 1:
        return by_name[0]
    if len(by_name) > 1:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Employee name '{identifier.strip()}' is ambiguous ({len(by_name)} matches)"
        )

    for column in (Employee.emp_code, Employee.email):
        match = active.filter(func.lower(column) == needle).first()
        if match is not None:
            return match

    _log.debug("No active employee matches identifier %r", identifier)
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Employee not found: {identifier.strip()}"
    )
