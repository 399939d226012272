"""
Attendance endpoints: records, resolution, bulk upload and grace periods
"""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from app.core.deps import get_db, get_current_user, require_roles
from app.models.attendance import AttendanceStatus
from app.models.employee import Employee, Role
from app.schemas.attendance import (
    AttendanceMark,
    AttendanceRecordOut,
    AttendanceUpdate,
    BulkUploadRequest,
    BulkUploadResult,
    BulkWeekoffOut,
    BulkWeekoffRequest,
    ClearMonthOut,
    GracePeriodOut,
    GracePeriodSet,
    ResolvedDayOut,
    ResolvedMonthOut,
)
from app.services import attendance_service, bulk_import_service, grace_period_service
from app.services.employee_service import get_employee_or_404
from app.services.status_resolver import resolve_day, resolve_month
from app.utils.csv_export import stream_csv

router = APIRouter()

_writers = require_roles(Role.HR, Role.ADMIN)
_readers = require_roles(Role.HR, Role.MANAGER, Role.ADMIN)


@router.post("/records", response_model=AttendanceRecordOut, status_code=status.HTTP_201_CREATED)
async def mark_attendance_endpoint(
    payload: AttendanceMark,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(_writers)
):
    """Mark (create or overwrite) one employee-day (HR/Admin)"""
    return attendance_service.mark_attendance(
        db,
        payload.employee_id,
        payload.date,
        status_value=payload.status,
        check_in_time=payload.check_in_time,
        check_out_time=payload.check_out_time,
        total_hours=payload.total_hours,
        is_late=payload.is_late,
        is_early_checkout=payload.is_early_checkout,
        notes=payload.notes,
        actor_id=current_user.id,
    )


@router.post("/check-in", response_model=AttendanceRecordOut, status_code=status.HTTP_201_CREATED)
async def check_in_endpoint(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """
    Check in the current user at server time (work date in the organisation zone).
    400 on a holiday or week-off and when already checked in today.
    """
    return attendance_service.check_in(db, current_user.id)


@router.post("/check-out", response_model=AttendanceRecordOut)
async def check_out_endpoint(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """Close today's check-in as present with derived hours. 400 when there is no open check-in."""
    return attendance_service.check_out(db, current_user.id)


@router.patch("/records/{record_id}", response_model=AttendanceRecordOut)
async def update_attendance_endpoint(
    record_id: int,
    payload: AttendanceUpdate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(_writers)
):
    """
    Edit a stored record (HR/Admin).

    status is required; total_hours is recomputed from the times unless explicitly supplied.
    """
    fields = payload.model_dump(exclude_unset=True)
    if "status" in fields:
        fields["status_value"] = fields.pop("status")
    return attendance_service.update_attendance(db, record_id, actor_id=current_user.id, **fields)


@router.get("/records", response_model=List[AttendanceRecordOut])
async def list_attendance_endpoint(
    employee_id: Optional[int] = Query(None, description="Filter by employee ID"),
    from_date: Optional[date] = Query(None, alias="from", description="Start date (YYYY-MM-DD)"),
    to_date: Optional[date] = Query(None, alias="to", description="End date (YYYY-MM-DD)"),
    status_filter: Optional[AttendanceStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """
    List stored records.

    Employees only see their own records; HR/Manager/Admin may filter by any employee.
    """
    if current_user.role not in (Role.HR, Role.MANAGER, Role.ADMIN):
        employee_id = current_user.id
    return attendance_service.list_attendance(
        db,
        employee_id=employee_id,
        from_date=from_date,
        to_date=to_date,
        status_value=status_filter,
    )


@router.delete("/records/month", response_model=ClearMonthOut)
async def clear_month_endpoint(
    employee_id: int = Query(..., description="Employee ID"),
    month: str = Query(..., description="YYYY-MM"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN))
):
    """Delete one employee's records for a month (Admin-only)"""
    year, month_no = bulk_import_service.parse_month(month)
    deleted = attendance_service.clear_month(db, employee_id, year, month_no, actor_id=current_user.id)
    return {"employee_id": employee_id, "month": f"{year:04d}-{month_no:02d}", "deleted": deleted}


@router.post("/weekoff/bulk", response_model=BulkWeekoffOut)
async def bulk_weekoff_endpoint(
    payload: BulkWeekoffRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(_writers)
):
    """Mark several dates as weekoff for one employee (HR/Admin)"""
    records = attendance_service.bulk_mark_weekoff(
        db, payload.employee_id, payload.dates, actor_id=current_user.id
    )
    return {
        "employee_id": payload.employee_id,
        "marked": len(records),
        "dates": [r.date for r in records],
    }


@router.get("/resolve", response_model=ResolvedDayOut)
async def resolve_day_endpoint(
    employee_id: int = Query(..., description="Employee ID"),
    day: date = Query(..., alias="date", description="Date (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """Authoritative status for one employee-day"""
    if employee_id != current_user.id:
        _readers(current_user)
    get_employee_or_404(db, employee_id)
    return resolve_day(db, employee_id, day)


@router.get("/resolve/month", response_model=ResolvedMonthOut)
async def resolve_month_endpoint(
    employee_id: int = Query(..., description="Employee ID"),
    month: str = Query(..., description="YYYY-MM"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """Resolved calendar for a month with per-status counts"""
    if employee_id != current_user.id:
        _readers(current_user)
    get_employee_or_404(db, employee_id)
    year, month_no = bulk_import_service.parse_month(month)
    return resolve_month(db, employee_id, year, month_no)


@router.post("/bulk-upload", response_model=BulkUploadResult)
async def bulk_upload_endpoint(
    payload: BulkUploadRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(_writers)
):
    """
    Apply a month table of attendance codes (HR/Admin).

    Codes: P present, A absent, W weekoff, L late (present), H/HD half day.
    Cell failures are reported in `errors` and never abort the rest of the table.
    """
    return bulk_import_service.reconcile(
        db, payload.file_content, payload.month, actor_id=current_user.id
    )


@router.get("/bulk-upload/template")
async def bulk_upload_template_endpoint(
    month: str = Query(..., description="YYYY-MM"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(_writers)
):
    """Download a blank upload template for a month (HR/Admin)"""
    headers, rows, filename = bulk_import_service.generate_template(db, month)
    return stream_csv(headers=headers, rows=rows, filename=filename)


@router.get("/grace", response_model=GracePeriodOut)
async def get_grace_endpoint(
    day: date = Query(..., alias="date", description="Date (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """Grace period for a date (active=False when none is set)"""
    grace = grace_period_service.get_grace_period(db, day)
    if grace is None:
        return {"active": False, "date": day, "minutes": 0}
    return {
        "active": True,
        "date": grace.date,
        "minutes": grace.minutes,
        "reason": grace.reason,
        "created_by": grace.created_by,
    }


@router.put("/grace", response_model=GracePeriodOut)
async def set_grace_endpoint(
    payload: GracePeriodSet,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(_writers)
):
    """Set or replace the grace period for a date (HR/Admin)"""
    grace = grace_period_service.set_grace_period(
        db,
        payload.date,
        minutes=payload.minutes,
        reason=payload.reason,
        created_by=payload.created_by,
        actor_id=current_user.id,
    )
    return {
        "active": True,
        "date": grace.date,
        "minutes": grace.minutes,
        "reason": grace.reason,
        "created_by": grace.created_by,
    }


@router.delete("/grace", status_code=status.HTTP_204_NO_CONTENT)
async def delete_grace_endpoint(
    day: date = Query(..., alias="date", description="Date (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(_writers)
):
    """Remove the grace period for a date (HR/Admin)"""
    grace_period_service.delete_grace_period(db, day, actor_id=current_user.id)
