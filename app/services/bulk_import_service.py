"""
Bulk attendance import: a wide table (one row per employee, one column per day of month)
folded into per-cell upserts through the canonical attendance write.

A failed cell is recorded and skipped; it never aborts the batch or rolls back other cells.
"""
import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from app.core.config import settings
from app.models.attendance import AttendanceSource, AttendanceStatus
from app.models.employee import Employee
from app.services.attendance_service import upsert_attendance
from app.services.audit_service import log_audit
from app.services.employee_service import find_employee_by_identifier, list_active_employees
from app.services.status_resolver import Thresholds
from app.utils.datetime_utils import days_in_month, parse_period

_log = logging.getLogger(__name__)

# code -> (status, is_late); 'L' is a lateness modifier on present, not a status
CELL_CODES: Dict[str, Tuple[AttendanceStatus, bool]] = {
    "P": (AttendanceStatus.PRESENT, False),
    "A": (AttendanceStatus.ABSENT, False),
    "W": (AttendanceStatus.WEEKOFF, False),
    "L": (AttendanceStatus.PRESENT, True),
    "H": (AttendanceStatus.HALF_DAY, False),
    "HD": (AttendanceStatus.HALF_DAY, False),
}

TEMPLATE_NAME_HEADER = "Employee Name"


@dataclass
class CellError:
    employee_name: str
    date: str
    error: str

    def to_dict(self) -> Dict[str, str]:
        return {"employeeName": self.employee_name, "date": self.date, "error": self.error}


@dataclass
class ReconcileResult:
    """Fold accumulator: applied cell count plus the error ledger"""
    applied: int = 0
    errors: List[CellError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.applied > 0 or not self.errors

    def to_response(self) -> Dict:
        return {
            "success": self.success,
            "message": f"Processed {self.applied + len(self.errors)} cells: "
                       f"{self.applied} succeeded, {len(self.errors)} failed",
            "successCount": self.applied,
            "errorCount": len(self.errors),
            "errors": [e.to_dict() for e in self.errors],
        }


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def parse_month(month: str) -> Tuple[int, int]:
    try:
        return parse_period(month)
    except ValueError as exc:
        raise _bad_request(str(exc))


def parse_table(file_content: str) -> Tuple[List[int], List[List[str]]]:
    """
    Parse the raw table into (day labels, data rows).

    The delimiter (tab or comma) is taken from the header line; a UTF-8 BOM is stripped.

    Raises:
        HTTPException: 400 for an empty table or malformed day headers
    """
    text = (file_content or "").lstrip("\ufeff")
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        raise _bad_request("Uploaded table is empty")

    delimiter = "\t" if "\t" in lines[0] else ","
    reader = csv.reader(io.StringIO("\n".join(lines)), delimiter=delimiter)
    header, *rows = list(reader)

    labels = [h.strip() for h in header[1:]]
    while labels and not labels[-1]:
        labels.pop()
    if not labels:
        raise _bad_request("Header has no day columns")

    days: List[int] = []
    for label in labels:
        if not label.isdigit():
            raise _bad_request(f"Day column '{label}' is not a number")
        day = int(label)
        if not 1 <= day <= 31:
            raise _bad_request(f"Day column '{label}' is out of range 1-31")
        if day in days:
            raise _bad_request(f"Day column '{label}' appears more than once")
        days.append(day)

    if len(rows) > settings.BULK_UPLOAD_MAX_ROWS:
        raise _bad_request(
            f"Table has {len(rows)} rows; at most {settings.BULK_UPLOAD_MAX_ROWS} are accepted"
        )
    return days, rows


def _cell_date_label(year: int, month: int, day: int) -> str:
    return f"{year:04d}-{month:02d}-{day:02d}"


def _apply_cell(
    db: Session,
    employee: Employee,
    day: date,
    code: str,
    actor_id: Optional[int],
    thresholds: Thresholds,
) -> None:
    status_value, is_late = CELL_CODES[code]
    with db.begin_nested():
        upsert_attendance(
            db,
            employee.id,
            day,
            status_value=status_value,
            is_late=True if is_late else None,
            source=AttendanceSource.BULK_UPLOAD,
            actor_id=actor_id,
            thresholds=thresholds,
        )


def reconcile(
    db: Session,
    file_content: str,
    month: str,
    actor_id: Optional[int] = None,
) -> Dict:
    """
    Apply a bulk attendance table for one month.

    Rows are processed top to bottom and cells left to right. Each non-empty cell is an
    unconditional upsert keyed by (employee, date), so re-running the same table yields
    the same records and the same successCount.

    Returns:
        {success, message, successCount, errorCount, errors: [{employeeName, date, error}]}
    """
    year, month_no = parse_month(month)
    days, rows = parse_table(file_content)
    month_len = days_in_month(year, month_no)
    thresholds = Thresholds.from_settings()
    result = ReconcileResult()

    for row in rows:
        if not row or not any(cell.strip() for cell in row):
            continue
        name = row[0].strip()
        employee, lookup_error = None, None
        try:
            employee = find_employee_by_identifier(db, name)
        except HTTPException as exc:
            lookup_error = exc.detail

        for index, day_no in enumerate(days, start=1):
            raw = row[index] if index < len(row) else ""
            code = raw.strip().upper()
            if not code:
                continue
            label = _cell_date_label(year, month_no, day_no)

            if employee is None:
                result.errors.append(CellError(name, label, lookup_error))
                continue
            if day_no > month_len:
                result.errors.append(CellError(name, label, "Invalid date"))
                continue
            if code not in CELL_CODES:
                result.errors.append(CellError(name, label, f"Unknown attendance code '{raw.strip()}'"))
                continue

            try:
                _apply_cell(db, employee, date(year, month_no, day_no), code, actor_id, thresholds)
            except HTTPException as exc:
                result.errors.append(CellError(name, label, str(exc.detail)))
            except SQLAlchemyError as exc:
                _log.debug("Bulk upload write failed for %s on %s: %s", name, label, exc)
                result.errors.append(CellError(name, label, "Could not save attendance"))
            else:
                result.applied += 1

    db.commit()
    _log.info(
        "Bulk upload for %s: %d cells applied, %d errors",
        month, result.applied, len(result.errors),
    )

    if actor_id:
        log_audit(
            db=db,
            actor_id=actor_id,
            action="ATTENDANCE_BULK_UPLOAD",
            entity_type="attendance_records",
            meta={
                "month": month,
                "success_count": result.applied,
                "error_count": len(result.errors),
            }
        )
    return result.to_response()


def generate_template(db: Session, month: str) -> Tuple[List[str], List[List[str]], str]:
    """
    Blank upload template for a month: one row per active employee, one column per day.

    Returns:
        (headers, rows, filename) for stream_csv
    """
    year, month_no = parse_month(month)
    headers = [TEMPLATE_NAME_HEADER] + [str(d) for d in range(1, days_in_month(year, month_no) + 1)]
    rows = [[employee.name] for employee in list_active_employees(db)]
    return headers, rows, f"bulk_attendance_template_{year:04d}-{month_no:02d}.csv"
