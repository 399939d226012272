"""
Tests for bulk attendance upload (month table of codes)
"""
import pytest
from fastapi import HTTPException, status

from app.models.attendance import AttendanceRecord, AttendanceSource
from app.services.bulk_import_service import parse_table, reconcile
from conftest import auth_headers, make_employee

TABLE = (
    "Employee Name,1,2,3,4,5\n"
    "Ravi Kumar,P,P,A,L,W\n"
    "Ghost Person,P,P,P,H,A\n"
    "Sita Rao,P,,P,HD,P\n"
)


@pytest.fixture
def colleague(db):
    return make_employee(db, "EMP002", "Sita Rao", email="sita@example.com")


def _snapshot(db):
    return sorted(
        (r.employee_id, r.date, r.status, r.is_late, r.late_minutes)
        for r in db.query(AttendanceRecord).all()
    )


def test_unmapped_row_does_not_block_other_rows(db, hr_user, employee, colleague):
    result = reconcile(db, TABLE, "2026-03", actor_id=hr_user.id)

    assert result["successCount"] == 9
    assert result["errorCount"] == 5
    assert result["success"] is True
    assert result["message"] == "Processed 14 cells: 9 succeeded, 5 failed"
    assert {e["employeeName"] for e in result["errors"]} == {"Ghost Person"}
    assert [e["date"] for e in result["errors"]] == [f"2026-03-0{d}" for d in range(1, 6)]
    assert result["errors"][0]["error"] == "Employee not found: Ghost Person"


def test_codes_map_to_statuses(db, hr_user, employee, colleague):
    reconcile(db, TABLE, "2026-03", actor_id=hr_user.id)

    ravi = {
        r.date.day: r
        for r in db.query(AttendanceRecord).filter(AttendanceRecord.employee_id == employee.id).all()
    }
    assert [ravi[d].status for d in range(1, 6)] == ["present", "present", "absent", "present", "weekoff"]
    assert ravi[4].is_late is True
    assert ravi[4].late_minutes is None
    assert ravi[1].is_late is False
    assert ravi[1].source == AttendanceSource.BULK_UPLOAD.value

    sita = {
        r.date.day: r.status
        for r in db.query(AttendanceRecord).filter(AttendanceRecord.employee_id == colleague.id).all()
    }
    assert sita == {1: "present", 3: "present", 4: "half_day", 5: "present"}


def test_reupload_is_idempotent(db, hr_user, employee, colleague):
    first = reconcile(db, TABLE, "2026-03", actor_id=hr_user.id)
    after_first = _snapshot(db)

    second = reconcile(db, TABLE, "2026-03", actor_id=hr_user.id)

    assert _snapshot(db) == after_first
    assert second["successCount"] == first["successCount"]
    assert db.query(AttendanceRecord).count() == 9


def test_upload_overwrites_previous_status(db, hr_user, employee):
    reconcile(db, "Employee Name,1\nRavi Kumar,A\n", "2026-03")
    reconcile(db, "Employee Name,1\nRavi Kumar,P\n", "2026-03")

    records = db.query(AttendanceRecord).all()
    assert [r.status for r in records] == ["present"]


def test_day_beyond_month_length_is_invalid_date(db, hr_user, employee):
    result = reconcile(db, "Employee Name,28,29,30\nRavi Kumar,P,P,P\n", "2026-02", actor_id=hr_user.id)

    assert result["successCount"] == 1
    assert [(e["date"], e["error"]) for e in result["errors"]] == [
        ("2026-02-29", "Invalid date"),
        ("2026-02-30", "Invalid date"),
    ]


def test_unknown_code_is_reported_per_cell(db, employee):
    result = reconcile(db, "Employee Name,1,2\nRavi Kumar,X,p\n", "2026-03")

    assert result["successCount"] == 1
    assert result["errors"] == [
        {"employeeName": "Ravi Kumar", "date": "2026-03-01", "error": "Unknown attendance code 'X'"}
    ]


def test_tab_separated_table_with_bom(db, employee):
    content = "\ufeffEmployee Name\t1\t2\nravi@example.com\tP\tW\n"

    result = reconcile(db, content, "2026-03")

    assert result["successCount"] == 2
    assert result["errorCount"] == 0


def test_all_cells_failing_reports_failure(db, employee):
    result = reconcile(db, "Employee Name,1,2\nNobody,P,P\n", "2026-03")

    assert result["success"] is False
    assert result["errorCount"] == 2


def test_ambiguous_name_is_reported(db, employee):
    make_employee(db, "EMP099", "Ravi Kumar")

    result = reconcile(db, "Employee Name,1\nRavi Kumar,P\n", "2026-03")

    assert result["successCount"] == 0
    assert "ambiguous" in result["errors"][0]["error"]


@pytest.mark.parametrize(
    "content",
    [
        "",
        "Employee Name\nRavi Kumar\n",
        "Employee Name,1,abc\nRavi Kumar,P,P\n",
        "Employee Name,1,32\nRavi Kumar,P,P\n",
        "Employee Name,1,1\nRavi Kumar,P,P\n",
    ],
)
def test_malformed_header_is_rejected(content):
    with pytest.raises(HTTPException) as exc_info:
        parse_table(content)

    assert exc_info.value.status_code == status.HTTP_400_BAD_REQUEST


def test_bad_month_is_rejected(client, hr_user):
    response = client.post(
        "/api/v1/attendance/bulk-upload",
        json={"file_content": TABLE, "month": "2026-13"},
        headers=auth_headers(hr_user),
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_bulk_upload_endpoint(client, hr_user, employee, colleague):
    response = client.post(
        "/api/v1/attendance/bulk-upload",
        json={"file_content": TABLE, "month": "2026-03"},
        headers=auth_headers(hr_user),
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["successCount"] == 9
    assert data["errorCount"] == 5


def test_bulk_upload_requires_hr(client, employee):
    response = client.post(
        "/api/v1/attendance/bulk-upload",
        json={"file_content": TABLE, "month": "2026-03"},
        headers=auth_headers(employee),
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_template_lists_active_employees(client, db, hr_user, employee, colleague):
    make_employee(db, "EMP003", "Old Timer", active=False)

    response = client.get(
        "/api/v1/attendance/bulk-upload/template",
        params={"month": "2026-02"},
        headers=auth_headers(hr_user),
    )

    assert response.status_code == status.HTTP_200_OK
    assert "bulk_attendance_template_2026-02.csv" in response.headers["content-disposition"]
    lines = response.text.splitlines()
    assert lines[0] == "Employee Name," + ",".join(str(d) for d in range(1, 29))
    names = [line.split(",")[0] for line in lines[1:]]
    assert names == ["Hema HR", "Ravi Kumar", "Sita Rao"]
