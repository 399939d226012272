"""
Tests for holiday calendar endpoints
"""
from fastapi import status
from conftest import auth_headers

REPUBLIC_DAY = {"year": 2026, "date": "2026-01-26", "name": "Republic Day", "active": True}


def test_create_holiday_success(client, hr_user):
    """Test creating a holiday (HR-only)"""
    response = client.post("/api/v1/holidays", json=REPUBLIC_DAY, headers=auth_headers(hr_user))

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["year"] == 2026
    assert data["date"] == "2026-01-26"
    assert data["name"] == "Republic Day"
    assert data["active"] is True
    assert data["created_at"].endswith("+05:30")


def test_create_holiday_duplicate_rejected(client, hr_user):
    """Test that duplicate holidays are rejected"""
    headers = auth_headers(hr_user)
    client.post("/api/v1/holidays", json=REPUBLIC_DAY, headers=headers)

    response = client.post(
        "/api/v1/holidays",
        json={**REPUBLIC_DAY, "name": "Another Name"},
        headers=headers,
    )

    assert response.status_code == status.HTTP_409_CONFLICT
    assert "already exists" in response.json()["detail"].lower()


def test_create_holiday_outside_year_rejected(client, hr_user):
    response = client.post(
        "/api/v1/holidays",
        json={**REPUBLIC_DAY, "year": 2027},
        headers=auth_headers(hr_user),
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_employee_cannot_create_holiday(client, employee):
    response = client.post("/api/v1/holidays", json=REPUBLIC_DAY, headers=auth_headers(employee))

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_list_holidays_by_year(client, hr_user, employee):
    """Test listing holidays filtered by year"""
    headers = auth_headers(hr_user)
    client.post("/api/v1/holidays", json=REPUBLIC_DAY, headers=headers)
    client.post(
        "/api/v1/holidays",
        json={"year": 2027, "date": "2027-01-26", "name": "Republic Day 2027", "active": True},
        headers=headers,
    )

    response = client.get("/api/v1/holidays", params={"year": 2026}, headers=auth_headers(employee))

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert len(data) == 1
    assert data[0]["year"] == 2026


def test_deactivated_holiday_no_longer_resolves(client, hr_user, employee):
    headers = auth_headers(hr_user)
    holiday_id = client.post("/api/v1/holidays", json=REPUBLIC_DAY, headers=headers).json()["id"]
    params = {"employee_id": employee.id, "date": "2026-01-26"}

    resolved = client.get("/api/v1/attendance/resolve", params=params, headers=headers).json()
    assert resolved["status"] == "holiday"
    assert resolved["holiday_name"] == "Republic Day"

    response = client.patch(f"/api/v1/holidays/{holiday_id}", json={"active": False}, headers=headers)
    assert response.status_code == status.HTTP_200_OK

    resolved = client.get("/api/v1/attendance/resolve", params=params, headers=headers).json()
    assert resolved["status"] == "absent"


def test_delete_holiday(client, hr_user):
    headers = auth_headers(hr_user)
    holiday_id = client.post("/api/v1/holidays", json=REPUBLIC_DAY, headers=headers).json()["id"]

    response = client.delete(f"/api/v1/holidays/{holiday_id}", headers=headers)
    assert response.status_code == status.HTTP_204_NO_CONTENT

    response = client.get(f"/api/v1/holidays/{holiday_id}", headers=headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND
