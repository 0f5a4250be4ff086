"""
Tests for leave endpoints
"""
from datetime import date, timedelta

import pytest
from fastapi import status

from leavewise.services import leave_service

from conftest import auth_headers

TODAY = date(2026, 3, 4)  # Wednesday


@pytest.fixture(autouse=True)
def fixed_today(monkeypatch):
    """Submission checks run against a fixed mid-year date"""
    monkeypatch.setattr(leave_service, "today_utc", lambda: TODAY)


def _next_monday():
    return TODAY + timedelta(days=7 - TODAY.weekday())


def _apply(client, employee, start, end, leave_type="annual"):
    return client.post(
        "/api/v1/leaves",
        json={
            "leave_type": leave_type,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "reason": "Visiting family out of town",
        },
        headers=auth_headers(employee),
    )


def test_apply_requires_authentication(client):
    response = client.get("/api/v1/leaves")
    assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)


def test_apply_and_approve_flow(client, employee, manager):
    monday = _next_monday()
    response = _apply(client, employee, monday, monday + timedelta(days=1))
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["status"] == "pending"
    assert data["total_days"] == 2
    assert data["allowed_transitions"] == ["cancelled"]
    assert data["applied_at"].endswith("Z")

    # The manager sees approve/reject on the same request
    response = client.get(f"/api/v1/leaves/{data['id']}", headers=auth_headers(manager))
    assert response.json()["allowed_transitions"] == ["approved", "rejected"]

    response = client.post(
        f"/api/v1/leaves/{data['id']}/approve",
        json={"comment": "Approved"},
        headers=auth_headers(manager),
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "approved"
    assert response.json()["deducted_days"] == 2

    response = client.get("/api/v1/leaves/balance/me", headers=auth_headers(employee))
    assert response.json()["balances"]["annual"] == 3


def test_validation_failure_uses_error_envelope(client, employee):
    monday = _next_monday()
    response = _apply(client, employee, monday, monday + timedelta(days=7))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    body = response.json()
    assert body["error"] is True
    assert body["code"] == "VALIDATION_ERROR"
    assert body["path"] == "/api/v1/leaves"


def test_insufficient_balance_on_approval_is_conflict(client, employee, manager):
    monday = _next_monday()
    week = _apply(client, employee, monday, monday + timedelta(days=4)).json()
    extra = _apply(client, employee, monday + timedelta(days=7), monday + timedelta(days=7)).json()

    assert client.post(f"/api/v1/leaves/{week['id']}/approve", headers=auth_headers(manager)).status_code == 200
    response = client.post(f"/api/v1/leaves/{extra['id']}/approve", headers=auth_headers(manager))
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["code"] == "INSUFFICIENT_BALANCE"

    response = client.get(f"/api/v1/leaves/{extra['id']}", headers=auth_headers(employee))
    assert response.json()["status"] == "pending"


def test_unrelated_manager_cannot_view_or_approve(client, employee, other_manager):
    monday = _next_monday()
    leave = _apply(client, employee, monday, monday).json()
    headers = auth_headers(other_manager)
    assert client.get(f"/api/v1/leaves/{leave['id']}", headers=headers).status_code == status.HTTP_403_FORBIDDEN
    response = client.post(f"/api/v1/leaves/{leave['id']}/approve", headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["code"] == "FORBIDDEN"


def test_invalid_transition_is_conflict(client, employee, manager):
    monday = _next_monday()
    leave = _apply(client, employee, monday, monday).json()
    client.post(f"/api/v1/leaves/{leave['id']}/reject", headers=auth_headers(manager))
    response = client.post(
        f"/api/v1/leaves/{leave['id']}/transition",
        json={"status": "approved"},
        headers=auth_headers(manager),
    )
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["code"] == "INVALID_TRANSITION"


def test_etag_and_conditional_get(client, employee, manager):
    monday = _next_monday()
    leave = _apply(client, employee, monday, monday).json()
    headers = auth_headers(employee)

    response = client.get(f"/api/v1/leaves/{leave['id']}", headers=headers)
    etag = response.headers["etag"]
    assert etag == f'W/"leave-{leave["id"]}-v1"'

    response = client.get(f"/api/v1/leaves/{leave['id']}", headers={**headers, "If-None-Match": etag})
    assert response.status_code == status.HTTP_304_NOT_MODIFIED

    client.post(f"/api/v1/leaves/{leave['id']}/approve", headers=auth_headers(manager))
    response = client.get(f"/api/v1/leaves/{leave['id']}", headers={**headers, "If-None-Match": etag})
    assert response.status_code == status.HTTP_200_OK
    assert response.headers["etag"].endswith('-v2"')


def test_list_and_pending_queue(client, employee, manager):
    monday = _next_monday()
    _apply(client, employee, monday, monday)
    _apply(client, employee, monday + timedelta(days=2), monday + timedelta(days=2), leave_type="sick")

    response = client.get("/api/v1/leaves", params={"leave_type": "sick"}, headers=auth_headers(employee))
    assert response.json()["total"] == 1

    response = client.get("/api/v1/leaves/pending", headers=auth_headers(manager))
    assert len(response.json()) == 2

    response = client.get("/api/v1/leaves/pending", headers=auth_headers(employee))
    assert response.json() == []


def test_expire_endpoint_is_admin_only(client, employee, admin):
    monday = _next_monday()
    leave = _apply(client, employee, monday, monday).json()
    body = {"as_of": (monday + timedelta(days=1)).isoformat()}

    response = client.post("/api/v1/leaves/expire", json=body, headers=auth_headers(employee))
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = client.post("/api/v1/leaves/expire", json=body, headers=auth_headers(admin))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["expired_ids"] == [leave["id"]]

    response = client.get(f"/api/v1/leaves/{leave['id']}", headers=auth_headers(employee))
    assert response.json()["status"] == "expired"
    assert response.json()["allowed_transitions"] == []


def test_transactions_me_lists_ledger_history(client, employee, manager):
    monday = _next_monday()
    leave = _apply(client, employee, monday, monday).json()
    client.post(f"/api/v1/leaves/{leave['id']}/approve", headers=auth_headers(manager))

    response = client.get("/api/v1/leaves/transactions/me", params={"leave_type": "annual"}, headers=auth_headers(employee))
    actions = [t["action"] for t in response.json()]
    assert actions[0] == "APPROVE_DEDUCT"
    assert "ALLOCATE" in actions
