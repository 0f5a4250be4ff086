"""
Tests for burnout risk scoring
"""
from datetime import date, timedelta

import pytest
from fastapi import status

from leavewise.core.errors import NotFound
from leavewise.models.department import DEFAULT_LEAVE_POLICY
from leavewise.services.burnout_service import (
    LeaveRecord,
    categorize,
    days_since_last_leave,
    get_burnout,
    round_half_up,
    score_burnout,
    team_burnout,
)

from conftest import auth_headers

TODAY = date(2026, 3, 2)


def _record(leave_type="annual", status="approved", start=None, days=1, applied=None, end=None):
    start = start or TODAY - timedelta(days=10)
    return LeaveRecord(
        leave_type=leave_type,
        status=status,
        start_date=start,
        end_date=end or start,
        total_days=days,
        applied_on=applied or start - timedelta(days=3),
    )


@pytest.mark.parametrize("score,category", [
    (0, "Low"), (30, "Low"), (31, "Moderate"), (60, "Moderate"),
    (61, "High"), (80, "High"), (81, "Critical"), (100, "Critical"),
])
def test_categorize_boundaries(score, category):
    assert categorize(score) == category


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(65.25) == 65
    assert round_half_up(0.49) == 0


def test_new_joiner_without_leave_is_moderate():
    result = score_burnout([], DEFAULT_LEAVE_POLICY, join_date=TODAY, today=TODAY)
    # 0*0.30 + 80*0.25 + 70*0.20 + 5*0.25 = 35.25
    assert result.score == 35
    assert result.category == "Moderate"
    assert result.raw_scores == {"consecutive": 0.0, "utilization": 80, "frequency": 70, "sick_leave": 5}
    assert result.recommendations == ["You have unused leave balance; plan time off proactively"]


def test_long_stretch_without_leave_is_high():
    result = score_burnout([], DEFAULT_LEAVE_POLICY, join_date=TODAY - timedelta(days=100), today=TODAY)
    # 100*0.30 + 80*0.25 + 70*0.20 + 5*0.25 = 65.25
    assert result.score == 65
    assert result.category == "High"
    assert result.days_since_last_leave == 100
    assert len(result.recommendations) == 4
    assert result.factors[0].startswith("100 consecutive days without leave")


def test_recent_healthy_usage_is_low():
    history = [_record(start=TODAY - timedelta(days=14), end=TODAY - timedelta(days=5), days=10,
                       applied=TODAY - timedelta(days=20))]
    result = score_burnout(history, {"annual": 5}, join_date=date(2024, 1, 1), today=TODAY)
    # 5/45*40*0.30 + 10*0.25 + 15*0.20 + 5*0.25 = 8.08
    assert result.score == 8
    assert result.category == "Low"
    assert result.days_since_last_leave == 5
    assert result.recommendations == []


def test_frequent_sick_leave_raises_score():
    history = [
        _record(leave_type="sick", start=TODAY - timedelta(days=d), applied=TODAY - timedelta(days=d))
        for d in (3, 8, 15)
    ]
    result = score_burnout(history, {"annual": 20}, join_date=date(2024, 1, 1), today=TODAY)
    assert result.raw_scores["sick_leave"] == 90
    assert any("3 sick leaves this month" in f for f in result.factors)


def test_only_approved_leave_counts():
    history = [_record(status="rejected", start=TODAY - timedelta(days=2))]
    assert days_since_last_leave(history, date(2026, 1, 1), TODAY) == (TODAY - date(2026, 1, 1)).days


def test_future_approved_leave_does_not_reset_gap():
    history = [_record(start=TODAY + timedelta(days=5))]
    assert days_since_last_leave(history, TODAY - timedelta(days=40), TODAY) == 40


def test_score_is_deterministic():
    history = [_record(days=3)]
    first = score_burnout(history, DEFAULT_LEAVE_POLICY, date(2025, 6, 1), TODAY)
    second = score_burnout(history, DEFAULT_LEAVE_POLICY, date(2025, 6, 1), TODAY)
    assert first == second


def test_get_burnout_reads_ledger(db, employee):
    result = get_burnout(db, employee.id, TODAY)
    # joined 2025-01-06, no leave taken: consecutive and utilization maxed
    assert result.score == 65
    assert result.employee_id == employee.id


def test_get_burnout_unknown_employee(db):
    with pytest.raises(NotFound):
        get_burnout(db, 404, TODAY)


def test_team_burnout(db, employee, manager):
    team = team_burnout(db, manager.id, TODAY)
    assert team.team_size == 1
    assert team.average_score == 65
    assert team.high_risk_count == 1
    assert team.members[0].employee_id == employee.id


def test_burnout_endpoint_access(client, employee, manager, other_manager):
    response = client.get(f"/api/v1/ai/burnout/{employee.id}", headers=auth_headers(manager))
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["label"] == "Rule-Based Burnout Assessment"
    assert set(body["weights"]) == {"consecutive", "utilization", "frequency", "sick_leave"}

    response = client.get(f"/api/v1/ai/burnout/{employee.id}", headers=auth_headers(other_manager))
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = client.get(f"/api/v1/ai/burnout/team/{manager.id}", headers=auth_headers(other_manager))
    assert response.status_code == status.HTTP_403_FORBIDDEN
    response = client.get(f"/api/v1/ai/burnout/team/{manager.id}", headers=auth_headers(manager))
    assert response.json()["team_size"] == 1
