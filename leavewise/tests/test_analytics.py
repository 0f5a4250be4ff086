"""
Tests for the leave analytics dashboards
"""
from datetime import date, datetime, timezone

import pytest
from fastapi import status

from leavewise.core.errors import Forbidden
from leavewise.models.department import Department
from leavewise.models.leave import LeaveRequest, LeaveStatus, LeaveType
from leavewise.services.analytics_service import (
    get_department_comparison,
    get_leave_distribution,
    get_monthly_trend,
    get_overview,
    get_team_analytics,
)

from conftest import actor_for, auth_headers, make_employee

TODAY = date(2026, 3, 18)  # Wednesday


def _at(year, month, day, hour=9):
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


def _leave(db, who, leave_type, start, end, days, leave_status, applied_at, processed_at=None):
    leave = LeaveRequest(
        employee_id=who.id,
        leave_type=leave_type,
        start_date=start,
        end_date=end,
        total_days=days,
        deducted_days=days if leave_status == LeaveStatus.APPROVED else 0,
        reason="Seeded for dashboard figures",
        status=leave_status,
        version=1,
        applied_at=applied_at,
        processed_at=processed_at,
    )
    db.add(leave)
    db.commit()
    return leave


@pytest.fixture
def sales_employee(db):
    sales = Department(name="Sales", code="SAL")
    db.add(sales)
    db.commit()
    return make_employee(db, "Sam Seller", "sam@example.com", department_id=sales.id)


@pytest.fixture
def history(db, employee, sales_employee):
    """Leave across two departments, this month, last month and last year"""
    return {
        "out_today": _leave(
            db, employee, LeaveType.ANNUAL, date(2026, 3, 16), date(2026, 3, 18), 3,
            LeaveStatus.APPROVED, _at(2026, 3, 2), _at(2026, 3, 3),
        ),
        "rejected": _leave(
            db, employee, LeaveType.SICK, date(2026, 3, 25), date(2026, 3, 25), 1,
            LeaveStatus.REJECTED, _at(2026, 3, 10, 10), _at(2026, 3, 10, 22),
        ),
        "last_month": _leave(
            db, employee, LeaveType.PERSONAL, date(2026, 2, 9), date(2026, 2, 10), 2,
            LeaveStatus.APPROVED, _at(2026, 2, 2, 12), _at(2026, 2, 3, 12),
        ),
        "pending": _leave(
            db, sales_employee, LeaveType.ANNUAL, date(2026, 4, 6), date(2026, 4, 10), 5,
            LeaveStatus.PENDING, _at(2026, 3, 12),
        ),
        "last_year": _leave(
            db, sales_employee, LeaveType.ANNUAL, date(2025, 3, 10), date(2025, 3, 11), 2,
            LeaveStatus.APPROVED, _at(2025, 3, 1), _at(2025, 3, 2),
        ),
    }


def test_overview_compares_this_month_with_last(db, admin, history):
    overview = get_overview(db, TODAY)

    assert overview.total_employees == 4
    assert overview.total_leaves == 5
    assert overview.pending_leaves == 1
    assert overview.approved_this_month == 1
    assert overview.approved_last_month == 1
    assert overview.rejected_this_month == 1
    assert overview.approval_rate == 50
    assert overview.on_leave_today == 1
    assert overview.approval_delta == 0


def test_overview_without_decisions_has_zero_rate(db, admin):
    overview = get_overview(db, TODAY)
    assert overview.approval_rate == 0
    assert overview.total_leaves == 0


def test_distribution_for_admin_covers_everyone(db, admin, history):
    distribution = get_leave_distribution(db, actor_for(admin))
    assert [(d.leave_type, d.count, d.total_days) for d in distribution] == [
        ("annual", 2, 5),
        ("personal", 1, 2),
    ]


def test_distribution_filters(db, admin, sales_employee, history):
    by_department = get_leave_distribution(db, actor_for(admin), department_id=sales_employee.department_id)
    assert [(d.leave_type, d.count, d.total_days) for d in by_department] == [("annual", 1, 2)]

    this_year = get_leave_distribution(db, actor_for(admin), from_date=date(2026, 1, 1))
    assert [(d.leave_type, d.total_days) for d in this_year] == [("annual", 3), ("personal", 2)]


def test_distribution_for_manager_is_team_scoped(db, manager, sales_employee, history):
    # department_id is ignored for managers
    distribution = get_leave_distribution(db, actor_for(manager), department_id=sales_employee.department_id)
    assert [(d.leave_type, d.count, d.total_days) for d in distribution] == [
        ("annual", 1, 3),
        ("personal", 1, 2),
    ]


def test_distribution_refuses_employees(db, employee):
    with pytest.raises(Forbidden):
        get_leave_distribution(db, actor_for(employee))


def test_monthly_trend_covers_twelve_months(db, admin, history):
    trend = get_monthly_trend(db, actor_for(admin), TODAY)

    assert len(trend) == 12
    assert trend[0].month == "2025-04"
    assert trend[-1].month == "2026-03"
    assert trend[-1].label == "Mar 2026"

    march = trend[-1]
    assert (march.total, march.approved, march.rejected, march.total_days) == (3, 1, 1, 9)
    february = trend[-2]
    assert (february.total, february.approved, february.total_days) == (1, 1, 2)
    # Applied before the window
    assert sum(t.total for t in trend) == 4


def test_monthly_trend_for_manager(db, manager, history):
    march = get_monthly_trend(db, actor_for(manager), TODAY)[-1]
    assert (march.total, march.approved, march.rejected, march.total_days) == (2, 1, 1, 4)


def test_department_comparison(db, manager, history):
    comparison = get_department_comparison(db)

    assert [c.code for c in comparison] == ["ENG", "SAL"]
    engineering, sales = comparison
    assert (engineering.employee_count, engineering.total_leaves, engineering.approved_leaves) == (2, 3, 2)
    assert engineering.total_days_used == 5
    assert engineering.avg_days_per_employee == 2.5
    assert (sales.employee_count, sales.total_leaves, sales.approved_leaves) == (1, 2, 1)
    assert sales.avg_days_per_employee == 2.0


def test_department_without_members(db, department):
    comparison = get_department_comparison(db)
    assert comparison[0].employee_count == 0
    assert comparison[0].avg_days_per_employee == 0.0


def test_team_analytics(db, manager, employee, history):
    team = get_team_analytics(db, actor_for(manager), TODAY)

    assert team.manager_id == manager.id
    assert team.team_size == 1
    assert [(e.name, e.leave_id) for e in team.on_leave_today] == [("Eli Engineer", history["out_today"].id)]
    # 24h, 12h and 24h from application to decision
    assert team.avg_processing_hours == 20.0

    member = team.members[0]
    assert member.employee_id == employee.id
    assert member.remaining_days == 125
    assert member.days_taken == 5


def test_team_analytics_for_manager_without_team(db, other_manager):
    team = get_team_analytics(db, actor_for(other_manager), TODAY)
    assert team.team_size == 0
    assert team.avg_processing_hours == 0.0
    assert team.members == []


def test_team_analytics_is_for_managers(db, admin):
    with pytest.raises(Forbidden):
        get_team_analytics(db, actor_for(admin), TODAY)


def test_analytics_endpoints_role_guards(client, admin, manager, employee):
    assert client.get("/api/v1/analytics/overview", headers=auth_headers(admin)).status_code == status.HTTP_200_OK
    assert client.get("/api/v1/analytics/overview", headers=auth_headers(manager)).status_code == status.HTTP_403_FORBIDDEN

    response = client.get("/api/v1/analytics/monthly-trend", headers=auth_headers(manager))
    assert response.status_code == status.HTTP_200_OK
    assert len(response.json()["trend"]) == 12

    response = client.get("/api/v1/analytics/leave-distribution", headers=auth_headers(employee))
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = client.get("/api/v1/analytics/team", headers=auth_headers(manager))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["team_size"] == 1
    assert client.get("/api/v1/analytics/team", headers=auth_headers(admin)).status_code == status.HTTP_403_FORBIDDEN


def test_department_comparison_endpoint(client, admin, manager, history):
    response = client.get("/api/v1/analytics/department-comparison", headers=auth_headers(admin))
    assert response.status_code == status.HTTP_200_OK
    body = response.json()["comparison"]
    assert body[0]["department"] == "Engineering"
    assert body[0]["total_days_used"] == 5


def test_distribution_endpoint_rejects_reversed_range(client, admin):
    response = client.get(
        "/api/v1/analytics/leave-distribution",
        params={"from_date": "2026-03-10", "to_date": "2026-03-01"},
        headers=auth_headers(admin),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "VALIDATION_ERROR"
