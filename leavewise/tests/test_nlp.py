"""
Tests for natural-language leave parsing
"""
from datetime import date

from fastapi import status

from leavewise.services.nlp_service import confidence_label, parse_leave_text

from conftest import auth_headers

WEDNESDAY = date(2026, 3, 4)


def test_sick_leave_tomorrow():
    result = parse_leave_text("Sick leave tomorrow", WEDNESDAY)
    assert result.leave_type == "sick"
    assert result.start_date == date(2026, 3, 5)
    assert result.end_date == date(2026, 3, 5)
    assert result.total_days == 1
    assert result.confidence == 0.75
    assert result.confidence_label == "high"
    assert result.parsed is True
    assert result.needs_confirmation is False


def test_next_week_is_monday_to_friday():
    result = parse_leave_text("vacation next week", WEDNESDAY)
    assert result.leave_type == "annual"
    assert (result.start_date, result.end_date) == (date(2026, 3, 9), date(2026, 3, 13))
    assert result.total_days == 5
    assert result.confidence == 0.95


def test_duration_counts_working_days():
    result = parse_leave_text("sick leave tomorrow for 2 days", WEDNESDAY)
    assert (result.start_date, result.end_date) == (date(2026, 3, 5), date(2026, 3, 6))

    # Friday plus two working days runs to Tuesday
    result = parse_leave_text("friday for 3 days", WEDNESDAY)
    assert (result.start_date, result.end_date) == (date(2026, 3, 6), date(2026, 3, 10))
    assert result.total_days == 3


def test_past_month_day_rolls_to_next_year():
    result = parse_leave_text("jan 10", WEDNESDAY)
    assert result.start_date == date(2027, 1, 10)
    assert result.leave_type == "annual"
    assert result.confidence == 0.5
    assert result.confidence_label == "medium"
    assert result.needs_confirmation is True


def test_day_month_with_ordinal():
    result = parse_leave_text("family function on 25th December", WEDNESDAY)
    assert result.leave_type == "personal"
    assert result.start_date == date(2026, 12, 25)


def test_weekday_pair():
    result = parse_leave_text("monday and tuesday", WEDNESDAY)
    assert (result.start_date, result.end_date) == (date(2026, 3, 9), date(2026, 3, 10))
    assert result.total_days == 2
    assert result.confidence == 0.7
    assert result.needs_confirmation is False


def test_iso_date():
    result = parse_leave_text("2026-04-06 personal", WEDNESDAY)
    assert result.start_date == date(2026, 4, 6)
    assert result.leave_type == "personal"
    assert result.confidence == 0.75


def test_keywords_match_whole_words_only():
    # "will" must not read as "ill"
    result = parse_leave_text("I will be away tomorrow", WEDNESDAY)
    assert result.leave_type == "annual"
    assert result.confidence == 0.5


def test_no_date_is_not_parsed():
    result = parse_leave_text("I need some time off", WEDNESDAY)
    assert result.parsed is False
    assert result.confidence == 0.0
    assert result.start_date is None
    assert result.needs_confirmation is True

    result = parse_leave_text("doctor appointment", WEDNESDAY)
    assert result.leave_type == "sick"
    assert result.confidence == 0.1
    assert result.confidence_label == "low"
    assert result.parsed is False


def test_impossible_date_is_ignored():
    result = parse_leave_text("30 feb", WEDNESDAY)
    assert result.parsed is False
    assert result.start_date is None


def test_threshold_controls_confirmation():
    assert parse_leave_text("jan 10", WEDNESDAY, threshold=0.4).needs_confirmation is False


def test_confidence_labels():
    assert confidence_label(0.7) == "high"
    assert confidence_label(0.4) == "medium"
    assert confidence_label(0.39) == "low"


def test_parse_endpoint(client, employee):
    response = client.post("/api/v1/ai/parse-leave", json={"text": "sick leave today"}, headers=auth_headers(employee))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["leave_type"] == "sick"
    assert response.json()["parsed"] is True

    response = client.post("/api/v1/ai/parse-leave", json={"text": ""}, headers=auth_headers(employee))
    assert response.status_code == 422
