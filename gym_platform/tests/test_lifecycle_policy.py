"""Unit tests for plan durations, period arithmetic and standing."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from gym_app.errors import InvalidArgument
from gym_app.services import lifecycle_policy


def test_plan_durations():
    assert lifecycle_policy.plan_duration_days("monthly") == 30
    assert lifecycle_policy.plan_duration_days("yearly") == 365
    assert lifecycle_policy.plan_duration_days("lifetime") == 36500
    assert lifecycle_policy.plan_duration_days("weekly") == 30
    assert lifecycle_policy.plan_duration_days(None) == 30


def test_monthly_plan_period():
    start, end = lifecycle_policy.plan_period("monthly", "2024-01-01")
    assert start == date(2024, 1, 1)
    assert end == date(2024, 1, 31)


def test_lifetime_plan_period():
    start, end = lifecycle_policy.plan_period("lifetime", date(2024, 3, 1))
    assert (end - start).days == 36500


def test_compute_period_accepts_timestamps():
    start, end = lifecycle_policy.compute_period("2024-06-01T10:30:00Z", 90)
    assert start == date(2024, 6, 1)
    assert end == date(2024, 8, 30)


@pytest.mark.parametrize("duration", [0, -3, 1.5, True, "soon", None])
def test_invalid_durations(duration):
    with pytest.raises(InvalidArgument) as excinfo:
        lifecycle_policy.compute_period("2024-01-01", duration)
    assert excinfo.value.code == "invalid_duration"


def test_whole_float_duration_is_accepted():
    _, end = lifecycle_policy.compute_period("2024-01-01", 10.0)
    assert end == date(2024, 1, 11)


@pytest.mark.parametrize("value", ["", "yesterday", "2024-13-40", 12345])
def test_invalid_dates(value):
    with pytest.raises(InvalidArgument) as excinfo:
        lifecycle_policy.parse_calendar_date(value)
    assert excinfo.value.code == "invalid_date"


def test_days_remaining_rounds_up_partial_days():
    now = datetime(2024, 1, 10, 18, 0, tzinfo=timezone.utc)
    assert lifecycle_policy.days_remaining(date(2024, 1, 12), now=now) == 2
    assert lifecycle_policy.days_remaining(date(2024, 1, 10), now=now) == 0
    assert lifecycle_policy.days_remaining(date(2024, 1, 9), now=now) == -1


def test_days_remaining_with_calendar_day():
    assert lifecycle_policy.days_remaining(date(2024, 1, 31), today=date(2024, 1, 1)) == 30
    assert lifecycle_policy.days_remaining(None, today=date(2024, 1, 1)) == 0


def test_naive_now_is_treated_as_utc():
    now = datetime(2024, 1, 10, 12, 0)
    assert lifecycle_policy.days_remaining(date(2024, 1, 11), now=now) == 1


@pytest.mark.parametrize(
    ("end_date", "expected"),
    [
        (date(2024, 1, 1), "expired"),
        (date(2023, 12, 1), "expired"),
        (date(2024, 1, 2), "ending-soon"),
        (date(2024, 1, 8), "ending-soon"),
        (date(2024, 1, 9), "active"),
    ],
)
def test_derive_status_boundaries(end_date, expected):
    assert lifecycle_policy.derive_status(end_date, today=date(2024, 1, 1)) == expected


def test_ending_soon_window_is_configurable():
    today = date(2024, 1, 1)
    assert lifecycle_policy.derive_status(date(2024, 1, 12), today=today, ending_soon_days=14) == "ending-soon"


def test_active_filter_includes_ending_soon():
    today = date(2024, 1, 1)
    soon = date(2024, 1, 4)
    assert lifecycle_policy.matches_filter(soon, "active", today=today)
    assert lifecycle_policy.matches_filter(soon, "ending-soon", today=today)
    assert not lifecycle_policy.matches_filter(soon, "expired", today=today)
    assert lifecycle_policy.matches_filter(date(2023, 12, 31), "expired", today=today)
    assert lifecycle_policy.matches_filter(date(2023, 12, 31), "all", today=today)


def test_unknown_filter_is_rejected():
    with pytest.raises(InvalidArgument):
        lifecycle_policy.matches_filter(date(2024, 1, 1), "lapsed", today=date(2024, 1, 1))


def test_describe_standing_clamps_negative_days():
    now = datetime(2024, 2, 1, tzinfo=timezone.utc)
    standing = lifecycle_policy.describe_standing(date(2024, 1, 1), now=now)
    assert standing == {"days_remaining": 0, "status": "expired"}


def test_huge_duration_is_rejected():
    with pytest.raises(InvalidArgument) as excinfo:
        lifecycle_policy.compute_period("2024-06-01", 3_000_000)
    assert excinfo.value.code == "invalid_duration"


@pytest.mark.parametrize("end_date", [date(2024, 1, 1), date(2024, 1, 5), date(2024, 3, 1)])
def test_days_remaining_never_grows_as_time_passes(end_date):
    start = datetime(2023, 12, 20, tzinfo=timezone.utc)
    sweep = [start + timedelta(hours=5 * step) for step in range(0, 24 * 20)]
    remaining = [lifecycle_policy.days_remaining(end_date, now=now) for now in sweep]
    assert all(later <= earlier for earlier, later in zip(remaining, remaining[1:]))
    statuses = [lifecycle_policy.derive_status(end_date, now=now) for now in sweep]
    if "expired" in statuses:
        first = statuses.index("expired")
        assert set(statuses[first:]) == {"expired"}
