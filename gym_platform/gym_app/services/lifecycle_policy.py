"""Subscription lifecycle rules: plan durations, period arithmetic, standing.

Everything here is pure. Services call into it to decide dates and statuses and
then persist the outcome themselves.
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta, timezone

from ..errors import InvalidArgument

PLAN_DURATIONS: dict[str, int] = {
    "monthly": 30,
    "yearly": 365,
    "lifetime": 36500,
}
DEFAULT_PLAN = "monthly"
ENDING_SOON_DAYS = 7

STATUS_ACTIVE = "active"
STATUS_ENDING_SOON = "ending-soon"
STATUS_EXPIRED = "expired"
ROSTER_FILTERS = ("all", "active", "expired", "ending-soon")

_SECONDS_PER_DAY = 86400


def _now() -> datetime:
    return datetime.now(timezone.utc)


def today() -> date:
    return _now().date()


def _coerce_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def plan_duration_days(plan_type: str | None) -> int:
    """Days granted by a plan; unknown plans get the monthly duration."""

    return PLAN_DURATIONS.get(plan_type or "", PLAN_DURATIONS[DEFAULT_PLAN])


def parse_calendar_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError as exc:
            raise InvalidArgument("invalid_date", f"Unparsable date: {value!r}") from exc
    raise InvalidArgument("invalid_date", f"Unparsable date: {value!r}")


def validate_duration(duration) -> int:
    if isinstance(duration, bool):
        raise InvalidArgument("invalid_duration", "Duration must be a whole number of days")
    if isinstance(duration, float) and not duration.is_integer():
        raise InvalidArgument("invalid_duration", "Duration must be a whole number of days")
    try:
        days = int(duration)
    except (TypeError, ValueError) as exc:
        raise InvalidArgument("invalid_duration", "Duration must be a whole number of days") from exc
    if days <= 0:
        raise InvalidArgument("invalid_duration", "Duration must be greater than zero")
    return days


def compute_period(start, duration_days) -> tuple[date, date]:
    """Return (start, end) with end = start + duration calendar days."""

    days = validate_duration(duration_days)
    start_date = parse_calendar_date(start)
    try:
        end_date = start_date + timedelta(days=days)
    except OverflowError as exc:
        raise InvalidArgument("invalid_duration", "Duration runs past the last representable date") from exc
    return start_date, end_date


def plan_period(plan_type: str | None, start) -> tuple[date, date]:
    return compute_period(start, plan_duration_days(plan_type))


def days_remaining(end_date, now: datetime | None = None, today: date | None = None) -> int:
    """Whole days left until ``end_date`` (midnight UTC), rounded up.

    ``today`` is a convenience for callers that only deal in calendar dates; it
    stands for midnight UTC of that day.
    """

    if end_date is None:
        return 0
    end = datetime.combine(parse_calendar_date(end_date), time.min, tzinfo=timezone.utc)
    if now is None:
        now = (
            datetime.combine(today, time.min, tzinfo=timezone.utc) if today is not None else _now()
        )
    delta = end - _coerce_aware(now)
    return math.ceil(delta.total_seconds() / _SECONDS_PER_DAY)


def derive_status(
    end_date,
    now: datetime | None = None,
    *,
    today: date | None = None,
    ending_soon_days: int = ENDING_SOON_DAYS,
) -> str:
    remaining = days_remaining(end_date, now=now, today=today)
    if remaining <= 0:
        return STATUS_EXPIRED
    if remaining <= ending_soon_days:
        return STATUS_ENDING_SOON
    return STATUS_ACTIVE


def matches_filter(
    end_date,
    status_filter: str,
    now: datetime | None = None,
    *,
    today: date | None = None,
    ending_soon_days: int = ENDING_SOON_DAYS,
) -> bool:
    """Roster filter: ``active`` covers every member with days left, ending-soon included."""

    if status_filter not in ROSTER_FILTERS:
        raise InvalidArgument("invalid_filter", f"Unknown filter {status_filter!r}")
    if status_filter == "all":
        return True
    remaining = days_remaining(end_date, now=now, today=today)
    if status_filter == "active":
        return remaining > 0
    if status_filter == "expired":
        return remaining <= 0
    return 0 < remaining <= ending_soon_days


def describe_standing(end_date, now: datetime | None = None, *, ending_soon_days: int = ENDING_SOON_DAYS) -> dict:
    remaining = days_remaining(end_date, now=now)
    return {
        "days_remaining": max(remaining, 0),
        "status": derive_status(end_date, now=now, ending_soon_days=ending_soon_days),
    }
