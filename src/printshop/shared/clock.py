"""Datetime comparisons that tolerate stores returning naive UTC values."""

from datetime import UTC, datetime


def as_naive_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def is_due(scheduled_for: datetime | None, before: datetime) -> bool:
    return scheduled_for is not None and as_naive_utc(scheduled_for) <= as_naive_utc(before)
