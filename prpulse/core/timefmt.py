"""Compact relative timestamps for summaries."""

from __future__ import annotations

from datetime import datetime, timezone


def _plural(value: int, unit: str, plural: str | None = None) -> str:
    if value == 1:
        return f"1 {unit} ago"
    return f"{value} {plural or unit + 's'} ago"


def short_time_ago(moment: datetime, now: datetime | None = None) -> str:
    """``"Just now"``, ``"5 mins ago"``, ``"1 week ago"``, ``"2 years ago"``.

    Uses the largest whole unit; months are 30 days and years 365.
    """
    now = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    seconds = int((now - moment).total_seconds())
    if seconds < 60:
        return "Just now"

    minutes, hours, days = seconds // 60, seconds // 3600, seconds // 86400
    if days >= 365:
        return _plural(days // 365, "year")
    if days >= 30:
        return _plural(days // 30, "month")
    if days >= 7:
        return _plural(days // 7, "week")
    if days >= 1:
        return _plural(days, "day")
    if hours >= 1:
        return _plural(hours, "hour")
    return _plural(minutes, "min")
