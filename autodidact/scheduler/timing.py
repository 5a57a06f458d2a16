"""Next-run computation. Pure functions of (frequency, now)."""

from datetime import datetime, timedelta

from autodidact.scheduler.models import Frequency


def next_run_for(frequency: Frequency, now: datetime) -> datetime:
    """Return the next run time, always strictly after ``now``."""
    if frequency.kind == "hourly":
        return now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=frequency.interval_hours)

    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if frequency.kind == "daily":
        return midnight + timedelta(days=1, hours=frequency.hour)

    days_until = (frequency.day_of_week - now.weekday() + 7) % 7 or 7
    return midnight + timedelta(days=days_until, hours=frequency.hour)
