"""Time derivations for trip cards and summaries.

All functions accept an optional ``now`` so results are deterministic in
tests; naive datetimes are read as UTC. Units are floored, never rounded.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict

from buildorite.domain.models import Trip
from buildorite.domain.types import MilestoneStatus

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR


class TimeRemaining(BaseModel):
    """Signed distance to a schedule date, already formatted."""

    model_config = ConfigDict(frozen=True)

    text: str
    is_overdue: bool


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _now(now: datetime | None) -> datetime:
    return _aware(now) if now is not None else datetime.now(tz=UTC)


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def elapsed_since(timestamp: datetime, now: datetime | None = None) -> str:
    """Format the time since *timestamp* as ``"3h 12m"`` or ``"12m"``.

    Timestamps in the future clamp to ``"0m"``.
    """
    seconds = max(0, int((_now(now) - _aware(timestamp)).total_seconds()))
    hours, remainder = divmod(seconds, HOUR)
    minutes = remainder // MINUTE
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def remaining_or_overdue(schedule_date: datetime, now: datetime | None = None) -> TimeRemaining:
    """Describe how far *schedule_date* is from now.

    Within one minute either side of the schedule the text is ``"Due now"``
    and the trip is not yet overdue. Before that the text counts down in the
    largest whole unit (``"2 hours"``); after it, the overdue amount is shown
    compactly (``"30m overdue"``).

    Args:
        schedule_date: The agreed pickup/delivery date.
        now: Reference time; defaults to the current UTC time.

    Returns:
        A :class:`TimeRemaining` with the display text and overdue flag.
    """
    delta = int((_aware(schedule_date) - _now(now)).total_seconds())

    if -MINUTE < delta < MINUTE:
        return TimeRemaining(text="Due now", is_overdue=False)

    if delta > 0:
        if delta >= DAY:
            text = _plural(delta // DAY, "day")
        elif delta >= HOUR:
            text = _plural(delta // HOUR, "hour")
        else:
            text = _plural(delta // MINUTE, "minute")
        return TimeRemaining(text=text, is_overdue=False)

    overdue = -delta
    if overdue >= DAY:
        text = f"{overdue // DAY}d overdue"
    elif overdue >= HOUR:
        text = f"{overdue // HOUR}h overdue"
    else:
        text = f"{overdue // MINUTE}m overdue"
    return TimeRemaining(text=text, is_overdue=True)


def duration_between(start: datetime, end: datetime) -> str:
    """Format the span from *start* to *end* as ``"1d 4h 5m"``.

    Leading zero units are dropped; a negative span clamps to ``"0m"``.
    """
    seconds = max(0, int((_aware(end) - _aware(start)).total_seconds()))
    days, seconds = divmod(seconds, DAY)
    hours, seconds = divmod(seconds, HOUR)
    minutes = seconds // MINUTE

    if days:
        return f"{days}d {hours}h {minutes}m"
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def trip_duration(trip: Trip) -> str | None:
    """Return the time from ``trip_started`` to ``delivery_verified``, if both exist."""
    started = trip.event_for(MilestoneStatus.TRIP_STARTED)
    verified = trip.event_for(MilestoneStatus.DELIVERY_VERIFIED)
    if started is None or verified is None:
        return None
    return duration_between(started.timestamp, verified.timestamp)
