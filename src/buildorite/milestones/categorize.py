"""Derived trip views for list and schedule screens.

Buckets are recomputed from ``status`` and the latest milestone on every
call; nothing is cached between history mutations.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from buildorite.domain.models import Trip
from buildorite.domain.types import TERMINAL_TRIP_STATUSES, MilestoneStatus, TripStatus
from buildorite.milestones.engine import get_latest_milestone


class TripBucket(StrEnum):
    """Mutually exclusive list tabs."""

    ACTIVE = "active"
    SCHEDULED = "scheduled"
    HISTORY = "history"


class ScheduleStatus(StrEnum):
    """Finer-grained status used by the calendar stats."""

    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"
    ISSUE = "issue"
    CANCELED = "canceled"


def categorize_trip(trip: Trip) -> TripBucket:
    """Place *trip* in exactly one bucket.

    Terminal statuses go to history. An active trip still at
    ``trip_assigned`` (including an empty history) is scheduled. An active
    trip whose latest milestone is already ``delivery_verified`` is waiting
    only on its status flip and is treated as history. Everything else is
    active.
    """
    if trip.status in TERMINAL_TRIP_STATUSES:
        return TripBucket.HISTORY
    latest = get_latest_milestone(trip).status
    if latest == MilestoneStatus.TRIP_ASSIGNED:
        return TripBucket.SCHEDULED
    if latest == MilestoneStatus.DELIVERY_VERIFIED:
        return TripBucket.HISTORY
    return TripBucket.ACTIVE


def partition_trips(trips: Iterable[Trip]) -> dict[TripBucket, list[Trip]]:
    """Group trips by bucket, keeping their input order within each bucket."""
    buckets: dict[TripBucket, list[Trip]] = {bucket: [] for bucket in TripBucket}
    for trip in trips:
        buckets[categorize_trip(trip)].append(trip)
    return buckets


def schedule_status(trip: Trip) -> ScheduleStatus:
    """Map a trip to its calendar status.

    ``completed`` follows the trip status alone, even when
    ``delivery_verified`` is missing from history.
    """
    if trip.status == TripStatus.ISSUE_REPORTED:
        return ScheduleStatus.ISSUE
    if trip.status == TripStatus.CANCELED:
        return ScheduleStatus.CANCELED
    if trip.status == TripStatus.COMPLETED:
        return ScheduleStatus.COMPLETED
    if categorize_trip(trip) == TripBucket.ACTIVE:
        return ScheduleStatus.ACTIVE
    return ScheduleStatus.UPCOMING


def summarize_schedule(trips: Iterable[Trip]) -> dict[ScheduleStatus, int]:
    """Count trips per calendar status; every status is present in the result."""
    counts: dict[ScheduleStatus, int] = {status: 0 for status in ScheduleStatus}
    for trip in trips:
        counts[schedule_status(trip)] += 1
    return counts


class TripPlan(BaseModel):
    """Trips-screen layout: the current trip, then the rest by horizon."""

    model_config = ConfigDict(frozen=True)

    current: Trip | None = None
    up_next: list[Trip] = Field(default_factory=list)
    later: list[Trip] = Field(default_factory=list)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _by_schedule_date(
    trips: Iterable[Trip], buckets: frozenset[TripBucket]
) -> list[tuple[datetime, Trip]]:
    """Return dated trips from *buckets*, earliest schedule date first."""
    dated: list[tuple[datetime, Trip]] = []
    for trip in trips:
        if categorize_trip(trip) not in buckets:
            continue
        when = trip.schedule_date
        if when is not None:
            dated.append((_aware(when), trip))
    dated.sort(key=lambda pair: pair[0])
    return dated


def _split(
    dated: list[tuple[datetime, Trip]], now: datetime | None, days: int
) -> tuple[list[Trip], list[Trip]]:
    horizon = _aware(now or datetime.now(tz=UTC)) + timedelta(days=days)
    up_next = [trip for when, trip in dated if when <= horizon]
    later = [trip for when, trip in dated if when > horizon]
    return up_next, later


def split_by_horizon(
    trips: Iterable[Trip],
    now: datetime | None = None,
    days: int = 7,
) -> tuple[list[Trip], list[Trip]]:
    """Split scheduled trips into "up next" and "later" by schedule date.

    Trips outside the scheduled bucket or without a schedule date are
    skipped. Both lists are sorted by schedule date.

    Args:
        trips: Trips to split.
        now: Reference time; defaults to the current UTC time.
        days: Horizon in days; trips due on or before ``now + days`` are up next.

    Returns:
        ``(up_next, later)``.
    """
    return _split(_by_schedule_date(trips, frozenset({TripBucket.SCHEDULED})), now, days)


def plan_trips(
    trips: Iterable[Trip],
    now: datetime | None = None,
    days: int = 7,
) -> TripPlan:
    """Lay out open trips the way the trips screen shows them.

    Open trips (active or scheduled bucket) with a schedule date are sorted
    by that date. The earliest becomes :attr:`TripPlan.current`, whether or
    not it has started; the rest are split at ``now + days`` like
    :func:`split_by_horizon`.
    """
    dated = _by_schedule_date(trips, frozenset({TripBucket.ACTIVE, TripBucket.SCHEDULED}))
    if not dated:
        return TripPlan()
    up_next, later = _split(dated[1:], now, days)
    return TripPlan(current=dated[0][1], up_next=up_next, later=later)
