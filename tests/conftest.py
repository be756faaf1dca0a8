"""Shared pytest fixtures for the trip milestone test suite."""

from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from buildorite.domain.models import MilestoneEvent, Trip
from buildorite.domain.types import MilestoneStatus, TripStatus

# History entries are spaced one hour apart from this instant.
BASE_TIME = datetime(2026, 3, 2, 8, 0, tzinfo=UTC)


@pytest.fixture
def base_time() -> datetime:
    """The timestamp of the first history entry built by ``make_trip``."""
    return BASE_TIME


@pytest.fixture
def make_trip() -> Callable[..., Trip]:
    """Factory for trips with an hourly-spaced milestone history."""

    def _make(
        milestones: Sequence[MilestoneStatus] = (),
        status: TripStatus = TripStatus.ACTIVE,
        trip_id: str = "trip-1",
        **extra: Any,
    ) -> Trip:
        history = [
            MilestoneEvent(status=milestone, timestamp=BASE_TIME + timedelta(hours=index))
            for index, milestone in enumerate(milestones)
        ]
        return Trip(id=trip_id, status=status, milestone_history=history, **extra)

    return _make


@pytest.fixture
def trip_payload() -> dict[str, Any]:
    """A trip document shaped like the trip service returns it."""
    return {
        "_id": "6650c1f0a1b2c3d4e5f60718",
        "status": "active",
        "milestone_history": [
            {"status": "trip_assigned", "timestamp": "2026-03-02T08:00:00Z"},
            {"status": "trip_started", "timestamp": "2026-03-02T09:00:00Z"},
        ],
        "request_id": {
            "_id": "req-1",
            "finalized_agreement": {
                "quantity": 20,
                "schedule": {"date": "2026-03-03T10:00:00Z"},
            },
        },
        "driver_id": "drv-1",
        "truck_id": {"name": "Tata Signa", "registration_number": "MH12AB1234"},
        "createdAt": "2026-03-02T07:55:00Z",
    }
