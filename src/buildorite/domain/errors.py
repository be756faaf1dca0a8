"""Domain-specific exception classes for trip milestone handling."""

from __future__ import annotations

from typing import TYPE_CHECKING

from buildorite.domain.types import MilestoneStatus, Role, TripStatus

if TYPE_CHECKING:
    from buildorite.domain.models import Trip


class TripError(Exception):
    """Base class for all domain errors in the trip engine."""


class InvalidTransitionError(TripError):
    """Raised when a milestone write is refused.

    Attributes:
        trip_id: The trip the write was attempted on.
        milestone: The milestone (or action) that was rejected.
    """

    def __init__(self, trip_id: str, milestone: str, reason: str) -> None:
        self.trip_id = trip_id
        self.milestone = milestone
        super().__init__(f"Cannot apply '{milestone}' to trip '{trip_id}': {reason}")


class OutOfOrderMilestoneError(InvalidTransitionError):
    """Raised when a milestone's prerequisite is not the current milestone."""

    def __init__(
        self,
        trip_id: str,
        milestone: MilestoneStatus,
        current: MilestoneStatus,
    ) -> None:
        self.current = current
        super().__init__(trip_id, milestone, f"current milestone is '{current}'")


class RoleMismatchError(InvalidTransitionError):
    """Raised when a role attempts a write it is not authorized for."""

    def __init__(self, trip_id: str, milestone: str, role: Role) -> None:
        self.role = role
        super().__init__(trip_id, milestone, f"role '{role}' is not permitted")


class TerminalTripError(InvalidTransitionError):
    """Raised when any write targets a completed, canceled, or issue trip."""

    def __init__(self, trip_id: str, milestone: str, status: TripStatus) -> None:
        self.status = status
        super().__init__(trip_id, milestone, f"trip is '{status}'")


class NoActionAvailableError(TripError):
    """Raised when a role asks to act but the engine offers nothing actionable."""

    def __init__(self, trip_id: str, role: Role) -> None:
        self.trip_id = trip_id
        self.role = role
        super().__init__(f"No actionable milestone for role '{role}' on trip '{trip_id}'")


class TripServiceError(TripError):
    """Raised when the remote trip service cannot complete a request."""


class TripFetchFailedError(TripServiceError):
    """Raised when a trip cannot be read before acting on it."""

    def __init__(self, trip_id: str) -> None:
        self.trip_id = trip_id
        super().__init__(f"Could not fetch trip '{trip_id}'")


class TripUpdateFailedError(TripServiceError):
    """Raised when a write call fails; carries the re-fetched trip state.

    Attributes:
        trip_id: The trip the write targeted.
        refreshed: The authoritative trip fetched after the failure, or
            ``None`` if the re-fetch failed as well.
    """

    def __init__(self, trip_id: str, refreshed: Trip | None) -> None:
        self.trip_id = trip_id
        self.refreshed = refreshed
        super().__init__(f"Update failed for trip '{trip_id}'")
