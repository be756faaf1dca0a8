"""Domain types, models, and errors for the trip milestone engine."""

from buildorite.domain.errors import (
    InvalidTransitionError,
    NoActionAvailableError,
    OutOfOrderMilestoneError,
    RoleMismatchError,
    TerminalTripError,
    TripError,
    TripFetchFailedError,
    TripServiceError,
    TripUpdateFailedError,
)
from buildorite.domain.models import MilestoneEvent, Trip, TripIssue
from buildorite.domain.types import (
    TERMINAL_TRIP_STATUSES,
    IssueReason,
    MilestoneStatus,
    Role,
    TripStatus,
)

__all__ = [
    "TERMINAL_TRIP_STATUSES",
    "InvalidTransitionError",
    "IssueReason",
    "MilestoneEvent",
    "MilestoneStatus",
    "NoActionAvailableError",
    "OutOfOrderMilestoneError",
    "Role",
    "RoleMismatchError",
    "TerminalTripError",
    "Trip",
    "TripError",
    "TripFetchFailedError",
    "TripIssue",
    "TripServiceError",
    "TripStatus",
    "TripUpdateFailedError",
]
