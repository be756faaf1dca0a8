"""Domain enumerations for trips, milestones, roles, and issue reasons."""

from enum import StrEnum


class MilestoneStatus(StrEnum):
    """The nine canonical trip milestones, declared in lifecycle order."""

    TRIP_ASSIGNED = "trip_assigned"
    TRIP_STARTED = "trip_started"
    ARRIVED_AT_PICKUP = "arrived_at_pickup"
    LOADING_COMPLETE = "loading_complete"
    PICKUP_VERIFIED = "pickup_verified"
    EN_ROUTE_TO_DELIVERY = "en_route_to_delivery"
    ARRIVED_AT_DELIVERY = "arrived_at_delivery"
    DELIVERY_COMPLETE = "delivery_complete"
    DELIVERY_VERIFIED = "delivery_verified"


class TripStatus(StrEnum):
    """Coarse trip lifecycle status, distinct from the milestone."""

    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELED = "canceled"
    ISSUE_REPORTED = "issue_reported"


class Role(StrEnum):
    """Actors that view a trip and may act on it."""

    DRIVER = "driver"
    TRUCK_OWNER = "truck_owner"
    MINE_OWNER = "mine_owner"


class IssueReason(StrEnum):
    """Reasons a driver can give when reporting a trip issue."""

    ACCIDENT = "accident"
    VEHICLE_BREAKDOWN = "vehicle_breakdown"
    LOADING_PROBLEM = "loading_problem"
    LOCATION_ACCESS = "location_access"
    WEATHER_DELAY = "weather_delay"
    INCORRECT_MATERIAL = "incorrect_material"
    OTHER = "other"


# Statuses that halt milestone progression.
TERMINAL_TRIP_STATUSES: frozenset[TripStatus] = frozenset(
    {TripStatus.COMPLETED, TripStatus.CANCELED, TripStatus.ISSUE_REPORTED}
)
