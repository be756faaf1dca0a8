"""Canonical milestone order, prerequisites, verifier gates, and labels."""

from __future__ import annotations

from collections.abc import Sequence

from buildorite.domain.types import MilestoneStatus, Role

# Strict total order; no skipping.
CANONICAL_ORDER: tuple[MilestoneStatus, ...] = tuple(MilestoneStatus)

# Each milestone after the first requires the one immediately before it.
PREREQUISITES: dict[MilestoneStatus, MilestoneStatus] = {
    milestone: CANONICAL_ORDER[index - 1]
    for index, milestone in enumerate(CANONICAL_ORDER)
    if index > 0
}

# Gated milestones and the only role allowed to confirm each one.
VERIFIER_GATES: dict[MilestoneStatus, Role] = {
    MilestoneStatus.PICKUP_VERIFIED: Role.MINE_OWNER,
    MilestoneStatus.DELIVERY_VERIFIED: Role.TRUCK_OWNER,
}

# The six transitions the assigned driver emits.
DRIVER_MILESTONES: frozenset[MilestoneStatus] = frozenset(
    m for m in CANONICAL_ORDER[1:] if m not in VERIFIER_GATES
)

# Button labels for the driver's next step.
ADVANCE_LABELS: dict[MilestoneStatus, str] = {
    MilestoneStatus.TRIP_STARTED: "Start Trip",
    MilestoneStatus.ARRIVED_AT_PICKUP: "Arrived at Pickup",
    MilestoneStatus.LOADING_COMPLETE: "Confirm Loading",
    MilestoneStatus.EN_ROUTE_TO_DELIVERY: "Start Delivery",
    MilestoneStatus.ARRIVED_AT_DELIVERY: "Arrived at Delivery",
    MilestoneStatus.DELIVERY_COMPLETE: "Confirm Delivery",
}

VERIFY_LABELS: dict[MilestoneStatus, str] = {
    MilestoneStatus.PICKUP_VERIFIED: "Verify Pickup",
    MilestoneStatus.DELIVERY_VERIFIED: "Verify Delivery",
}

WAITING_LABELS: dict[MilestoneStatus, str] = {
    MilestoneStatus.PICKUP_VERIFIED: "Waiting for Mine Owner Verification",
    MilestoneStatus.DELIVERY_VERIFIED: "Waiting for Buyer Verification",
}

# Timeline row labels.
TIMELINE_LABELS: dict[MilestoneStatus, str] = {
    MilestoneStatus.TRIP_ASSIGNED: "Trip Assigned",
    MilestoneStatus.TRIP_STARTED: "Trip Started",
    MilestoneStatus.ARRIVED_AT_PICKUP: "Arrived at Pickup Location",
    MilestoneStatus.LOADING_COMPLETE: "Loading Complete",
    MilestoneStatus.PICKUP_VERIFIED: "Pickup Verified by Mine Owner",
    MilestoneStatus.EN_ROUTE_TO_DELIVERY: "En Route to Delivery",
    MilestoneStatus.ARRIVED_AT_DELIVERY: "Arrived at Delivery Location",
    MilestoneStatus.DELIVERY_COMPLETE: "Delivery Complete",
    MilestoneStatus.DELIVERY_VERIFIED: "Delivery Verified by Buyer",
}

# Short labels for list cards.
SHORT_LABELS: dict[MilestoneStatus, str] = {
    MilestoneStatus.TRIP_ASSIGNED: "Awaiting Start",
    MilestoneStatus.TRIP_STARTED: "En Route to Mine",
    MilestoneStatus.ARRIVED_AT_PICKUP: "At Mine",
    MilestoneStatus.LOADING_COMPLETE: "Loading Complete",
    MilestoneStatus.PICKUP_VERIFIED: "Pickup Verified",
    MilestoneStatus.EN_ROUTE_TO_DELIVERY: "En Route to Delivery",
    MilestoneStatus.ARRIVED_AT_DELIVERY: "At Delivery",
    MilestoneStatus.DELIVERY_COMPLETE: "Delivery Complete",
    MilestoneStatus.DELIVERY_VERIFIED: "Delivery Verified",
}


def position(milestone: MilestoneStatus) -> int:
    """Return the zero-based canonical index of *milestone*."""
    return CANONICAL_ORDER.index(milestone)


def check_history_order(statuses: Sequence[MilestoneStatus]) -> None:
    """Validate that *statuses* is a duplicate-free, in-order subsequence.

    The canonical order is strict, so any valid history is a prefix of
    :data:`CANONICAL_ORDER`, optionally missing the implicit
    ``trip_assigned`` at the head.

    Args:
        statuses: Milestone statuses in history array order.

    Raises:
        ValueError: If a status repeats, appears out of order, or skips a
            canonical milestone.
    """
    seen: set[MilestoneStatus] = set()
    previous: int | None = None
    for status in statuses:
        if status in seen:
            raise ValueError(f"Duplicate milestone in history: {status}")
        seen.add(status)
        index = position(status)
        if previous is None:
            if index > 1:
                raise ValueError(f"History cannot begin at {status}")
        elif index != previous + 1:
            raise ValueError(
                f"Milestone {status} does not follow {CANONICAL_ORDER[previous]}"
            )
        previous = index
