"""Milestone engine: current milestone, next action, timeline, and banner.

Every function here is pure. Each takes an immutable :class:`Trip` (and a
viewing :class:`Role` where relevant) and derives the trip's state from its
milestone history. None of them raise for a trip that parsed: anomalies such
as an empty history degrade to the ``trip_assigned`` sentinel so callers can
always render something.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from buildorite.domain.models import Trip
from buildorite.domain.types import MilestoneStatus, Role, TripStatus
from buildorite.milestones.sequence import (
    ADVANCE_LABELS,
    CANONICAL_ORDER,
    PREREQUISITES,
    SHORT_LABELS,
    TIMELINE_LABELS,
    VERIFIER_GATES,
    VERIFY_LABELS,
    WAITING_LABELS,
)

NOT_AVAILABLE = "Not Available"


class ActionKind(StrEnum):
    """What a :class:`NextAction` asks the viewer to do."""

    ADVANCE = "advance"
    VERIFY = "verify"
    WAITING = "waiting"
    COMPLETED = "completed"


class NextAction(BaseModel):
    """The single next step offered to a role.

    ``actionable`` is ``True`` only for ``advance`` and ``verify``; the
    ``waiting`` and ``completed`` kinds are disabled sentinels.
    """

    model_config = ConfigDict(frozen=True)

    milestone: MilestoneStatus | None
    label: str
    kind: ActionKind

    @property
    def actionable(self) -> bool:
        return self.kind in (ActionKind.ADVANCE, ActionKind.VERIFY)


TRIP_COMPLETED_ACTION = NextAction(
    milestone=None, label="Trip Completed", kind=ActionKind.COMPLETED
)


class LatestMilestone(BaseModel):
    """The current milestone of a trip, or the sentinel for an empty history."""

    model_config = ConfigDict(frozen=True)

    status: MilestoneStatus
    label: str
    timestamp: datetime | None = None


class TimelineEntry(BaseModel):
    """One row of the fixed nine-row milestone timeline."""

    model_config = ConfigDict(frozen=True)

    status: MilestoneStatus
    label: str
    is_completed: bool
    is_current: bool
    timestamp: datetime | None = None


class BannerTone(StrEnum):
    INFO = "info"
    PROGRESS = "progress"
    ATTENTION = "attention"
    SUCCESS = "success"
    DANGER = "danger"


class StatusBanner(BaseModel):
    model_config = ConfigDict(frozen=True)

    heading: str
    subheading: str
    tone: BannerTone


_MILESTONE_BANNERS: dict[MilestoneStatus, StatusBanner] = {
    MilestoneStatus.TRIP_ASSIGNED: StatusBanner(
        heading="Trip Assigned",
        subheading="The trip is scheduled and will begin soon.",
        tone=BannerTone.INFO,
    ),
    MilestoneStatus.TRIP_STARTED: StatusBanner(
        heading="Trip Started",
        subheading="Driver is on the way to the pickup location.",
        tone=BannerTone.PROGRESS,
    ),
    MilestoneStatus.ARRIVED_AT_PICKUP: StatusBanner(
        heading="Arrived at Mine",
        subheading="Driver is ready for material loading.",
        tone=BannerTone.PROGRESS,
    ),
    MilestoneStatus.LOADING_COMPLETE: StatusBanner(
        heading="Loading Complete",
        subheading="Awaiting pickup verification.",
        tone=BannerTone.ATTENTION,
    ),
    MilestoneStatus.PICKUP_VERIFIED: StatusBanner(
        heading="Pickup Verified",
        subheading="The shipment is ready for departure.",
        tone=BannerTone.SUCCESS,
    ),
    MilestoneStatus.EN_ROUTE_TO_DELIVERY: StatusBanner(
        heading="Shipment En Route",
        subheading="On the way to the delivery location.",
        tone=BannerTone.PROGRESS,
    ),
    MilestoneStatus.ARRIVED_AT_DELIVERY: StatusBanner(
        heading="Arrived at Destination",
        subheading="Driver has reached the delivery point.",
        tone=BannerTone.PROGRESS,
    ),
    MilestoneStatus.DELIVERY_COMPLETE: StatusBanner(
        heading="Delivery Complete",
        subheading="Unloading is finished. Awaiting buyer's verification.",
        tone=BannerTone.ATTENTION,
    ),
    MilestoneStatus.DELIVERY_VERIFIED: StatusBanner(
        heading="Trip Completed",
        subheading="The delivery has been successfully verified.",
        tone=BannerTone.SUCCESS,
    ),
}


def _reached(trip: Trip) -> set[MilestoneStatus]:
    """Return the milestones present in history, with the implicit assignment."""
    return {MilestoneStatus.TRIP_ASSIGNED, *trip.milestone_statuses}


def get_latest_milestone(trip: Trip) -> LatestMilestone:
    """Return the last history entry, or the ``trip_assigned`` sentinel.

    Args:
        trip: The trip to inspect.

    Returns:
        The current milestone with its short label and timestamp. An empty
        history yields status ``trip_assigned`` labelled ``"Not Available"``.
    """
    if not trip.milestone_history:
        return LatestMilestone(status=MilestoneStatus.TRIP_ASSIGNED, label=NOT_AVAILABLE)
    last = trip.milestone_history[-1]
    return LatestMilestone(
        status=last.status,
        label=SHORT_LABELS[last.status],
        timestamp=last.timestamp,
    )


def _gate_action(gate: MilestoneStatus, role: Role) -> NextAction | None:
    if role == VERIFIER_GATES[gate]:
        return NextAction(milestone=gate, label=VERIFY_LABELS[gate], kind=ActionKind.VERIFY)
    if role == Role.DRIVER:
        return NextAction(milestone=gate, label=WAITING_LABELS[gate], kind=ActionKind.WAITING)
    return None


def derive_next_action(trip: Trip, role: Role) -> NextAction | None:
    """Resolve the single next step *role* may take on *trip*.

    Resolution order:

    1. A ``completed`` trip yields the disabled "Trip Completed" sentinel for
       every role; ``canceled`` and ``issue_reported`` trips yield ``None``.
    2. A pending verifier gate (prerequisite reached, gate not) wins over any
       other candidate: its verifier gets an actionable ``verify``, the driver
       gets a disabled ``waiting`` sentinel, anyone else gets ``None``.
    3. Otherwise the first unreached milestone whose prerequisite is reached
       is offered to the driver as an ``advance``; other roles get ``None``.

    Milestones already in history are never returned.

    Args:
        trip: The trip to evaluate.
        role: The viewing role.

    Returns:
        The next action, or ``None`` when the role has nothing to do or see.
    """
    if trip.status == TripStatus.COMPLETED:
        return TRIP_COMPLETED_ACTION
    if trip.status != TripStatus.ACTIVE:
        return None

    reached = _reached(trip)

    for gate in VERIFIER_GATES:
        if PREREQUISITES[gate] in reached and gate not in reached:
            return _gate_action(gate, role)

    for milestone in CANONICAL_ORDER[1:]:
        if milestone in reached or PREREQUISITES[milestone] not in reached:
            continue
        if role != Role.DRIVER:
            return None
        return NextAction(
            milestone=milestone,
            label=ADVANCE_LABELS[milestone],
            kind=ActionKind.ADVANCE,
        )
    return None


def build_milestone_timeline(trip: Trip) -> list[TimelineEntry]:
    """Build the fixed nine-row timeline in canonical order.

    A row is completed when its milestone appears in history and current when
    it equals the latest milestone (the sentinel for an empty history).
    ``trip_assigned`` also counts as completed, without a timestamp, once any
    later milestone is recorded. Timestamps come from the first matching
    history entry.
    """
    current = get_latest_milestone(trip).status
    implied_assignment = bool(trip.milestone_history)
    entries: list[TimelineEntry] = []
    for milestone in CANONICAL_ORDER:
        event = trip.event_for(milestone)
        entries.append(
            TimelineEntry(
                status=milestone,
                label=TIMELINE_LABELS[milestone],
                is_completed=event is not None
                or (milestone == MilestoneStatus.TRIP_ASSIGNED and implied_assignment),
                is_current=milestone == current,
                timestamp=event.timestamp if event else None,
            )
        )
    return entries


def progress_ratio(trip: Trip) -> float:
    """Return completed timeline rows divided by nine."""
    timeline = build_milestone_timeline(trip)
    completed = sum(1 for entry in timeline if entry.is_completed)
    return completed / len(CANONICAL_ORDER)


def status_banner(trip: Trip) -> StatusBanner:
    """Return the banner describing the trip's present state.

    Issue and cancel banners take precedence over the milestone banner.
    """
    if trip.status == TripStatus.ISSUE_REPORTED:
        if trip.issue is None:
            return StatusBanner(
                heading="Issue Reported",
                subheading="The driver reported an issue with this trip.",
                tone=BannerTone.DANGER,
            )
        reason = trip.issue.label
        subheading = f"{reason}: {trip.issue.notes}" if trip.issue.notes else reason
        return StatusBanner(heading="Issue Reported", subheading=subheading, tone=BannerTone.DANGER)
    if trip.status == TripStatus.CANCELED:
        return StatusBanner(
            heading="Trip Canceled",
            subheading=trip.cancel_reason or "This trip was canceled.",
            tone=BannerTone.DANGER,
        )
    return _MILESTONE_BANNERS[get_latest_milestone(trip).status]
