"""TripLedger: authoritative, append-only milestone writes for one trip.

The ledger enforces the write contract the engine assumes of the trip
service. Drivers advance the six driver milestones in strict order and the
designated verifier confirms each gate. Issues and cancellations freeze
progression; nothing is ever reversed. Tests use it as the trip service.

Usage::

    ledger = TripLedger(Trip(id="t1"))
    ledger.advance_milestone(MilestoneStatus.TRIP_STARTED, Role.DRIVER)
    ledger.advance_milestone(MilestoneStatus.ARRIVED_AT_PICKUP, Role.DRIVER)
    ledger.advance_milestone(MilestoneStatus.LOADING_COMPLETE, Role.DRIVER)
    ledger.verify_milestone(MilestoneStatus.PICKUP_VERIFIED, Role.MINE_OWNER)
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

import structlog

from buildorite.domain.errors import (
    OutOfOrderMilestoneError,
    RoleMismatchError,
    TerminalTripError,
)
from buildorite.domain.models import MilestoneEvent, Trip, TripIssue
from buildorite.domain.types import (
    TERMINAL_TRIP_STATUSES,
    IssueReason,
    MilestoneStatus,
    Role,
    TripStatus,
)
from buildorite.milestones.engine import get_latest_milestone
from buildorite.milestones.sequence import (
    DRIVER_MILESTONES,
    PREREQUISITES,
    VERIFIER_GATES,
    check_history_order,
)

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class TripLedger:
    """Validates and applies milestone writes to a single trip.

    Every successful write replaces :attr:`trip` with a new immutable
    :class:`Trip`; refused writes leave it untouched.

    Args:
        trip: The starting trip. Its history must satisfy the ordering
            invariant.
        clock: Source of server timestamps; defaults to the current UTC time.

    Raises:
        ValueError: If the starting history is out of order or repeats.
    """

    def __init__(self, trip: Trip, clock: Callable[[], datetime] | None = None) -> None:
        check_history_order(trip.milestone_statuses)
        self._trip = trip
        self._clock = clock or _utcnow

    @property
    def trip(self) -> Trip:
        """Return the current authoritative trip."""
        return self._trip

    @property
    def current(self) -> MilestoneStatus:
        """Return the latest milestone, ``trip_assigned`` for an empty history."""
        return get_latest_milestone(self._trip).status

    @property
    def is_terminal(self) -> bool:
        """Return True once the trip is completed, canceled, or has an issue."""
        return self._trip.status in TERMINAL_TRIP_STATUSES

    def _refuse_if_terminal(self, action: str) -> None:
        if self.is_terminal:
            raise TerminalTripError(self._trip.id, action, self._trip.status)

    def _check_order(self, status: MilestoneStatus) -> None:
        if PREREQUISITES.get(status) != self.current:
            raise OutOfOrderMilestoneError(self._trip.id, status, self.current)

    def _append(
        self,
        status: MilestoneStatus,
        location: list[float] | None = None,
        trip_status: TripStatus | None = None,
    ) -> Trip:
        event = MilestoneEvent(status=status, timestamp=self._clock(), location=location)
        update: dict[str, object] = {
            "milestone_history": [*self._trip.milestone_history, event],
        }
        if trip_status is not None:
            update["status"] = trip_status
        self._trip = self._trip.model_copy(update=update)
        return self._trip

    def advance_milestone(
        self,
        status: MilestoneStatus,
        role: Role,
        location: list[float] | None = None,
    ) -> Trip:
        """Append a driver-controlled milestone.

        Args:
            status: The milestone to record.
            role: The acting role; must be the driver.
            location: Optional ``[lng, lat]`` reported with the transition.

        Returns:
            The updated trip.

        Raises:
            TerminalTripError: If the trip no longer accepts writes.
            RoleMismatchError: If *role* is not the driver or *status* is not
                a driver milestone.
            OutOfOrderMilestoneError: If *status* does not directly follow the
                current milestone, including when it is already recorded.
        """
        self._refuse_if_terminal(status)
        if role != Role.DRIVER or status not in DRIVER_MILESTONES:
            logger.warning(
                "milestone_role_mismatch", trip_id=self._trip.id, milestone=status, role=role
            )
            raise RoleMismatchError(self._trip.id, status, role)
        self._check_order(status)

        trip = self._append(status, location=location)
        logger.info("milestone_advanced", trip_id=trip.id, milestone=status)
        return trip

    def verify_milestone(self, status: MilestoneStatus, role: Role) -> Trip:
        """Confirm a verifier-gated milestone.

        Confirming ``delivery_verified`` completes the trip.

        Raises:
            TerminalTripError: If the trip no longer accepts writes.
            RoleMismatchError: If *status* is not a gate or *role* is not its
                verifier.
            OutOfOrderMilestoneError: If the gate's prerequisite is not the
                current milestone.
        """
        self._refuse_if_terminal(status)
        if VERIFIER_GATES.get(status) != role:
            logger.warning(
                "milestone_role_mismatch", trip_id=self._trip.id, milestone=status, role=role
            )
            raise RoleMismatchError(self._trip.id, status, role)
        self._check_order(status)

        completes = status == MilestoneStatus.DELIVERY_VERIFIED
        trip = self._append(status, trip_status=TripStatus.COMPLETED if completes else None)
        logger.info("milestone_verified", trip_id=trip.id, milestone=status, role=role)
        return trip

    def report_issue(self, reason: IssueReason, notes: str, role: Role = Role.DRIVER) -> Trip:
        """Freeze the trip with a driver-reported issue.

        Raises:
            TerminalTripError: If the trip no longer accepts writes.
            RoleMismatchError: If *role* is not the driver.
        """
        self._refuse_if_terminal("report_issue")
        if role != Role.DRIVER:
            raise RoleMismatchError(self._trip.id, "report_issue", role)

        self._trip = self._trip.model_copy(
            update={
                "status": TripStatus.ISSUE_REPORTED,
                "issue": TripIssue(reason=reason, notes=notes),
            }
        )
        logger.info("trip_issue_reported", trip_id=self._trip.id, reason=reason)
        return self._trip

    def cancel(self, reason: str) -> Trip:
        """Cancel a trip that has not finished.

        Raises:
            TerminalTripError: If the trip no longer accepts writes.
        """
        self._refuse_if_terminal("cancel")
        self._trip = self._trip.model_copy(
            update={"status": TripStatus.CANCELED, "cancel_reason": reason}
        )
        logger.info("trip_canceled", trip_id=self._trip.id)
        return self._trip
