"""Engine-gated trip writes with re-fetch on settlement.

``TripActions`` never predicts authoritative state locally. Before a write
it asks the milestone engine whether the role has an actionable step, so
terminal trips and waiting gates are refused without a network call. After
the write settles, success or failure, it re-fetches the trip and hands
back the server's view. HTTP failures never escape untranslated: reads
before a write raise ``TripFetchFailedError``, and a failed re-fetch after
an applied write falls back to the write's response.
"""

from __future__ import annotations

import httpx
import structlog

from buildorite.domain.errors import (
    NoActionAvailableError,
    RoleMismatchError,
    TerminalTripError,
    TripFetchFailedError,
    TripUpdateFailedError,
)
from buildorite.domain.models import Trip
from buildorite.domain.types import TERMINAL_TRIP_STATUSES, IssueReason, Role
from buildorite.milestones.engine import ActionKind, derive_next_action
from buildorite.service.client import TripServiceClient

logger = structlog.get_logger()


class TripActions:
    """Performs role-gated writes against the trip service.

    Args:
        client: The trip service client used for reads and writes.
    """

    def __init__(self, client: TripServiceClient) -> None:
        self._client = client

    async def _fetch(self, trip_id: str) -> Trip:
        try:
            return await self._client.get_trip(trip_id)
        except httpx.HTTPError as exc:
            logger.warning("trip_fetch_failed", trip_id=trip_id, error=str(exc))
            raise TripFetchFailedError(trip_id) from exc

    async def _settled(self, trip_id: str, written: Trip) -> Trip:
        """Re-fetch after an applied write, falling back to the write's response."""
        try:
            return await self._client.get_trip(trip_id)
        except httpx.HTTPError as exc:
            logger.warning("trip_refresh_failed", trip_id=trip_id, error=str(exc))
            return written

    async def _refresh_after_failure(self, trip_id: str) -> Trip | None:
        try:
            return await self._client.get_trip(trip_id)
        except httpx.HTTPError as exc:
            logger.warning("trip_refresh_failed", trip_id=trip_id, error=str(exc))
            return None

    async def perform_next_action(
        self,
        trip_id: str,
        role: Role,
        location: list[float] | None = None,
    ) -> Trip:
        """Fetch the trip, resolve the role's next step, and apply it.

        Args:
            trip_id: The trip to act on.
            role: The acting role.
            location: Optional ``[lng, lat]`` sent with a driver advance.

        Returns:
            The trip as re-fetched after the write, or the write's own
            response when that re-fetch fails.

        Raises:
            TripFetchFailedError: If the trip cannot be read before acting.
            NoActionAvailableError: If the engine offers the role nothing
                actionable (terminal trip, waiting gate, not their turn).
            TripUpdateFailedError: If the write fails; carries the
                re-fetched trip.
        """
        trip = await self._fetch(trip_id)
        action = derive_next_action(trip, role)
        if action is None or not action.actionable or action.milestone is None:
            logger.info("no_action_available", trip_id=trip_id, role=role)
            raise NoActionAvailableError(trip_id, role)

        log = logger.bind(trip_id=trip_id, role=role, milestone=action.milestone)
        try:
            if action.kind == ActionKind.VERIFY:
                written = await self._client.verify_milestone(trip_id, action.milestone)
            else:
                written = await self._client.update_milestone(
                    trip_id, action.milestone, location
                )
        except httpx.HTTPError as exc:
            log.warning("trip_update_failed", error=str(exc))
            refreshed = await self._refresh_after_failure(trip_id)
            raise TripUpdateFailedError(trip_id, refreshed) from exc

        log.info("trip_update_applied")
        return await self._settled(trip_id, written)

    async def report_issue(
        self,
        trip_id: str,
        reason: IssueReason,
        notes: str,
        role: Role = Role.DRIVER,
    ) -> Trip:
        """Report an issue on a trip that is still in progress.

        Raises:
            RoleMismatchError: If *role* is not the driver.
            TripFetchFailedError: If the trip cannot be read before acting.
            TerminalTripError: If the trip is already completed, canceled, or
                has an issue; no write is attempted.
            TripUpdateFailedError: If the write fails.
        """
        if role != Role.DRIVER:
            raise RoleMismatchError(trip_id, "report_issue", role)

        trip = await self._fetch(trip_id)
        if trip.status in TERMINAL_TRIP_STATUSES:
            raise TerminalTripError(trip_id, "report_issue", trip.status)

        try:
            written = await self._client.report_issue(trip_id, reason, notes)
        except httpx.HTTPError as exc:
            logger.warning("trip_issue_report_failed", trip_id=trip_id, error=str(exc))
            refreshed = await self._refresh_after_failure(trip_id)
            raise TripUpdateFailedError(trip_id, refreshed) from exc

        logger.info("trip_issue_reported", trip_id=trip_id, reason=reason)
        return await self._settled(trip_id, written)
