"""Async HTTP client for the remote trip service.

Wraps ``httpx.AsyncClient`` to provide typed access to the trip endpoints.
Responses arrive in a ``{"data": ...}`` envelope and are parsed into
:class:`Trip` models. Reads retry on transient failures; writes do not.
"""

from __future__ import annotations

from types import TracebackType
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from buildorite.config import Settings
from buildorite.domain.models import Trip
from buildorite.domain.types import IssueReason, MilestoneStatus
from buildorite.resilience.retry import resilient_api_call

logger = structlog.get_logger()


def _unwrap(response: httpx.Response) -> Any:
    """Raise for non-2xx status and return the envelope's ``data`` member."""
    response.raise_for_status()
    body = response.json()
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body


class TripServiceClient:
    """High-level client for reading and updating trips.

    Args:
        base_url: Trip API root, e.g. ``https://host/api/v1``.
        token: Bearer token sent with every request, if set.
        timeout: Per-request timeout in seconds.
        transport: Optional transport override (``httpx.MockTransport`` in
            tests).
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> TripServiceClient:
        """Build a client from application settings."""
        token = settings.trip_api_token.get_secret_value() or None
        return cls(
            base_url=settings.trip_api_base_url,
            token=token,
            timeout=settings.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> TripServiceClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._http.aclose()

    @resilient_api_call("trip_service")
    async def list_trips(self) -> list[Trip]:
        """Fetch every trip visible to the authenticated user.

        The server picks trips by the caller's role. Items that do not parse
        as a :class:`Trip` are logged and skipped.
        """
        data = _unwrap(await self._http.get("/trips"))
        trips: list[Trip] = []
        for item in data or []:
            try:
                trips.append(Trip.model_validate(item))
            except ValidationError as exc:
                trip_id = item.get("_id") if isinstance(item, dict) else None
                logger.warning(
                    "trip_skipped_unparseable", trip_id=trip_id, errors=exc.error_count()
                )
        return trips

    @resilient_api_call("trip_service")
    async def get_trip(self, trip_id: str) -> Trip:
        """Fetch one trip with its populated references."""
        data = _unwrap(await self._http.get(f"/trips/{trip_id}"))
        return Trip.model_validate(data)

    async def update_milestone(
        self,
        trip_id: str,
        status: MilestoneStatus,
        location: list[float] | None = None,
    ) -> Trip:
        """Ask the service to append a driver milestone.

        Raises:
            httpx.HTTPStatusError: If the service rejects the transition.
        """
        payload: dict[str, Any] = {"status": str(status)}
        if location is not None:
            payload["location"] = location
        logger.debug("milestone_update_requested", trip_id=trip_id, milestone=status)
        data = _unwrap(await self._http.patch(f"/trips/{trip_id}/milestone", json=payload))
        return Trip.model_validate(data)

    async def verify_milestone(self, trip_id: str, status: MilestoneStatus) -> Trip:
        """Ask the service to confirm a verifier-gated milestone."""
        logger.debug("milestone_verify_requested", trip_id=trip_id, milestone=status)
        data = _unwrap(
            await self._http.patch(f"/trips/{trip_id}/verify", json={"status": str(status)})
        )
        return Trip.model_validate(data)

    async def report_issue(self, trip_id: str, reason: IssueReason, notes: str) -> Trip:
        """Report an issue, which freezes milestone progression."""
        data = _unwrap(
            await self._http.patch(
                f"/trips/{trip_id}/report-issue",
                json={"reason": str(reason), "notes": notes},
            )
        )
        return Trip.model_validate(data)

    async def update_live_location(self, trip_id: str, coordinates: list[float]) -> Trip:
        """Push the driver's current ``[lng, lat]`` position."""
        data = _unwrap(
            await self._http.patch(
                f"/trips/{trip_id}/location",
                json={"coordinates": coordinates},
            )
        )
        return Trip.model_validate(data)
