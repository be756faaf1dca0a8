"""In-memory trip service backed by TripLedger, served through httpx.MockTransport."""

import json
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import httpx
import pytest

from buildorite.domain.errors import InvalidTransitionError
from buildorite.domain.models import Trip
from buildorite.domain.types import IssueReason, MilestoneStatus, Role
from buildorite.milestones.ledger import TripLedger
from buildorite.service.client import TripServiceClient

BASE_URL = "http://trips.test/api/v1"
PREFIX = "/api/v1/trips"


class FakeTripService:
    """Serves trips from ledgers and enforces the write contract server-side.

    Every request acts as ``role``. ``before_write`` runs just before a write
    is applied, to simulate another client racing ahead. Once
    ``reads_allowed`` GETs have been served, further GETs answer 403.
    """

    def __init__(self, role: Role) -> None:
        self.role = role
        self.ledgers: dict[str, TripLedger] = {}
        self.requests: list[tuple[str, str]] = []
        self.before_write: Callable[[], None] | None = None
        self.reads_allowed: int | None = None

    def add(self, trip: Trip) -> TripLedger:
        ledger = TripLedger(trip, clock=lambda: datetime(2026, 3, 2, 15, 30, tzinfo=UTC))
        self.ledgers[trip.id] = ledger
        return ledger

    @property
    def writes(self) -> list[tuple[str, str]]:
        return [r for r in self.requests if r[0] == "PATCH"]

    def _ok(self, data: Any) -> httpx.Response:
        return httpx.Response(200, json={"success": True, "data": data})

    def _dump(self, trip: Trip) -> dict[str, Any]:
        return trip.model_dump(mode="json", by_alias=True)

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append((request.method, path))

        reads = sum(1 for method, _ in self.requests if method == "GET")
        if request.method == "GET" and self.reads_allowed is not None:
            if reads > self.reads_allowed:
                return httpx.Response(403, json={"message": "Forbidden"})

        if request.method == "GET" and path == PREFIX:
            return self._ok([self._dump(ledger.trip) for ledger in self.ledgers.values()])

        parts = path.removeprefix(PREFIX + "/").split("/")
        ledger = self.ledgers.get(parts[0])
        if ledger is None:
            return httpx.Response(404, json={"message": "Trip not found"})

        if request.method == "GET" and len(parts) == 1:
            return self._ok(self._dump(ledger.trip))

        if request.method != "PATCH" or len(parts) != 2:
            return httpx.Response(405)

        body = json.loads(request.content or b"{}")
        if self.before_write is not None:
            self.before_write()
        try:
            if parts[1] == "milestone":
                trip = ledger.advance_milestone(
                    MilestoneStatus(body["status"]), self.role, body.get("location")
                )
            elif parts[1] == "verify":
                trip = ledger.verify_milestone(MilestoneStatus(body["status"]), self.role)
            elif parts[1] == "report-issue":
                trip = ledger.report_issue(IssueReason(body["reason"]), body["notes"], self.role)
            elif parts[1] == "location":
                trip = ledger.trip
            else:
                return httpx.Response(404)
        except InvalidTransitionError as exc:
            return httpx.Response(409, json={"message": str(exc)})
        return self._ok(self._dump(trip))


@pytest.fixture
def fake_service() -> Callable[[Role], FakeTripService]:
    return FakeTripService


@pytest.fixture
def client_for() -> Callable[[FakeTripService], TripServiceClient]:
    """Build a TripServiceClient wired to a FakeTripService."""

    def _build(service: FakeTripService) -> TripServiceClient:
        return TripServiceClient(
            BASE_URL, token="tok-123", transport=httpx.MockTransport(service.handler)
        )

    return _build
