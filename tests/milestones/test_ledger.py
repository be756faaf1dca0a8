"""Tests for the TripLedger write contract."""

from collections.abc import Callable
from datetime import UTC, datetime

import pytest

from buildorite.domain.errors import (
    InvalidTransitionError,
    OutOfOrderMilestoneError,
    RoleMismatchError,
    TerminalTripError,
)
from buildorite.domain.models import Trip
from buildorite.domain.types import IssueReason, MilestoneStatus, Role, TripStatus
from buildorite.milestones.engine import ActionKind, derive_next_action
from buildorite.milestones.ledger import TripLedger
from buildorite.milestones.sequence import CANONICAL_ORDER, DRIVER_MILESTONES

M = MilestoneStatus
MakeTrip = Callable[..., Trip]
FIXED = datetime(2026, 3, 2, 15, 30, tzinfo=UTC)


def _ledger(trip: Trip) -> TripLedger:
    return TripLedger(trip, clock=lambda: FIXED)


def _drive_to(ledger: TripLedger, target: MilestoneStatus) -> None:
    """Apply every write needed to reach *target* via the engine's next actions."""
    while ledger.current != target:
        for role in Role:
            action = derive_next_action(ledger.trip, role)
            if action is None or not action.actionable or action.milestone is None:
                continue
            if action.kind is ActionKind.VERIFY:
                ledger.verify_milestone(action.milestone, role)
            else:
                ledger.advance_milestone(action.milestone, role)
            break
        else:
            raise AssertionError(f"No role can act at {ledger.current}")


class TestConstruction:
    def test_rejects_out_of_order_history(self, make_trip: MakeTrip) -> None:
        with pytest.raises(ValueError):
            TripLedger(make_trip([M.TRIP_ASSIGNED, M.ARRIVED_AT_PICKUP]))

    def test_empty_history_starts_at_assignment(self, make_trip: MakeTrip) -> None:
        ledger = _ledger(make_trip([]))
        assert ledger.current is M.TRIP_ASSIGNED
        assert not ledger.is_terminal


class TestHappyPath:
    def test_full_trip_to_completion(self, make_trip: MakeTrip) -> None:
        ledger = _ledger(make_trip([M.TRIP_ASSIGNED]))
        _drive_to(ledger, M.DELIVERY_VERIFIED)

        trip = ledger.trip
        assert trip.milestone_statuses == list(CANONICAL_ORDER)
        assert trip.status is TripStatus.COMPLETED
        assert ledger.is_terminal
        assert trip.milestone_history[-1].timestamp == FIXED

    def test_advance_records_location(self, make_trip: MakeTrip) -> None:
        ledger = _ledger(make_trip([M.TRIP_ASSIGNED]))
        trip = ledger.advance_milestone(M.TRIP_STARTED, Role.DRIVER, location=[73.85, 18.52])
        assert trip.milestone_history[-1].location == [73.85, 18.52]

    def test_original_trip_untouched(self, make_trip: MakeTrip) -> None:
        start = make_trip([M.TRIP_ASSIGNED])
        ledger = _ledger(start)
        ledger.advance_milestone(M.TRIP_STARTED, Role.DRIVER)
        assert start.milestone_statuses == [M.TRIP_ASSIGNED]

    def test_pickup_verification_keeps_trip_active(self, make_trip: MakeTrip) -> None:
        ledger = _ledger(make_trip(CANONICAL_ORDER[:4]))
        trip = ledger.verify_milestone(M.PICKUP_VERIFIED, Role.MINE_OWNER)
        assert trip.status is TripStatus.ACTIVE


class TestOutOfOrder:
    @pytest.mark.parametrize("count", range(1, 9))
    @pytest.mark.parametrize("target", sorted(DRIVER_MILESTONES, key=CANONICAL_ORDER.index))
    def test_only_the_next_driver_milestone_is_accepted(
        self, make_trip: MakeTrip, count: int, target: MilestoneStatus
    ) -> None:
        ledger = _ledger(make_trip(CANONICAL_ORDER[:count]))
        if CANONICAL_ORDER.index(target) == count:
            ledger.advance_milestone(target, Role.DRIVER)
            assert ledger.current is target
        else:
            with pytest.raises(OutOfOrderMilestoneError):
                ledger.advance_milestone(target, Role.DRIVER)
            assert len(ledger.trip.milestone_history) == count

    def test_duplicate_is_refused(self, make_trip: MakeTrip) -> None:
        ledger = _ledger(make_trip(CANONICAL_ORDER[:2]))
        with pytest.raises(OutOfOrderMilestoneError) as exc_info:
            ledger.advance_milestone(M.TRIP_STARTED, Role.DRIVER)
        assert exc_info.value.current is M.TRIP_STARTED

    def test_gate_cannot_be_verified_early(self, make_trip: MakeTrip) -> None:
        ledger = _ledger(make_trip(CANONICAL_ORDER[:3]))
        with pytest.raises(OutOfOrderMilestoneError):
            ledger.verify_milestone(M.PICKUP_VERIFIED, Role.MINE_OWNER)

    def test_driver_cannot_skip_pickup_gate(self, make_trip: MakeTrip) -> None:
        ledger = _ledger(make_trip(CANONICAL_ORDER[:4]))
        with pytest.raises(OutOfOrderMilestoneError):
            ledger.advance_milestone(M.EN_ROUTE_TO_DELIVERY, Role.DRIVER)


class TestRoleMismatch:
    @pytest.mark.parametrize("role", [Role.TRUCK_OWNER, Role.MINE_OWNER], ids=lambda r: r.value)
    def test_only_driver_advances(self, make_trip: MakeTrip, role: Role) -> None:
        ledger = _ledger(make_trip([M.TRIP_ASSIGNED]))
        with pytest.raises(RoleMismatchError) as exc_info:
            ledger.advance_milestone(M.TRIP_STARTED, role)
        assert exc_info.value.role is role

    def test_driver_cannot_advance_a_gate(self, make_trip: MakeTrip) -> None:
        ledger = _ledger(make_trip(CANONICAL_ORDER[:4]))
        with pytest.raises(RoleMismatchError):
            ledger.advance_milestone(M.PICKUP_VERIFIED, Role.DRIVER)

    @pytest.mark.parametrize(
        ("count", "gate", "wrong_role"),
        [
            (4, M.PICKUP_VERIFIED, Role.TRUCK_OWNER),
            (4, M.PICKUP_VERIFIED, Role.DRIVER),
            (8, M.DELIVERY_VERIFIED, Role.MINE_OWNER),
            (8, M.DELIVERY_VERIFIED, Role.DRIVER),
        ],
    )
    def test_gate_needs_its_verifier(
        self, make_trip: MakeTrip, count: int, gate: MilestoneStatus, wrong_role: Role
    ) -> None:
        ledger = _ledger(make_trip(CANONICAL_ORDER[:count]))
        with pytest.raises(RoleMismatchError):
            ledger.verify_milestone(gate, wrong_role)

    def test_verify_rejects_non_gate(self, make_trip: MakeTrip) -> None:
        ledger = _ledger(make_trip([M.TRIP_ASSIGNED]))
        with pytest.raises(RoleMismatchError):
            ledger.verify_milestone(M.TRIP_STARTED, Role.TRUCK_OWNER)

    def test_only_driver_reports_issues(self, make_trip: MakeTrip) -> None:
        ledger = _ledger(make_trip([M.TRIP_ASSIGNED]))
        with pytest.raises(RoleMismatchError):
            ledger.report_issue(IssueReason.OTHER, "", role=Role.TRUCK_OWNER)


class TestTerminal:
    def test_issue_freezes_progression(self, make_trip: MakeTrip) -> None:
        ledger = _ledger(make_trip(CANONICAL_ORDER[:3]))
        trip = ledger.report_issue(IssueReason.ACCIDENT, "minor collision")

        assert trip.status is TripStatus.ISSUE_REPORTED
        assert trip.issue is not None
        assert trip.issue.notes == "minor collision"
        for role in Role:
            assert derive_next_action(trip, role) is None
        with pytest.raises(TerminalTripError):
            ledger.advance_milestone(M.LOADING_COMPLETE, Role.DRIVER)

    def test_cancel_sets_reason(self, make_trip: MakeTrip) -> None:
        ledger = _ledger(make_trip([M.TRIP_ASSIGNED]))
        trip = ledger.cancel("Buyer withdrew")
        assert trip.status is TripStatus.CANCELED
        assert trip.cancel_reason == "Buyer withdrew"

    @pytest.mark.parametrize(
        "status",
        [TripStatus.COMPLETED, TripStatus.CANCELED, TripStatus.ISSUE_REPORTED],
        ids=lambda s: s.value,
    )
    def test_every_write_refused(self, make_trip: MakeTrip, status: TripStatus) -> None:
        ledger = _ledger(make_trip(CANONICAL_ORDER[:8], status=status))
        with pytest.raises(TerminalTripError):
            ledger.verify_milestone(M.DELIVERY_VERIFIED, Role.TRUCK_OWNER)
        with pytest.raises(TerminalTripError):
            ledger.report_issue(IssueReason.OTHER, "")
        with pytest.raises(TerminalTripError):
            ledger.cancel("late")

    def test_no_reversal_after_completion(self, make_trip: MakeTrip) -> None:
        ledger = _ledger(make_trip(CANONICAL_ORDER, status=TripStatus.COMPLETED))
        with pytest.raises(InvalidTransitionError):
            ledger.verify_milestone(M.PICKUP_VERIFIED, Role.MINE_OWNER)
