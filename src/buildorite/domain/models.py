"""Pydantic v2 models for trips and their milestone history."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from buildorite.domain.types import IssueReason, MilestoneStatus, TripStatus

_KNOWN_REASONS = frozenset(reason.value for reason in IssueReason)


class MilestoneEvent(BaseModel):
    """One immutable record of a milestone transition.

    The timestamp is assigned by the server. ``location`` holds the
    ``[longitude, latitude]`` pair the driver reported with the transition,
    when one was sent.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    status: MilestoneStatus
    timestamp: datetime
    location: list[float] | None = None

    @field_validator("location")
    @classmethod
    def location_must_be_a_pair(cls, v: list[float] | None) -> list[float] | None:
        """Ensure coordinates are a ``[lng, lat]`` pair."""
        if v is not None and len(v) != 2:
            raise ValueError("location must be a [longitude, latitude] pair")
        return v


class TripIssue(BaseModel):
    """Issue reported by the driver, present when the trip is ``issue_reported``.

    A reason outside :class:`IssueReason` parses as ``other`` and the server's
    text is kept in ``reported_reason``.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    reason: IssueReason
    notes: str = ""
    reported_reason: str | None = None

    @model_validator(mode="before")
    @classmethod
    def keep_unknown_reason(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        raw = data.get("reason")
        if raw in _KNOWN_REASONS:
            return data
        reported = str(raw).strip() if raw is not None else ""
        return {**data, "reason": IssueReason.OTHER, "reported_reason": reported or None}

    @property
    def label(self) -> str:
        """Return the reason as display text, e.g. ``"Vehicle breakdown"``."""
        text = self.reported_reason or self.reason.value
        return text.replace("_", " ").capitalize()


class Trip(BaseModel):
    """One shipment assignment as returned by the trip service.

    Parsing does not check history ordering; the milestone engine degrades
    to sentinels on anomalies instead of refusing the trip.
    Use :func:`buildorite.milestones.sequence.check_history_order` to
    enforce the ordering invariant explicitly.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: str = Field(alias="_id")
    status: TripStatus = TripStatus.ACTIVE
    milestone_history: list[MilestoneEvent] = Field(default_factory=list)
    cancel_reason: str | None = None
    issue: TripIssue | None = None

    # Read-only references: a populated document or a bare id string.
    request: dict[str, Any] | str | None = Field(default=None, alias="request_id")
    driver: dict[str, Any] | str | None = Field(default=None, alias="driver_id")
    truck: dict[str, Any] | str | None = Field(default=None, alias="truck_id")
    destination: dict[str, Any] | None = None

    @field_validator("id", mode="before")
    @classmethod
    def id_must_not_be_empty(cls, v: object) -> object:
        """Ensure the trip identifier is present."""
        if isinstance(v, str) and not v.strip():
            raise ValueError("id must not be empty")
        return v

    @property
    def milestone_statuses(self) -> list[MilestoneStatus]:
        """Return the history statuses in array order."""
        return [event.status for event in self.milestone_history]

    def event_for(self, status: MilestoneStatus) -> MilestoneEvent | None:
        """Return the first history entry with *status*, if any."""
        for event in self.milestone_history:
            if event.status == status:
                return event
        return None

    @property
    def schedule_date(self) -> datetime | None:
        """Return the agreed schedule date from the populated request, if any."""
        if not isinstance(self.request, dict):
            return None
        agreement = self.request.get("finalized_agreement") or {}
        raw = (agreement.get("schedule") or {}).get("date")
        if raw is None:
            return None
        if isinstance(raw, datetime):
            return raw
        try:
            return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
        except ValueError:
            return None
