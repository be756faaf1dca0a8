"""Trip milestone engine: sequence, next-action resolution, timing, and views."""

from buildorite.milestones.categorize import (
    ScheduleStatus,
    TripBucket,
    TripPlan,
    categorize_trip,
    partition_trips,
    plan_trips,
    schedule_status,
    split_by_horizon,
    summarize_schedule,
)
from buildorite.milestones.engine import (
    TRIP_COMPLETED_ACTION,
    ActionKind,
    LatestMilestone,
    NextAction,
    StatusBanner,
    TimelineEntry,
    build_milestone_timeline,
    derive_next_action,
    get_latest_milestone,
    progress_ratio,
    status_banner,
)
from buildorite.milestones.ledger import TripLedger
from buildorite.milestones.sequence import CANONICAL_ORDER, VERIFIER_GATES
from buildorite.milestones.timing import (
    TimeRemaining,
    duration_between,
    elapsed_since,
    remaining_or_overdue,
    trip_duration,
)

__all__ = [
    "CANONICAL_ORDER",
    "TRIP_COMPLETED_ACTION",
    "VERIFIER_GATES",
    "ActionKind",
    "LatestMilestone",
    "NextAction",
    "ScheduleStatus",
    "StatusBanner",
    "TimeRemaining",
    "TimelineEntry",
    "TripBucket",
    "TripLedger",
    "TripPlan",
    "build_milestone_timeline",
    "categorize_trip",
    "derive_next_action",
    "duration_between",
    "elapsed_since",
    "get_latest_milestone",
    "partition_trips",
    "plan_trips",
    "progress_ratio",
    "remaining_or_overdue",
    "schedule_status",
    "split_by_horizon",
    "status_banner",
    "summarize_schedule",
    "trip_duration",
]
