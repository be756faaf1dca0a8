"""Command-line view of trip milestone state.

Fetches trips from the trip service (or reads a trip JSON file) and prints
what each role would see: the status banner, next action, timeline, and
progress. Output formats: table (default) or JSON.

Usage::

    buildorite-trips show 6650c1f0 --role driver
    buildorite-trips list --format json
    buildorite-trips inspect trip.json --role truck_owner
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

import structlog

from buildorite.config import Settings, get_settings, validate_credentials
from buildorite.domain.models import Trip
from buildorite.domain.types import Role
from buildorite.milestones.categorize import (
    categorize_trip,
    plan_trips,
    summarize_schedule,
)
from buildorite.milestones.engine import (
    build_milestone_timeline,
    derive_next_action,
    get_latest_milestone,
    progress_ratio,
    status_banner,
)
from buildorite.milestones.timing import remaining_or_overdue, trip_duration
from buildorite.service.client import TripServiceClient

logger = structlog.get_logger()


def configure_logging(production: bool = False) -> None:
    """Send structlog events to stderr; stdout carries only command output.

    Production renders JSON lines at INFO with formatted tracebacks; otherwise
    the console renderer is used at DEBUG. Every event carries
    ``service="buildorite-trips"``.
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if production:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.INFO if production else logging.DEBUG
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.bind_contextvars(service="buildorite-trips")


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser with ``show``, ``list``, and ``inspect``.

    Returns:
        A configured :class:`argparse.ArgumentParser`.
    """
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--format",
        type=str,
        choices=["table", "json"],
        default="table",
        dest="output_format",
        help="Output format (default: table)",
    )

    parser = argparse.ArgumentParser(
        prog="buildorite-trips",
        description="Inspect trip milestone state",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    role_choices = [role.value for role in Role]

    show = subparsers.add_parser(
        "show", parents=[common], help="Show one trip from the trip service"
    )
    show.add_argument("trip_id", type=str)
    show.add_argument("--role", type=str, choices=role_choices, default=Role.DRIVER.value)

    listing = subparsers.add_parser(
        "list", parents=[common], help="List trips with their bucket and milestone"
    )
    listing.add_argument("--role", type=str, choices=role_choices, default=Role.DRIVER.value)

    inspect = subparsers.add_parser(
        "inspect", parents=[common], help="Evaluate a trip JSON file offline"
    )
    inspect.add_argument("path", type=Path)
    inspect.add_argument("--role", type=str, choices=role_choices, default=Role.DRIVER.value)

    return parser


def describe_trip(trip: Trip, role: Role, now: datetime | None = None) -> dict[str, Any]:
    """Collect every engine derivation for *trip* as seen by *role*."""
    action = derive_next_action(trip, role)
    banner = status_banner(trip)
    latest = get_latest_milestone(trip)
    schedule = trip.schedule_date

    return {
        "id": trip.id,
        "status": str(trip.status),
        "bucket": str(categorize_trip(trip)),
        "latest_milestone": {"status": str(latest.status), "label": latest.label},
        "banner": {"heading": banner.heading, "subheading": banner.subheading},
        "next_action": (
            None
            if action is None
            else {
                "milestone": str(action.milestone) if action.milestone else None,
                "label": action.label,
                "kind": str(action.kind),
                "actionable": action.actionable,
            }
        ),
        "timeline": [
            {
                "status": str(entry.status),
                "label": entry.label,
                "completed": entry.is_completed,
                "current": entry.is_current,
                "timestamp": entry.timestamp.isoformat() if entry.timestamp else None,
            }
            for entry in build_milestone_timeline(trip)
        ],
        "progress": round(progress_ratio(trip), 4),
        "schedule": (
            None if schedule is None else remaining_or_overdue(schedule, now).model_dump()
        ),
        "duration": trip_duration(trip),
    }


def format_trip_table(summary: dict[str, Any]) -> str:
    """Render a :func:`describe_trip` result for a terminal."""
    lines = [
        f"Trip {summary['id']}  [{summary['status']} / {summary['bucket']}]",
        f"{summary['banner']['heading']}: {summary['banner']['subheading']}",
    ]

    action = summary["next_action"]
    if action is None:
        lines.append("Next step: none")
    elif action["actionable"]:
        lines.append(f"Next step: {action['label']}")
    else:
        lines.append(f"Next step: {action['label']} (disabled)")

    if summary["schedule"] is not None:
        lines.append(f"Schedule: {summary['schedule']['text']}")
    if summary["duration"] is not None:
        lines.append(f"Duration: {summary['duration']}")

    lines.append(f"Progress: {summary['progress']:.0%}")
    lines.append("")
    for entry in summary["timeline"]:
        marker = ">" if entry["current"] else ("x" if entry["completed"] else " ")
        stamp = entry["timestamp"] or ""
        lines.append(f"  [{marker}] {entry['label'].ljust(32)} {stamp}")
    return "\n".join(lines)


def format_list_table(
    trips: Sequence[Trip],
    now: datetime | None = None,
    horizon_days: int = 7,
) -> str:
    """Render trips as one row each plus the schedule stats line.

    The earliest open trip is named on a ``Current trip`` line; other open
    trips starting within *horizon_days* follow on an ``Up next`` line.
    """
    if not trips:
        return "No trips found."

    headers = ["Trip", "Status", "Bucket", "Milestone"]
    widths = [26, 16, 10, 22]
    header_line = "  ".join(h.ljust(w) for h, w in zip(headers, widths, strict=True))
    lines = [header_line, "-" * len(header_line)]

    for trip in trips:
        cells = [
            trip.id,
            str(trip.status),
            str(categorize_trip(trip)),
            get_latest_milestone(trip).label,
        ]
        lines.append("  ".join(c.ljust(w) for c, w in zip(cells, widths, strict=True)))

    stats = summarize_schedule(trips)
    lines.append("")
    lines.append("  ".join(f"{status}={count}" for status, count in stats.items()))

    plan = plan_trips(trips, now=now, days=horizon_days)
    if plan.current is not None:
        lines.append(f"Current trip: {plan.current.id}")
    if plan.up_next:
        lines.append(f"Up next ({horizon_days}d): " + ", ".join(t.id for t in plan.up_next))
    return "\n".join(lines)


def _print_summary(summary: dict[str, Any], output_format: str) -> None:
    print(json.dumps(summary, indent=2) if output_format == "json" else format_trip_table(summary))


async def _fetch_trip(settings: Settings, trip_id: str) -> Trip:
    async with TripServiceClient.from_settings(settings) as client:
        return await client.get_trip(trip_id)


async def _fetch_trips(settings: Settings) -> list[Trip]:
    async with TripServiceClient.from_settings(settings) as client:
        return await client.list_trips()


def main(argv: Sequence[str] | None = None) -> None:
    """Parse arguments, evaluate the requested trips, and print results."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.production)

    if args.command == "inspect":
        trip = Trip.model_validate_json(args.path.read_text(encoding="utf-8"))
        summary = describe_trip(trip, Role(args.role))
        _print_summary(summary, args.output_format)
        return

    validate_credentials(settings)

    if args.command == "show":
        trip = asyncio.run(_fetch_trip(settings, args.trip_id))
        summary = describe_trip(trip, Role(args.role))
        _print_summary(summary, args.output_format)
    else:
        trips = asyncio.run(_fetch_trips(settings))
        if args.output_format == "json":
            print(json.dumps([describe_trip(t, Role(args.role)) for t in trips], indent=2))
        else:
            print(format_list_table(trips, horizon_days=settings.upcoming_horizon_days))


if __name__ == "__main__":
    main()
