"""Resilience infrastructure for trip-service reads."""

from buildorite.resilience.retry import is_transient, resilient_api_call

__all__ = [
    "is_transient",
    "resilient_api_call",
]
