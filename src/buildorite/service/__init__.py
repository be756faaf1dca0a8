"""Trip service client and engine-gated write actions."""

from buildorite.service.actions import TripActions
from buildorite.service.client import TripServiceClient

__all__ = [
    "TripActions",
    "TripServiceClient",
]
