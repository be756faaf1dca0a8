"""Buildorite trip milestone engine and trip-service client."""
