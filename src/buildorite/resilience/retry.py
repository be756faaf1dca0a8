"""Retry policy for idempotent trip-service reads.

Transport errors and 5xx responses are retried with exponential backoff and
jitter. Writes are never wrapped: after a failed write the caller re-fetches
the trip instead of replaying the request.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

import httpx
import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)
from tenacity.wait import wait_base

logger = structlog.get_logger()

F = TypeVar("F", bound=Callable[..., Any])

DEFAULT_ATTEMPTS = 3
BACKOFF_INITIAL_SECONDS = 1
BACKOFF_MAX_SECONDS = 30
BACKOFF_JITTER_SECONDS = 5


def is_transient(exc: BaseException) -> bool:
    """Return True for failures worth retrying: transport errors and 5xx."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


def _call_name(retry_state: RetryCallState) -> str:
    if retry_state.fn is None:
        return "unknown"
    return getattr(retry_state.fn, "_api_name", retry_state.fn.__name__)


def _log_retry(retry_state: RetryCallState) -> None:
    logger.warning(
        "read_retry_scheduled",
        api_name=_call_name(retry_state),
        attempt=retry_state.attempt_number,
        sleep_seconds=retry_state.next_action.sleep if retry_state.next_action else 0,
    )


def log_final_failure(retry_state: RetryCallState) -> None:
    """Log the exhausted read, then re-raise its last exception.

    Tenacity returns whatever this callback returns once attempts run out,
    so raising here keeps callers from receiving ``None`` as a result.
    """
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    logger.error(
        "read_retries_exhausted",
        api_name=_call_name(retry_state),
        attempts=retry_state.attempt_number,
        error=repr(exception),
    )
    if exception is not None:
        raise exception


def resilient_api_call(
    api_name: str,
    attempts: int = DEFAULT_ATTEMPTS,
    wait: wait_base | None = None,
) -> Callable[[F], F]:
    """Wrap an idempotent trip-service read in the retry policy.

    Only :func:`is_transient` failures are retried; a 4xx surfaces on the
    first attempt.

    Args:
        api_name: Name used in retry log events.
        attempts: Maximum number of attempts, first call included.
        wait: Backoff override (tests pass ``wait_none()``).

    Returns:
        A decorator applying the policy.
    """
    backoff = wait or wait_exponential_jitter(
        initial=BACKOFF_INITIAL_SECONDS,
        max=BACKOFF_MAX_SECONDS,
        jitter=BACKOFF_JITTER_SECONDS,
    )

    def decorator(func: F) -> F:
        func._api_name = api_name  # type: ignore[attr-defined]
        policy = retry(
            stop=stop_after_attempt(attempts),
            wait=backoff,
            retry=retry_if_exception(is_transient),
            before_sleep=_log_retry,
            retry_error_callback=log_final_failure,
            reraise=True,
        )
        return policy(func)  # type: ignore[return-value]

    return decorator
