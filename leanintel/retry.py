"""Exponential backoff for transient completion failures."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from .errors import ProviderError
from .logging import get_logger

T = TypeVar("T")

logger = get_logger("retry")

_TRANSIENT_MARKERS = (
    "rate limit",
    "rate_limit",
    "too many requests",
    "429",
    "econnreset",
    "econnrefused",
    "socket hang up",
    "etimedout",
    "timed out",
    "timeout",
    "network",
    "connection reset",
    "connection refused",
    "connection error",
    "500",
    "502",
    "503",
    "504",
    "internal server error",
    "service unavailable",
    "bad gateway",
    "gateway timeout",
    "overloaded",
    "capacity",
)


@dataclass(frozen=True)
class RetryOptions:
    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    multiplier: float = 2.0


def is_retryable(error: BaseException) -> bool:
    """Classify an error as transient (worth retrying) or fatal."""
    if isinstance(error, ProviderError):
        if error.transient:
            return True
        # Typed fatal errors (auth, bad request) are never retried, whatever they say.
        if type(error) is not ProviderError:
            return False
        return _status_is_transient(error.status) or _message_is_transient(str(error))

    status = _status_of(error)
    if status is not None and _status_is_transient(status):
        return True

    name = type(error).__name__.lower()
    if "timeout" in name or "network" in name or "connection" in name:
        return True
    return _message_is_transient(str(error))


def retry_after_seconds(error: BaseException) -> Optional[float]:
    """Return the server-suggested delay carried by the error, if any."""
    value = getattr(error, "retry_after", None)
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
        return float(value)
    headers = getattr(error, "headers", None)
    if headers is None:
        response = getattr(error, "response", None)
        headers = getattr(response, "headers", None)
    if headers is not None:
        try:
            raw = headers.get("retry-after")
        except AttributeError:
            raw = None
        if raw is not None:
            try:
                seconds = float(raw)
            except (TypeError, ValueError):
                return None
            return seconds if seconds > 0 else None
    return None


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    options: RetryOptions | None = None,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds, fails fatally, or the retry budget is spent."""
    opts = options or RetryOptions()
    delay = opts.initial_delay
    attempts = opts.max_retries + 1

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except Exception as exc:
            if attempt >= attempts or not is_retryable(exc):
                raise
            suggested = retry_after_seconds(exc)
            wait = min(suggested, opts.max_delay) if suggested else delay
            logger.warning("Completion call failed (attempt %d/%d): %s", attempt, attempts, exc)
            logger.info("Retrying in %.1fs...", wait)
            await sleep(wait)
            delay = min(delay * opts.multiplier, opts.max_delay)

    raise AssertionError("unreachable")  # pragma: no cover


def _status_of(error: BaseException) -> Optional[int]:
    for attr in ("status", "status_code", "statusCode"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def _status_is_transient(status: Optional[int]) -> bool:
    if status is None:
        return False
    return status == 429 or 500 <= status < 600


def _message_is_transient(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in _TRANSIENT_MARKERS)


__all__ = ["RetryOptions", "is_retryable", "retry_after_seconds", "with_retry"]
