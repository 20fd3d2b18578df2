"""Tests for exponential backoff around completion calls."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import List

import pytest

from leanintel.errors import (
    AuthenticationError,
    InvalidRequestError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    ServerError,
)
from leanintel.retry import RetryOptions, is_retryable, retry_after_seconds, with_retry


class Flaky:
    def __init__(self, failures: List[BaseException]) -> None:
        self.failures = list(failures)
        self.attempts = 0

    async def __call__(self) -> str:
        self.attempts += 1
        if self.failures:
            raise self.failures.pop(0)
        return "ok"


class Sleeps:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class StatusError(Exception):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


class ConnectionResetByPeer(Exception):
    pass


@pytest.mark.parametrize(
    ("error", "retryable"),
    [
        (RateLimitError("slow"), True),
        (ServerError("down"), True),
        (ProviderTimeoutError("late"), True),
        (AuthenticationError("rate limit exceeded"), False),
        (InvalidRequestError("503 in the prompt"), False),
        (ProviderError("upstream overloaded"), True),
        (ProviderError("plain failure", status=502), True),
        (ProviderError("plain failure", status=404), False),
        (StatusError(429), True),
        (StatusError(400), False),
        (ConnectionResetByPeer("reset"), True),
        (ValueError("ECONNRESET while reading"), True),
        (ValueError("bad value"), False),
    ],
)
def test_is_retryable(error: BaseException, retryable: bool) -> None:
    assert is_retryable(error) is retryable


def test_backoff_doubles_up_to_the_cap() -> None:
    operation = Flaky([ServerError("down")] * 4)
    sleeps = Sleeps()

    result = asyncio.run(
        with_retry(operation, RetryOptions(max_retries=4, initial_delay=1, max_delay=3), sleep=sleeps)
    )

    assert result == "ok"
    assert operation.attempts == 5
    assert sleeps.delays == [1, 2, 3, 3]


def test_server_suggested_delay_wins() -> None:
    operation = Flaky([RateLimitError("slow", retry_after=12)])
    sleeps = Sleeps()

    asyncio.run(with_retry(operation, RetryOptions(max_delay=10), sleep=sleeps))

    assert sleeps.delays == [10]


def test_budget_exhaustion_reraises_the_last_error() -> None:
    operation = Flaky([ServerError("first"), ServerError("second")])

    with pytest.raises(ServerError, match="second"):
        asyncio.run(with_retry(operation, RetryOptions(max_retries=1), sleep=Sleeps()))

    assert operation.attempts == 2


def test_fatal_errors_fail_immediately() -> None:
    operation = Flaky([AuthenticationError("bad key")])
    sleeps = Sleeps()

    with pytest.raises(AuthenticationError):
        asyncio.run(with_retry(operation, sleep=sleeps))

    assert operation.attempts == 1
    assert sleeps.delays == []


def test_retry_after_from_headers() -> None:
    error = Exception("limited")
    error.response = SimpleNamespace(headers={"retry-after": "4"})  # type: ignore[attr-defined]
    assert retry_after_seconds(error) == 4.0

    error.response = SimpleNamespace(headers={"retry-after": "soon"})  # type: ignore[attr-defined]
    assert retry_after_seconds(error) is None
    assert retry_after_seconds(ValueError("x")) is None
