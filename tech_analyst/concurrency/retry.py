"""Bounded exponential-backoff retry for flaky upstream calls."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, TypeVar

from pydantic import BaseModel

from tech_analyst.errors import PipelineCancelled, describe_error, is_retryable_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

ShouldRetry = Callable[[BaseException, int], bool]
OnRetry = Callable[[int, float, BaseException], None]


class RetryPolicy(BaseModel):
    max_attempts: int = 3
    base_delay: float = 0.5  # seconds
    max_delay: float = 4.0
    jitter: bool = True

    def delay_for(self, attempt: int, rand: float = 0.5) -> float:
        """Backoff before attempt ``attempt + 1``. ``rand`` is uniform in [0, 1)."""
        delay = min(self.max_delay, self.base_delay * (2 ** (attempt - 1)))
        if self.jitter:
            delay *= 0.5 + rand
        return delay


TOOL_RETRY_POLICY = RetryPolicy(max_attempts=3, base_delay=0.5, max_delay=4.0)
REFLECTION_RETRY_POLICY = RetryPolicy(max_attempts=3, base_delay=0.5, max_delay=3.0)
LLM_RETRY_POLICY = RetryPolicy(max_attempts=3, base_delay=0.8, max_delay=5.0)


def _default_should_retry(error: BaseException, attempt: int) -> bool:
    return is_retryable_error(error)


def _log_retry(attempt: int, delay: float, error: BaseException) -> None:
    info = describe_error(error)
    logger.debug(
        "Retry %d in %.2fs after %s: %s (status=%s)",
        attempt, delay, info.type, info.message[:200], info.status,
    )


class RetryExecutor:
    """Runs an async operation up to ``policy.max_attempts`` times.

    Non-retryable errors (per ``should_retry``) and the error from the last
    attempt are re-raised unchanged. Cancellation is checked before every
    attempt and before every backoff sleep, and the sleep itself wakes up
    as soon as the cancel event fires.
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        should_retry: ShouldRetry | None = None,
        on_retry: OnRetry | None = None,
        cancel_event: asyncio.Event | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        rng: Callable[[], float] = random.random,
    ):
        self.policy = policy or RetryPolicy()
        self.should_retry = should_retry or _default_should_retry
        self.on_retry = on_retry or _log_retry
        self.cancel_event = cancel_event
        self._sleep = sleep
        self._rng = rng

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        attempt = 0
        while True:
            attempt += 1
            self._check_cancelled()
            try:
                return await operation()
            except (asyncio.CancelledError, PipelineCancelled):
                raise
            except Exception as e:
                if attempt >= self.policy.max_attempts or not self.should_retry(e, attempt):
                    raise
                delay = self.policy.delay_for(attempt, self._rng())
                self.on_retry(attempt, delay, e)
                self._check_cancelled()
                await self._pause(delay)

    def _check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise PipelineCancelled("Analysis cancelled")

    async def _pause(self, delay: float) -> None:
        if self._sleep is not None:
            await self._sleep(delay)
        elif self.cancel_event is not None:
            try:
                await asyncio.wait_for(self.cancel_event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
        else:
            await asyncio.sleep(delay)
        self._check_cancelled()


async def with_retries(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    should_retry: ShouldRetry | None = None,
    on_retry: OnRetry | None = None,
    cancel_event: asyncio.Event | None = None,
) -> T:
    """One-shot convenience wrapper around ``RetryExecutor.run``."""
    executor = RetryExecutor(
        policy=policy,
        should_retry=should_retry,
        on_retry=on_retry,
        cancel_event=cancel_event,
    )
    return await executor.run(operation)
