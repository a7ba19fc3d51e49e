"""Retry executor: bounded attempts with exponential backoff and jitter."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import Protocol, TypeVar

from conductor.infra.metrics import RETRIES_TOTAL

from .base import CancellationError, HTTPStatusError
from .models import RetryPolicy
from .signals import REASON_ABORTED, CancellationToken, guard

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


class RandomSource(Protocol):
    def uniform(self, a: float, b: float) -> float: ...


def compute_backoff_delay(
    attempt_index: int,
    policy: RetryPolicy,
    rng: RandomSource | None = None,
) -> int:
    """Delay in milliseconds before attempt ``attempt_index + 1``.

    ``base * factor ** attempt_index`` perturbed by up to
    ``jitter_ratio`` of itself in either direction, floored at zero and
    rounded to whole milliseconds.
    """
    raw = policy.backoff_base_ms * policy.backoff_factor ** max(0, attempt_index)
    noise = 0.0
    if policy.jitter_ratio:
        source = rng if rng is not None else random
        noise = raw * policy.jitter_ratio * source.uniform(-1.0, 1.0)
    return max(0, round(raw + noise))


class RetryExecutor:
    """Runs a single-attempt coroutine factory under a ``RetryPolicy``.

    Usage::

        executor = RetryExecutor()
        value = await executor.run(lambda: fetch_once(), policy, token)

    Cancellation-class failures are re-raised at once; so is any failure
    raised after *token* fired.  The backoff sleep is itself guarded by
    *token*, so cancelling mid-sleep ends the loop without another attempt.
    """

    def __init__(
        self,
        *,
        rng: RandomSource | None = None,
        sleep: SleepFn = asyncio.sleep,
        name: str = "default",
    ) -> None:
        self._rng = rng
        self._sleep = sleep
        self._name = name

    async def run(
        self,
        attempt: Callable[[], Awaitable[T]],
        policy: RetryPolicy,
        token: CancellationToken | None = None,
    ) -> T:
        for index in range(policy.attempts):
            try:
                return await attempt()
            except CancellationError:
                raise
            except Exception as exc:
                if token is not None and token.fired:
                    raise CancellationError(token.reason or REASON_ABORTED) from exc
                if index >= policy.attempts - 1:
                    raise
                response = exc.response if isinstance(exc, HTTPStatusError) else None
                if not policy.should_retry(response, exc):
                    raise
                delay_ms = compute_backoff_delay(index, policy, self._rng)
                RETRIES_TOTAL.labels(client=self._name).inc()
                logger.debug(
                    "Attempt %d/%d failed (%s); retrying in %dms",
                    index + 1,
                    policy.attempts,
                    exc,
                    delay_ms,
                )
                await guard(self._sleep(delay_ms / 1000), token)
        # range(policy.attempts) is never empty (attempts >= 1)
        raise AssertionError("unreachable")
