"""Configuration and per-call option models for ``RequestClient``."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .base import Response
from .signals import CancellationToken

QueueStrategy = Literal["ordered", "stack", "reject"]

QUEUE_ORDERED: QueueStrategy = "ordered"
QUEUE_STACK: QueueStrategy = "stack"
QUEUE_REJECT: QueueStrategy = "reject"

Parser = Callable[[Response], Awaitable[Any]]
RetryPredicate = Callable[[Response | None, BaseException | None], bool]

DEFAULT_RETRY_STATUSES = frozenset({502, 503, 504})


class RetryPolicy(BaseModel):
    """Bounded retry with exponential backoff and symmetric jitter."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    attempts: int = Field(
        default=1, ge=1, description="Total attempts, including the first"
    )
    backoff_base_ms: float = Field(
        default=150, ge=0, description="Delay before the second attempt"
    )
    backoff_factor: float = Field(
        default=2.0, ge=0, description="Multiplier applied per further attempt"
    )
    jitter_ratio: float = Field(
        default=0.2,
        ge=0,
        le=1,
        description="Fraction of the delay applied as +/- random noise",
    )
    retry_statuses: frozenset[int] = Field(
        default=DEFAULT_RETRY_STATUSES,
        description="HTTP statuses the default predicate retries",
    )
    retry_on: RetryPredicate | None = Field(
        default=None,
        description="Custom predicate over (response, error); replaces the default",
    )

    def should_retry(self, response: Response | None, error: BaseException | None) -> bool:
        if self.retry_on is not None:
            return self.retry_on(response, error)
        if response is not None:
            return response.status in self.retry_statuses
        return True


# ---------------------------------------------------------------------------
# Hooks
# ---------------------------------------------------------------------------


class StartInfo(BaseModel):
    """Payload of the ``on_start`` hook."""

    model_config = ConfigDict(frozen=True)

    key: str | None = None
    target: str


class FinishInfo(BaseModel):
    """Payload of the ``on_finish`` hook."""

    model_config = ConfigDict(frozen=True)

    key: str | None = None
    target: str
    ok: bool
    status: int | None = None
    duration: timedelta


class Hooks(BaseModel):
    """Optional lifecycle callbacks, invoked synchronously on the event loop."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    on_enqueue: Callable[[str | None], None] | None = None
    on_start: Callable[[StartInfo], None] | None = None
    on_finish: Callable[[FinishInfo], None] | None = None
    on_drop: Callable[[str | None], None] | None = None
    on_error: Callable[[BaseException, str | None], None] | None = None


# ---------------------------------------------------------------------------
# Client / call configuration
# ---------------------------------------------------------------------------


class ClientConfig(BaseModel):
    """Per-client settings, fixed for the client's lifetime."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(
        default="default", description="Label used in log lines and metrics"
    )
    capacity: int = Field(
        default=0, ge=0, description="Max physically executing calls; 0 = unlimited"
    )
    queue_strategy: QueueStrategy = Field(
        default=QUEUE_ORDERED, description="Behaviour when at capacity"
    )
    default_timeout: timedelta | None = Field(
        default=None, description="Per-call timeout unless overridden"
    )
    retry: RetryPolicy = Field(
        default_factory=RetryPolicy, description="Default retry policy"
    )
    parser: Parser | None = Field(
        default=None, description="Default response parser (content-type driven when unset)"
    )
    hooks: Hooks = Field(default_factory=Hooks, description="Lifecycle callbacks")


class RequestOptions(BaseModel):
    """Per-call options."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    signal: CancellationToken | None = None
    timeout: timedelta | None = None
    key: str | None = None
    supersede: bool = False
    dedupe: bool = False
    retry: RetryPolicy | None = None
    parser: Parser | None = None
