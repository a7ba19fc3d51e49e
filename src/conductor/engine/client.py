"""RequestClient — per-call lifecycle around an injectable transport.

Each call moves through::

    Created -> {Admitted | Queued | Dropped} -> Running -> {Succeeded | Failed | Aborted}

and settles its result future exactly once.  The client owns all shared
state (admission counter and queue, key registry); nothing is global, so
independent clients never interfere.

Usage::

    client = RequestClient(ClientConfig(capacity=4), transport=HttpxTransport())

    handle = client.request("/search", options=RequestOptions(key="search", supersede=True))
    data = await handle
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Generator
from datetime import timedelta
from typing import Any, Generic, TypeVar

from conductor.infra.metrics import (
    DEDUPE_SERVED_TOTAL,
    REQUEST_DURATION_SECONDS,
    REQUESTS_TOTAL,
    SUPERSEDED_TOTAL,
)
from conductor.infra.telemetry import (
    ATTR_ATTEMPT_INDEX,
    ATTR_REQUEST_CLIENT,
    ATTR_REQUEST_KEY,
    ATTR_REQUEST_OUTCOME,
    ATTR_REQUEST_TARGET,
    ATTR_RESPONSE_STATUS,
    SPAN_REQUEST_ATTEMPT,
    SPAN_REQUEST_RUN,
    tracer,
)

from .admission import AdmissionController, PendingTask
from .base import (
    AdmissionDropError,
    CancellationError,
    ConductorError,
    HTTPStatusError,
    RequestInit,
    Transport,
    TransportError,
)
from .keys import KeyCoordinator, KeyRecord
from .models import ClientConfig, FinishInfo, RequestOptions, StartInfo
from .parsers import default_parser
from .retry import RandomSource, RetryExecutor, SleepFn
from .signals import (
    REASON_CANCELLED,
    REASON_TIMEOUT,
    CancellationToken,
    compose_tokens,
    guard,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

OUTCOME_OK = "ok"
OUTCOME_ERROR = "error"
OUTCOME_CANCELLED = "cancelled"
OUTCOME_DROPPED = "dropped"


def _outcome_of(exc: BaseException) -> str:
    if isinstance(exc, CancellationError):
        return OUTCOME_CANCELLED
    if isinstance(exc, AdmissionDropError):
        return OUTCOME_DROPPED
    return OUTCOME_ERROR


def _consume_exception(future: asyncio.Future[Any]) -> None:
    # Followers may observe the result; the caller may never await it.
    if not future.cancelled():
        future.exception()


class Cancelable(Generic[T]):
    """Handle returned by ``RequestClient.request``.

    Awaiting the handle awaits ``result``.  ``cancel()`` fires this call's
    own cancellation arm; calling it again has no further effect.
    """

    def __init__(self, result: asyncio.Future[T], cancel: Callable[[], None]) -> None:
        self.result = result
        self._cancel = cancel

    def cancel(self) -> None:
        self._cancel()

    def done(self) -> bool:
        return self.result.done()

    def __await__(self) -> Generator[Any, None, T]:
        return self.result.__await__()


class _Call(Generic[T]):
    """State of one ``request()`` call from creation to settlement."""

    def __init__(
        self,
        client: RequestClient,
        target: str,
        init: RequestInit,
        options: RequestOptions,
    ) -> None:
        self._client = client
        self.target = target
        self.init = init
        self.options = options
        self.key = options.key

        self._loop = asyncio.get_running_loop()
        self.future: asyncio.Future[T] = self._loop.create_future()
        self.future.add_done_callback(_consume_exception)

        # The call's own arm: fired by timeout or by Cancelable.cancel().
        self.own_token = CancellationToken()
        self._timer: asyncio.TimerHandle | None = None
        timeout = options.timeout if options.timeout is not None else client.config.default_timeout
        if timeout is not None and timeout > timedelta(0):
            self._timer = self._loop.call_later(
                timeout.total_seconds(), self.own_token.fire, REASON_TIMEOUT
            )
        self.token = compose_tokens(options.signal, self.own_token)

        self.task = PendingTask(start=self._start, reject=self._reject, key=self.key)
        self._unsubscribe_queued: Callable[[], None] | None = None
        self._record: KeyRecord | None = None
        self._runner: asyncio.Task[None] | None = None
        self._status: int | None = None

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def submit(self) -> None:
        admission = self._client._admission.submit(self.task)
        if admission == "queued":
            self._unsubscribe_queued = self.token.on_fire(self._cancel_while_queued)

    def cancel(self) -> None:
        self.own_token.fire(REASON_CANCELLED)

    def _cancel_while_queued(self, reason: str) -> None:
        if not self._client._admission.withdraw(self.task):
            return
        logger.debug("Withdrew queued request (key=%s, reason=%s)", self.key, reason)
        self._fail(CancellationError(reason))
        self._teardown()

    def _reject(self, exc: BaseException) -> None:
        self._fail(exc)
        self._teardown()

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    def _start(self) -> None:
        """Called by the admission controller once a slot is held."""
        if self._unsubscribe_queued is not None:
            self._unsubscribe_queued()
            self._unsubscribe_queued = None

        keys = self._client._keys
        key = self.key
        if key is not None and self.options.supersede:
            if keys.supersede(key) is not None:
                SUPERSEDED_TOTAL.labels(client=self._client.name).inc()

        if key is not None and self.options.dedupe:
            leader = keys.lookup(key)
            if leader is not None:
                self._follow(leader)
                return

        token = self.token
        if key is not None:
            key_token = CancellationToken()
            token = compose_tokens(self.token, key_token)
            self._record = KeyRecord(
                token=key_token, result=self.future, started_at=time.monotonic()
            )
            keys.install(key, self._record)
            # Superseded: settle now, before the newer call's runner exists.
            # The runner still unwinds later and releases the slot.
            key_token.on_fire(self._superseded)

        self._runner = self._loop.create_task(self._run(token))

    def _superseded(self, reason: str) -> None:
        logger.debug("Request superseded (key=%s, target=%s)", self.key, self.target)
        self._fail(CancellationError(reason))

    def _follow(self, leader: KeyRecord) -> None:
        """Serve this call from *leader*'s result; no transport call is made."""
        leader.followers += 1
        DEDUPE_SERVED_TOTAL.labels(client=self._client.name).inc()
        logger.debug(
            "Deduped request onto in-flight leader (key=%s, followers=%d)",
            self.key,
            leader.followers,
        )
        # A follower performs no transport work: give its slot back now.
        self._client._admission.release()

        def settle_from_leader(result: asyncio.Future[Any]) -> None:
            unsubscribe()
            if self.future.done():
                return
            if result.cancelled():
                self._fail(CancellationError(REASON_CANCELLED))
            elif result.exception() is not None:
                self._fail(result.exception())
            else:
                self._succeed(result.result())
            self._teardown()

        def abandon(reason: str) -> None:
            leader.result.remove_done_callback(settle_from_leader)
            self._fail(CancellationError(reason))
            self._teardown()

        leader.result.add_done_callback(settle_from_leader)
        unsubscribe = self.token.on_fire(abandon)

    async def _run(self, token: CancellationToken) -> None:
        client = self._client
        started = time.monotonic()
        outcome = OUTCOME_OK
        client._fire("on_start", StartInfo(key=self.key, target=self.target))
        with tracer.start_as_current_span(SPAN_REQUEST_RUN) as span:
            span.set_attribute(ATTR_REQUEST_CLIENT, client.name)
            span.set_attribute(ATTR_REQUEST_TARGET, self.target)
            if self.key is not None:
                span.set_attribute(ATTR_REQUEST_KEY, self.key)
            attempt_count = 0

            async def attempt() -> T:
                nonlocal attempt_count
                attempt_count += 1
                return await self._attempt(token, attempt_count - 1)

            try:
                policy = self.options.retry or client.config.retry
                value = await client._retry.run(attempt, policy, token)
                self._succeed(value)
            except asyncio.CancelledError:
                outcome = OUTCOME_CANCELLED
                self._fail(CancellationError(token.reason or REASON_CANCELLED))
                raise
            except Exception as exc:
                outcome = _outcome_of(exc)
                self._fail(exc)
            finally:
                duration = time.monotonic() - started
                span.set_attribute(ATTR_REQUEST_OUTCOME, outcome)
                REQUEST_DURATION_SECONDS.labels(client=client.name).observe(duration)
                client._fire(
                    "on_finish",
                    FinishInfo(
                        key=self.key,
                        target=self.target,
                        ok=outcome == OUTCOME_OK,
                        status=self._status,
                        duration=timedelta(seconds=duration),
                    ),
                )
                token.detach()
                self._teardown()
                client._admission.release()

    async def _attempt(self, token: CancellationToken, index: int) -> T:
        client = self._client
        with tracer.start_as_current_span(SPAN_REQUEST_ATTEMPT) as span:
            span.set_attribute(ATTR_ATTEMPT_INDEX, index)
            token.raise_if_fired()
            try:
                response = await guard(
                    client._transport(self.target, self.init, token), token
                )
            except ConductorError:
                raise
            except Exception as exc:
                raise TransportError(f"{type(exc).__name__}: {exc}") from exc
            self._status = response.status
            span.set_attribute(ATTR_RESPONSE_STATUS, response.status)
            if not response.ok:
                raise HTTPStatusError(response)
            parser = self.options.parser or client.config.parser or default_parser
            return await guard(parser(response), token)

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    def _succeed(self, value: T) -> None:
        if self.future.done():
            return
        REQUESTS_TOTAL.labels(client=self._client.name, outcome=OUTCOME_OK).inc()
        self.future.set_result(value)

    def _fail(self, exc: BaseException) -> None:
        if self.future.done():
            return
        REQUESTS_TOTAL.labels(client=self._client.name, outcome=_outcome_of(exc)).inc()
        self._client._fire_error(exc, self.key)
        self.future.set_exception(exc)

    def _teardown(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._record is not None and self.key is not None:
            self._client._keys.remove(self.key, self._record)
            self._record = None
        self.token.detach()


class RequestClient:
    """Request orchestration engine bound to one transport.

    Parameters
    ----------
    config:
        Client-wide settings (capacity, queue strategy, default timeout,
        retry policy, parser, hooks).
    transport:
        Async callable ``(target, init, token) -> Response``.
    rng, sleep:
        Random source and sleep function for retry backoff; injectable
        for deterministic tests.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport: Transport,
        rng: RandomSource | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.config = config or ClientConfig()
        self._transport = transport
        self._keys = KeyCoordinator()
        self._admission = AdmissionController(
            capacity=self.config.capacity,
            strategy=self.config.queue_strategy,
            hooks=self.config.hooks,
            name=self.config.name,
        )
        self._retry = RetryExecutor(rng=rng, sleep=sleep, name=self.config.name)
        logger.debug(
            "RequestClient %s (capacity=%d, strategy=%s)",
            self.config.name,
            self.config.capacity,
            self.config.queue_strategy,
        )

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def in_flight(self) -> int:
        return self._admission.in_flight

    @property
    def queued(self) -> int:
        return self._admission.queued

    @property
    def active_keys(self) -> dict[str, float]:
        """``{key: started_at}`` (monotonic seconds) of running keyed calls."""
        return self._keys.keys()

    def request(
        self,
        target: str,
        init: RequestInit | None = None,
        options: RequestOptions | None = None,
    ) -> Cancelable[Any]:
        """Submit one call.  Must be invoked from a running event loop."""
        call: _Call[Any] = _Call(self, target, init or RequestInit(), options or RequestOptions())
        call.submit()
        return Cancelable(call.future, call.cancel)

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def _fire(self, hook_name: str, payload: Any) -> None:
        callback = getattr(self.config.hooks, hook_name)
        if callback is None:
            return
        try:
            callback(payload)
        except Exception:
            logger.exception("Hook %s failed", hook_name)

    def _fire_error(self, exc: BaseException, key: str | None) -> None:
        callback = self.config.hooks.on_error
        if callback is None:
            return
        try:
            callback(exc, key)
        except Exception:
            logger.exception("Hook on_error failed (key=%s)", key)
