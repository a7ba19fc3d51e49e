"""Cancellation tokens and their composition.

A ``CancellationToken`` fires at most once, with a reason.  Listeners
registered after it fired are invoked immediately.  ``compose_tokens``
derives a child token that fires with the reason of whichever parent
fires first; ``guard`` races an awaitable against a token.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from .base import CancellationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

REASON_ABORTED = "aborted"
REASON_CANCELLED = "cancelled"
REASON_TIMEOUT = "timeout"
REASON_SUPERSEDED = "superseded"

FireCallback = Callable[[str], None]


def _noop() -> None:
    pass


class CancellationToken:
    """One-shot cancellation signal."""

    def __init__(self) -> None:
        self._reason: str | None = None
        self._callbacks: dict[int, FireCallback] = {}
        self._next_id = 0
        self._detachers: list[Callable[[], None]] = []

    @property
    def fired(self) -> bool:
        return self._reason is not None

    @property
    def reason(self) -> str | None:
        return self._reason

    def is_fired(self) -> bool:
        return self.fired

    def fire(self, reason: str = REASON_ABORTED) -> bool:
        """Fire the token.  Returns ``False`` if it had already fired."""
        if self._reason is not None:
            return False
        self._reason = reason
        self.detach()
        callbacks = list(self._callbacks.values())
        self._callbacks.clear()
        for callback in callbacks:
            try:
                callback(reason)
            except Exception:
                logger.exception("Cancellation listener failed (reason=%s)", reason)
        return True

    def on_fire(self, callback: FireCallback) -> Callable[[], None]:
        """Register *callback*; returns a callable that unregisters it.

        If the token already fired, *callback* runs synchronously and the
        returned unregister callable is a no-op.
        """
        if self._reason is not None:
            callback(self._reason)
            return _noop
        callback_id = self._next_id
        self._next_id += 1
        self._callbacks[callback_id] = callback

        def unsubscribe() -> None:
            self._callbacks.pop(callback_id, None)

        return unsubscribe

    def raise_if_fired(self) -> None:
        if self._reason is not None:
            raise CancellationError(self._reason)

    def detach(self) -> None:
        """Stop listening to parent tokens (no-op for root tokens)."""
        detachers, self._detachers = self._detachers, []
        for detach in detachers:
            detach()

    def __repr__(self) -> str:
        state = f"fired={self._reason!r}" if self.fired else "pending"
        return f"<CancellationToken {state}>"


def compose_tokens(*tokens: CancellationToken | None) -> CancellationToken:
    """Derive a token that fires when any of *tokens* fires.

    ``None`` entries are skipped.  If a parent already fired, the derived
    token fires immediately with that parent's reason and no listeners are
    attached to the others.
    """
    derived = CancellationToken()
    parents = [t for t in tokens if t is not None]
    for parent in parents:
        if parent.fired:
            derived.fire(parent.reason or REASON_ABORTED)
            return derived
    for parent in parents:
        derived._detachers.append(parent.on_fire(derived.fire))
    return derived


async def guard(awaitable: Awaitable[T], token: CancellationToken | None) -> T:
    """Await *awaitable*, aborting it with ``CancellationError`` if *token* fires."""
    if token is None:
        return await awaitable
    if token.fired:
        # Close an un-awaited coroutine so it does not warn on collection.
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise CancellationError(token.reason or REASON_ABORTED)

    task = asyncio.ensure_future(awaitable)
    unsubscribe = token.on_fire(lambda _reason: task.cancel())
    try:
        return await task
    except asyncio.CancelledError:
        if token.fired and task.cancelled():
            raise CancellationError(token.reason or REASON_ABORTED) from None
        raise
    finally:
        unsubscribe()
