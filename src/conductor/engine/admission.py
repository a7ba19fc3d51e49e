"""Admission control: global in-flight cap with a queueing strategy."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from conductor.infra.metrics import REQUESTS_IN_FLIGHT, REQUESTS_QUEUED

from .base import AdmissionDropError
from .models import QUEUE_REJECT, QUEUE_STACK, Hooks, QueueStrategy

logger = logging.getLogger(__name__)

Admission = Literal["started", "queued", "dropped"]


@dataclass(eq=False)
class PendingTask:
    """A unit of work waiting to be admitted."""

    start: Callable[[], None]
    reject: Callable[[BaseException], None]
    key: str | None = None


class AdmissionController:
    """Counts physically executing tasks against ``capacity``.

    ``submit`` starts a task immediately while below capacity.  At
    capacity the task is queued (``ordered`` / ``stack``) or rejected
    (``reject``).  ``release`` frees one slot and starts queued tasks while
    there is room: head first for ``ordered``, tail first for ``stack``.

    Every method is synchronous and must be called from the owning event
    loop; that is what keeps the counter and queue consistent without a
    lock.
    """

    def __init__(
        self,
        capacity: int = 0,
        strategy: QueueStrategy = "ordered",
        hooks: Hooks | None = None,
        *,
        name: str = "default",
    ) -> None:
        self._capacity = max(0, capacity)
        self._strategy = strategy
        self._hooks = hooks or Hooks()
        self._name = name
        self._in_flight = 0
        self._queue: deque[PendingTask] = deque()
        self._draining = False

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def queued(self) -> int:
        return len(self._queue)

    @property
    def capacity(self) -> int:
        return self._capacity

    def has_room(self) -> bool:
        return not self._capacity or self._in_flight < self._capacity

    def submit(self, task: PendingTask) -> Admission:
        if self.has_room():
            self._run(task)
            return "started"

        if self._strategy == QUEUE_REJECT:
            logger.info(
                "Client %s at capacity (%d); dropping request (key=%s)",
                self._name,
                self._capacity,
                task.key,
            )
            self._fire("on_drop", task.key)
            task.reject(
                AdmissionDropError(
                    f"Request dropped: {self._capacity} requests already in flight"
                )
            )
            return "dropped"

        self._queue.append(task)
        REQUESTS_QUEUED.labels(client=self._name).inc()
        logger.debug(
            "Client %s at capacity; queued request (key=%s, depth=%d)",
            self._name,
            task.key,
            len(self._queue),
        )
        self._fire("on_enqueue", task.key)
        return "queued"

    def release(self) -> None:
        """Free one slot, then start queued tasks while there is room.

        A started task may release its slot from inside ``start`` (a dedupe
        follower does).  Such nested releases only decrement; the outermost
        call keeps popping, so a long queue drains in a loop instead of by
        recursion.
        """
        if self._in_flight > 0:
            self._in_flight -= 1
            REQUESTS_IN_FLIGHT.labels(client=self._name).dec()
        else:
            logger.warning("Client %s: release() without a running task", self._name)
        if self._draining:
            return
        self._draining = True
        try:
            while self._queue and self.has_room():
                task = (
                    self._queue.pop()
                    if self._strategy == QUEUE_STACK
                    else self._queue.popleft()
                )
                REQUESTS_QUEUED.labels(client=self._name).dec()
                self._run(task)
        finally:
            self._draining = False

    def withdraw(self, task: PendingTask) -> bool:
        """Remove a still-queued *task*.  Returns ``False`` if it is not queued."""
        try:
            self._queue.remove(task)
        except ValueError:
            return False
        REQUESTS_QUEUED.labels(client=self._name).dec()
        return True

    def _run(self, task: PendingTask) -> None:
        self._in_flight += 1
        REQUESTS_IN_FLIGHT.labels(client=self._name).inc()
        task.start()

    def _fire(self, hook_name: str, key: str | None) -> None:
        callback = getattr(self._hooks, hook_name)
        if callback is None:
            return
        try:
            callback(key)
        except Exception:
            logger.exception("Hook %s failed (key=%s)", hook_name, key)
