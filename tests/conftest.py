"""Shared fakes for engine tests: controllable transports and sleeps."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable

import pytest

from conductor.engine.base import BufferedResponse, RequestInit, Response
from conductor.engine.signals import CancellationToken


def json_response(payload: object, status: int = 200) -> BufferedResponse:
    return BufferedResponse(
        status=status,
        body=json.dumps(payload).encode(),
        headers={"Content-Type": "application/json"},
    )


class GatedTransport:
    """Transport whose calls block until the test answers them by target."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.tokens: list[CancellationToken] = []
        self.running = 0
        self.max_running = 0
        self._gates: dict[str, list[asyncio.Future[Response | BaseException]]] = {}

    async def __call__(
        self, target: str, init: RequestInit, token: CancellationToken
    ) -> Response:
        self.calls.append(target)
        self.tokens.append(token)
        gate: asyncio.Future[Response | BaseException] = (
            asyncio.get_running_loop().create_future()
        )
        self._gates.setdefault(target, []).append(gate)
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            outcome = await gate
        finally:
            self.running -= 1
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def respond(self, target: str, response: Response | BaseException | None = None) -> None:
        """Answer the oldest pending call for *target*."""
        for gate in self._gates.get(target, []):
            if not gate.done():
                gate.set_result(response if response is not None else json_response({"target": target}))
                return
        raise AssertionError(f"no pending call for {target!r}")


class SequenceTransport:
    """Transport that answers calls from a fixed script, without blocking."""

    def __init__(self, outcomes: list[Response | BaseException]) -> None:
        self._outcomes = list(outcomes)
        self.calls: list[str] = []

    async def __call__(
        self, target: str, init: RequestInit, token: CancellationToken
    ) -> Response:
        self.calls.append(target)
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class RecordingSleep:
    """Sleep stand-in: records requested delays and yields once."""

    def __init__(self, block: bool = False) -> None:
        self.delays: list[float] = []
        self._block = block

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        if self._block:
            await asyncio.Event().wait()
        await asyncio.sleep(0)


@pytest.fixture
def gated_transport() -> GatedTransport:
    return GatedTransport()


@pytest.fixture
def make_sequence() -> Callable[[list[Response | BaseException]], SequenceTransport]:
    return SequenceTransport


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def blocking_sleep() -> RecordingSleep:
    return RecordingSleep(block=True)


@pytest.fixture
def make_json_response() -> Callable[..., BufferedResponse]:
    return json_response


@pytest.fixture
def flush() -> Callable[[], Awaitable[None]]:
    """Let every ready task on the loop run a few steps."""

    async def _flush() -> None:
        for _ in range(20):
            await asyncio.sleep(0)

    return _flush
