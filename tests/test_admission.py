"""Tests for the admission controller and its queueing strategies."""

from __future__ import annotations

import pytest

from conductor.engine.admission import AdmissionController, PendingTask
from conductor.engine.base import AdmissionDropError
from conductor.engine.models import Hooks


class _Recorder:
    """Collects start / reject events of ``PendingTask`` instances."""

    def __init__(self) -> None:
        self.started: list[str] = []
        self.rejected: list[tuple[str, BaseException]] = []

    def task(self, name: str, key: str | None = None) -> PendingTask:
        return PendingTask(
            start=lambda: self.started.append(name),
            reject=lambda exc: self.rejected.append((name, exc)),
            key=key,
        )


@pytest.fixture
def recorder() -> _Recorder:
    return _Recorder()


class TestUnlimited:
    def test_everything_starts(self, recorder):
        controller = AdmissionController(capacity=0)
        for name in "abcde":
            assert controller.submit(recorder.task(name)) == "started"
        assert recorder.started == list("abcde")
        assert controller.in_flight == 5
        assert controller.queued == 0


class TestOrdered:
    def test_fifo_release(self, recorder):
        controller = AdmissionController(capacity=1, strategy="ordered")
        assert controller.submit(recorder.task("a")) == "started"
        assert controller.submit(recorder.task("b")) == "queued"
        assert controller.submit(recorder.task("c")) == "queued"
        assert recorder.started == ["a"]

        controller.release()
        assert recorder.started == ["a", "b"]
        controller.release()
        assert recorder.started == ["a", "b", "c"]
        assert controller.in_flight == 1

    def test_capacity_never_exceeded(self, recorder):
        controller = AdmissionController(capacity=3)
        for i in range(10):
            controller.submit(recorder.task(str(i)))
        assert controller.in_flight == 3
        assert controller.queued == 7
        for _ in range(10):
            controller.release()
            assert controller.in_flight <= 3
        assert controller.in_flight == 0
        assert controller.queued == 0

    def test_enqueue_hook(self, recorder):
        keys: list[str | None] = []
        controller = AdmissionController(capacity=1, hooks=Hooks(on_enqueue=keys.append))
        controller.submit(recorder.task("a", key="k1"))
        controller.submit(recorder.task("b", key="k2"))
        assert keys == ["k2"]


class TestStack:
    def test_lifo_release(self, recorder):
        controller = AdmissionController(capacity=1, strategy="stack")
        controller.submit(recorder.task("a"))
        controller.submit(recorder.task("b"))
        controller.submit(recorder.task("c"))

        controller.release()
        assert recorder.started == ["a", "c"]
        controller.release()
        assert recorder.started == ["a", "c", "b"]

    def test_newest_first_even_after_interleaving(self, recorder):
        controller = AdmissionController(capacity=1, strategy="stack")
        controller.submit(recorder.task("a"))
        controller.submit(recorder.task("b"))
        controller.submit(recorder.task("c"))
        controller.release()  # c starts
        controller.submit(recorder.task("d"))
        controller.release()
        assert recorder.started == ["a", "c", "d"]


class TestReject:
    def test_drops_at_capacity(self, recorder):
        dropped: list[str | None] = []
        controller = AdmissionController(
            capacity=1, strategy="reject", hooks=Hooks(on_drop=dropped.append)
        )
        assert controller.submit(recorder.task("a", key="ka")) == "started"
        assert controller.submit(recorder.task("b", key="kb")) == "dropped"

        assert recorder.started == ["a"]
        assert [name for name, _ in recorder.rejected] == ["b"]
        assert isinstance(recorder.rejected[0][1], AdmissionDropError)
        assert dropped == ["kb"]
        assert controller.queued == 0
        assert controller.in_flight == 1

    def test_admits_again_after_release(self, recorder):
        controller = AdmissionController(capacity=1, strategy="reject")
        controller.submit(recorder.task("a"))
        controller.release()
        assert controller.submit(recorder.task("b")) == "started"


class TestWithdrawAndRelease:
    def test_withdraw_queued_task(self, recorder):
        controller = AdmissionController(capacity=1)
        controller.submit(recorder.task("a"))
        queued = recorder.task("b")
        controller.submit(queued)
        assert controller.withdraw(queued) is True
        assert controller.queued == 0
        controller.release()
        assert recorder.started == ["a"]

    def test_withdraw_unknown_task(self, recorder):
        controller = AdmissionController(capacity=1)
        assert controller.withdraw(recorder.task("x")) is False

    def test_release_never_goes_negative(self):
        controller = AdmissionController(capacity=2)
        controller.release()
        assert controller.in_flight == 0

    def test_failing_hook_does_not_break_admission(self, recorder):
        def boom(_key):
            raise RuntimeError("hook bug")

        controller = AdmissionController(capacity=1, hooks=Hooks(on_enqueue=boom))
        controller.submit(recorder.task("a"))
        assert controller.submit(recorder.task("b")) == "queued"
        controller.release()
        assert recorder.started == ["a", "b"]

    @pytest.mark.parametrize("strategy", ["ordered", "stack"])
    def test_tasks_releasing_on_start_drain_without_recursion(self, strategy):
        controller = AdmissionController(capacity=1, strategy=strategy)
        started: list[int] = []

        def self_releasing(index: int) -> PendingTask:
            def start() -> None:
                started.append(index)
                controller.release()

            return PendingTask(start=start, reject=lambda exc: None)

        controller.submit(PendingTask(start=lambda: None, reject=lambda exc: None))
        for index in range(3000):
            controller.submit(self_releasing(index))
        assert controller.queued == 3000

        controller.release()
        assert controller.queued == 0
        assert controller.in_flight == 0
        expected = list(range(3000))
        assert started == (expected if strategy == "ordered" else expected[::-1])
