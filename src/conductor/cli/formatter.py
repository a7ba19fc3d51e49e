"""Renders client lifecycle hooks as log lines."""

from datetime import datetime
from typing import TextIO

from conductor.engine.models import FinishInfo, Hooks, StartInfo


class HookLogFormatter:
    """Formats and displays lifecycle events, one line per event."""

    def __init__(self, output: TextIO, show_timestamps: bool = True):
        """Initialize the formatter.

        Parameters
        ----------
        output
            File-like object to write lines to.
        show_timestamps
            Prefix each line with a wall-clock ``HH:MM:SS.mmm`` stamp.
        """
        self.output = output
        self.show_timestamps = show_timestamps
        self.counts: dict[str, int] = {}

    def hooks(self) -> Hooks:
        """Return a ``Hooks`` bundle that feeds this formatter."""
        return Hooks(
            on_enqueue=self.on_enqueue,
            on_start=self.on_start,
            on_finish=self.on_finish,
            on_drop=self.on_drop,
            on_error=self.on_error,
        )

    def on_enqueue(self, key: str | None) -> None:
        self._emit("queued", f"key={_fmt_key(key)}")

    def on_start(self, info: StartInfo) -> None:
        self._emit("start", f"{info.target} key={_fmt_key(info.key)}")

    def on_finish(self, info: FinishInfo) -> None:
        status = info.status if info.status is not None else "-"
        millis = info.duration.total_seconds() * 1000
        label = "ok" if info.ok else "fail"
        self._emit(label, f"{info.target} status={status} {millis:.0f}ms")

    def on_drop(self, key: str | None) -> None:
        self._emit("dropped", f"key={_fmt_key(key)}")

    def on_error(self, error: BaseException, key: str | None) -> None:
        self._emit("error", f"key={_fmt_key(key)} {type(error).__name__}: {error}")

    def summary(self) -> str:
        """One-line tally of every event kind seen so far."""
        if not self.counts:
            return "no events"
        return ", ".join(f"{kind}={n}" for kind, n in sorted(self.counts.items()))

    def _emit(self, kind: str, detail: str) -> None:
        self.counts[kind] = self.counts.get(kind, 0) + 1
        prefix = ""
        if self.show_timestamps:
            prefix = datetime.now().strftime("%H:%M:%S.%f")[:-3] + " "
        self.output.write(f"{prefix}[{kind:>7}] {detail}\n")
        self.output.flush()


def _fmt_key(key: str | None) -> str:
    return key if key is not None else "-"
