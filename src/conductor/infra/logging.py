"""Logging bootstrap for applications and the CLI probe.

The engine only ever calls ``logging.getLogger(__name__)``; nothing is
configured on import.  ``setup_logging`` installs one stderr handler on
the root logger, emitting either JSON lines (``json_output=True``) or
short plain lines, and applies ``LoggingConfig.levels`` so engine
chatter can be raised or lowered independently of the root level::

    setup_logging(LoggingConfig(level="WARNING", levels={"conductor.engine": "DEBUG"}))

Records carry ``trace_id`` / ``span_id`` of the active OpenTelemetry span
(blank outside a span), so retry and admission logs line up with the
``request.run`` / ``request.attempt`` spans.
"""

from __future__ import annotations

import logging
import sys

from conductor.configs.system import LoggingConfig
from conductor.infra.telemetry import current_span_ids

_PLAIN_FORMAT = "%(levelname)-8s %(asctime)s %(name)s  %(message)s"
_PLAIN_DATEFMT = "%H:%M:%S"
_JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s %(trace_id)s %(span_id)s"


class _SpanIdsFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id, record.span_id = current_span_ids()  # type: ignore[attr-defined]
        return True


def _build_formatter(json_output: bool) -> logging.Formatter:
    if not json_output:
        return logging.Formatter(fmt=_PLAIN_FORMAT, datefmt=_PLAIN_DATEFMT)

    from pythonjsonlogger.json import JsonFormatter

    return JsonFormatter(
        fmt=_JSON_FORMAT,
        rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
        defaults={"trace_id": "", "span_id": ""},
    )


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Install the stderr handler and apply root and per-logger levels."""
    config = config or LoggingConfig()

    handler = logging.StreamHandler(sys.stderr)
    handler.addFilter(_SpanIdsFilter())
    handler.setFormatter(_build_formatter(config.json_output))

    root = logging.getLogger()
    root.setLevel(config.level.upper())
    root.handlers = [handler]

    for name, level in config.levels.items():
        logging.getLogger(name).setLevel(level.upper())
