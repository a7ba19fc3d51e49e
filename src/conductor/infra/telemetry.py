"""OpenTelemetry tracer and span vocabulary.

Only the OpenTelemetry *API* is used here: spans are no-ops until the
host application installs a ``TracerProvider``.

Usage::

    from conductor.infra.telemetry import SPAN_REQUEST_ATTEMPT, tracer

    with tracer.start_as_current_span(SPAN_REQUEST_ATTEMPT) as span:
        ...
"""

from __future__ import annotations

from opentelemetry import trace
from opentelemetry.trace import format_span_id, format_trace_id

tracer = trace.get_tracer("conductor")

# ---------------------------------------------------------------------------
# Span names
# ---------------------------------------------------------------------------

SPAN_REQUEST_RUN = "request.run"
SPAN_REQUEST_ATTEMPT = "request.attempt"

# ---------------------------------------------------------------------------
# Span attribute keys
# ---------------------------------------------------------------------------

ATTR_REQUEST_CLIENT = "request.client"
ATTR_REQUEST_TARGET = "request.target"
ATTR_REQUEST_KEY = "request.key"
ATTR_REQUEST_OUTCOME = "request.outcome"
ATTR_ATTEMPT_INDEX = "request.attempt_index"
ATTR_RESPONSE_STATUS = "response.status"


def current_span_ids() -> tuple[str, str]:
    """Hex ``(trace_id, span_id)`` of the active span, or ``("", "")``."""
    ctx = trace.get_current_span().get_span_context()
    if ctx is None or not ctx.is_valid:
        return "", ""
    return format_trace_id(ctx.trace_id), format_span_id(ctx.span_id)
