"""Request orchestration engine.

Five layers, leaves first:

1. **Signals** — one-shot ``CancellationToken`` plus ``compose_tokens``
   and ``guard``; timeout, manual cancel, caller signals and supersede
   all travel through the same mechanism.

2. **RetryExecutor** — bounded attempts with exponential backoff and
   jitter; never retries a cancellation.

3. **KeyCoordinator** — one ``KeyRecord`` per coordination key,
   implementing supersede (abort the previous holder) and dedupe (share
   the previous holder's result).

4. **AdmissionController** — global in-flight cap with ``ordered``,
   ``stack`` or ``reject`` queueing.

5. **RequestClient** — the per-call lifecycle tying the above together
   around an injectable transport.
"""

from .admission import AdmissionController, PendingTask
from .base import (
    AdmissionDropError,
    BufferedResponse,
    CancellationError,
    ConductorError,
    HTTPStatusError,
    RequestInit,
    Response,
    Transport,
    TransportError,
)
from .client import Cancelable, RequestClient
from .keys import KeyCoordinator, KeyRecord
from .models import (
    ClientConfig,
    FinishInfo,
    Hooks,
    QueueStrategy,
    RequestOptions,
    RetryPolicy,
    StartInfo,
)
from .parsers import classify_content_type, default_parser
from .retry import RetryExecutor, compute_backoff_delay
from .signals import CancellationToken, compose_tokens, guard

__all__ = [
    "AdmissionController",
    "AdmissionDropError",
    "BufferedResponse",
    "Cancelable",
    "CancellationError",
    "CancellationToken",
    "ClientConfig",
    "ConductorError",
    "FinishInfo",
    "HTTPStatusError",
    "Hooks",
    "KeyCoordinator",
    "KeyRecord",
    "PendingTask",
    "QueueStrategy",
    "RequestClient",
    "RequestInit",
    "RequestOptions",
    "Response",
    "RetryExecutor",
    "RetryPolicy",
    "StartInfo",
    "Transport",
    "TransportError",
    "classify_content_type",
    "compose_tokens",
    "compute_backoff_delay",
    "default_parser",
    "guard",
]
