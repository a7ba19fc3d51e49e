"""Client-side request orchestration."""

from .engine import (
    AdmissionDropError,
    BufferedResponse,
    Cancelable,
    CancellationError,
    CancellationToken,
    ClientConfig,
    ConductorError,
    FinishInfo,
    HTTPStatusError,
    Hooks,
    RequestClient,
    RequestInit,
    RequestOptions,
    Response,
    RetryPolicy,
    StartInfo,
    TransportError,
)

__all__ = [
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
    "RequestClient",
    "RequestInit",
    "RequestOptions",
    "Response",
    "RetryPolicy",
    "StartInfo",
    "TransportError",
]
