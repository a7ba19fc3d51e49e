"""Engine primitives: error taxonomy and the transport-facing response."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from .signals import CancellationToken

_CONTENT_TYPE_HEADER = "content-type"
_DEFAULT_CHARSET = "utf-8"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConductorError(Exception):
    """Base class for every failure surfaced on a call's result future."""


class TransportError(ConductorError):
    """Raised when the transport fails before any response exists."""


class HTTPStatusError(ConductorError):
    """Raised when a response arrives with a non-success status."""

    def __init__(self, response: Response) -> None:
        reason = f" {response.reason}" if response.reason else ""
        super().__init__(f"HTTP {response.status}{reason}")
        self.response = response

    @property
    def status(self) -> int:
        return self.response.status


class CancellationError(ConductorError):
    """Raised when a call is aborted by its caller, a timeout or a supersede."""

    def __init__(self, reason: str = "cancelled") -> None:
        super().__init__(f"Request aborted: {reason}")
        self.reason = reason


class AdmissionDropError(ConductorError):
    """Raised when a call is rejected at capacity under the reject strategy."""


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class Response(ABC):
    """What a transport hands back: status, headers and a consumable body."""

    @property
    @abstractmethod
    def status(self) -> int:
        """Numeric HTTP status code."""

    @property
    @abstractmethod
    def headers(self) -> Mapping[str, str]:
        """Response headers (lookups should be case-insensitive)."""

    @property
    def reason(self) -> str:
        return ""

    @abstractmethod
    async def read(self) -> bytes:
        """Consume and return the raw body."""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_type(self) -> str:
        return self.headers.get(_CONTENT_TYPE_HEADER, "")

    @property
    def charset(self) -> str:
        for part in self.content_type.split(";")[1:]:
            name, _, value = part.strip().partition("=")
            if name.lower() == "charset" and value:
                return value.strip('"')
        return _DEFAULT_CHARSET

    async def text(self) -> str:
        return (await self.read()).decode(self.charset, errors="replace")

    async def json(self) -> Any:
        return json.loads(await self.read())


class BufferedResponse(Response):
    """Response whose body is already fully in memory."""

    def __init__(
        self,
        status: int,
        body: bytes = b"",
        headers: Mapping[str, str] | None = None,
        reason: str = "",
    ) -> None:
        self._status = status
        self._body = body
        self._headers = {k.lower(): v for k, v in (headers or {}).items()}
        self._reason = reason

    @property
    def status(self) -> int:
        return self._status

    @property
    def headers(self) -> Mapping[str, str]:
        return self._headers

    @property
    def reason(self) -> str:
        return self._reason

    async def read(self) -> bytes:
        return self._body

    def __repr__(self) -> str:
        return f"BufferedResponse(status={self._status}, bytes={len(self._body)})"


# ---------------------------------------------------------------------------
# Transport contract
# ---------------------------------------------------------------------------


class RequestInit(BaseModel):
    """Transport-level parameters of one call (method, headers, body)."""

    model_config = ConfigDict(frozen=True)

    method: str = Field(default="GET", description="HTTP method")
    headers: dict[str, str] = Field(
        default_factory=dict, description="Request headers"
    )
    params: dict[str, str] | None = Field(
        default=None, description="Query string parameters"
    )
    content: bytes | str | None = Field(
        default=None, description="Raw request body"
    )
    json_data: Any = Field(
        default=None, description="Body serialised as JSON when set"
    )


# A transport receives the target, its init and the fully composed
# cancellation token, and returns a ``Response``.  Transports should raise
# ``TransportError`` for network failures; anything else they raise is
# wrapped by the engine.
Transport = Callable[[str, RequestInit, "CancellationToken"], Awaitable[Response]]
