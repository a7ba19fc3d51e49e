"""Default transport built on ``httpx.AsyncClient``.

Pure infra — the engine only sees the ``Transport`` callable contract.
"""

from __future__ import annotations

import logging

import httpx

from conductor.configs.system import TransportConfig
from conductor.engine.base import BufferedResponse, RequestInit, TransportError
from conductor.engine.signals import CancellationToken

logger = logging.getLogger(__name__)


def to_response(response: httpx.Response) -> BufferedResponse:
    """Wrap an already-read ``httpx.Response``."""
    return BufferedResponse(
        status=response.status_code,
        body=response.content,
        headers=dict(response.headers),
        reason=response.reason_phrase,
    )


class HttpxTransport:
    """Async HTTP transport for ``RequestClient``.

    Cancellation arrives as ``asyncio`` task cancellation (the engine
    races every transport call against its token), so the token is only
    checked once more before the request goes out.
    """

    def __init__(
        self,
        config: TransportConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        config = config or TransportConfig()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout.total_seconds(),
            follow_redirects=config.follow_redirects,
        )

    async def __call__(
        self, target: str, init: RequestInit, token: CancellationToken
    ) -> BufferedResponse:
        token.raise_if_fired()
        try:
            response = await self._client.request(
                init.method,
                target,
                headers=init.headers,
                params=init.params,
                content=init.content,
                json=init.json_data,
            )
        except httpx.TransportError as exc:
            logger.debug("Transport failure for %s %s: %s", init.method, target, exc)
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc
        return to_response(response)

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
