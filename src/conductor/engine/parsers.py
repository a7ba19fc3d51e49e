"""Default response parser, selected by content classification."""

from __future__ import annotations

from typing import Any, Literal

from .base import Response

ContentKind = Literal["json", "text", "binary"]

_JSON_MARKER = "json"
_TEXT_PREFIX = "text/"


def classify_content_type(content_type: str) -> ContentKind:
    """Map a ``Content-Type`` header value to the parser that handles it."""
    media_type = content_type.split(";", 1)[0].strip().lower()
    if media_type == "application/json" or media_type.endswith("+json"):
        return "json"
    if _JSON_MARKER in media_type and not media_type.startswith(_TEXT_PREFIX):
        return "json"
    if media_type.startswith(_TEXT_PREFIX):
        return "text"
    return "binary"


async def default_parser(response: Response) -> Any:
    """JSON bodies decode to Python objects, ``text/*`` to ``str``, else ``bytes``."""
    kind = classify_content_type(response.content_type)
    if kind == "json":
        return await response.json()
    if kind == "text":
        return await response.text()
    return await response.read()
