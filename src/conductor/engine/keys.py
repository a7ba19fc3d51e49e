"""Per-key coordination: supersede and dedupe of in-flight calls."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from .signals import REASON_SUPERSEDED, CancellationToken

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class KeyRecord:
    """The running attempt currently holding a coordination key."""

    token: CancellationToken
    result: asyncio.Future[Any]
    started_at: float
    followers: int = field(default=0)


class KeyCoordinator:
    """Registry of at most one ``KeyRecord`` per coordination key.

    A record belongs to the most recently *started* attempt for its key
    and is removed exactly once, by that attempt, when it settles (or
    earlier by a superseding attempt).
    """

    def __init__(self) -> None:
        self._records: dict[str, KeyRecord] = {}

    def lookup(self, key: str) -> KeyRecord | None:
        return self._records.get(key)

    def supersede(self, key: str) -> KeyRecord | None:
        """Abort and forget the current holder of *key*, if any."""
        record = self._records.pop(key, None)
        if record is None:
            return None
        logger.debug("Superseding in-flight request for key %r", key)
        record.token.fire(REASON_SUPERSEDED)
        return record

    def install(self, key: str, record: KeyRecord) -> None:
        self._records[key] = record

    def remove(self, key: str, record: KeyRecord) -> bool:
        """Remove *record* if it still holds *key*."""
        if self._records.get(key) is not record:
            return False
        del self._records[key]
        return True

    def keys(self) -> dict[str, float]:
        """``{key: started_at}`` for every key with a running holder."""
        return {key: record.started_at for key, record in self._records.items()}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records
