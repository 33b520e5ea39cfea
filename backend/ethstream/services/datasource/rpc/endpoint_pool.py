from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Tuple

from ethstream.exceptions import PoolEmptyError

logger = logging.getLogger(__name__)


def _normalize_url(url: str) -> str:
    return str(url).strip()


def dedupe_endpoints(urls: Iterable[str]) -> List[str]:
    """Drop blanks and duplicates while preserving original ordering."""

    seen = set()
    out: List[str] = []
    for url in urls:
        norm = _normalize_url(url)
        if not norm or norm in seen:
            continue
        seen.add(norm)
        out.append(norm)
    return out


class EndpointPool:
    """
    Strict round-robin rotation over JSON-RPC endpoint URLs.

    The pool keeps no health memory; failover is the caller's job. The
    endpoint tuple and cursor are only touched under the lock so concurrent
    callers each get their own cursor position and never see a half-applied
    ``replace``.
    """

    def __init__(self, endpoints: Iterable[str] = ()) -> None:
        self._lock = asyncio.Lock()
        self._endpoints: Tuple[str, ...] = tuple(dedupe_endpoints(endpoints))
        self._cursor: int = 0

    async def replace(self, endpoints: Iterable[str]) -> None:
        fresh = tuple(dedupe_endpoints(endpoints))
        async with self._lock:
            self._endpoints = fresh
            self._cursor = 0
        logger.info("Endpoint pool replaced with %d endpoints", len(fresh))

    async def next(self) -> str:
        async with self._lock:
            if not self._endpoints:
                raise PoolEmptyError()
            idx = self._cursor
            endpoint = self._endpoints[idx]
            self._cursor = (idx + 1) % len(self._endpoints)
            return endpoint

    def size(self) -> int:
        return len(self._endpoints)

    @property
    def cursor(self) -> int:
        return self._cursor

    def snapshot(self) -> Tuple[str, ...]:
        return self._endpoints
