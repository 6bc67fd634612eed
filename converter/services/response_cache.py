"""Shared response cache for cacheable HTML (edge-cache stand-in).

Design:
    - In-process map keyed by the normalized request URL; entries expire after
      the ``s-maxage`` the response itself advertised.
    - Bounded: expired entries are purged on every store, then the least
      recently used entries are evicted down to ``max_entries``.
    - Last write wins; there is no invalidation hook and no single-flight:
      concurrent misses render independently and either result may be stored.
    - A response is stored only once its body has streamed to completion, so an
      aborted response never leaves a partial entry behind.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional, Tuple

from starlette.responses import Response

from .cache_policy import cache_key, parse_edge_ttl

logger = logging.getLogger("converter.cache")

_SKIP_HEADERS = {"content-length", "x-cache-status", "x-request-id"}


@dataclass
class CachedResponse:
    status_code: int
    headers: List[Tuple[str, str]]
    body: bytes
    expires_at: float = field(default=0.0)


class ResponseCache:
    def __init__(self, max_entries: int = 256) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, CachedResponse]" = OrderedDict()

    def get(self, key: str) -> Optional[CachedResponse]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= time.monotonic():
            self._entries.pop(key, None)
            return None
        self._entries.move_to_end(key)
        return entry

    def put(self, key: str, entry: CachedResponse, ttl_seconds: int) -> None:
        now = time.monotonic()
        self._purge_expired(now)
        entry.expires_at = now + ttl_seconds
        self._entries[key] = entry
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("cache EVICT %s", evicted)

    def _purge_expired(self, now: float) -> None:
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for k in expired:
            del self._entries[k]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    async def capture(
        self,
        key: str,
        body: AsyncIterator[bytes],
        status_code: int,
        headers: List[Tuple[str, str]],
        ttl_seconds: int,
    ) -> AsyncIterator[bytes]:
        parts: List[bytes] = []
        async for chunk in body:
            parts.append(chunk)
            yield chunk
        self.put(key, CachedResponse(status_code, headers, b"".join(parts)), ttl_seconds)
        logger.debug("cache STORE %s ttl=%s", key, ttl_seconds)


def make_edge_cache_middleware(cache: ResponseCache):
    async def edge_cache_middleware(request, call_next):  # type: ignore
        accept = request.headers.get("accept", "")
        if request.method != "GET" or "text/html" not in accept.lower():
            return await call_next(request)

        key = cache_key(str(request.url))
        hit = cache.get(key)
        if hit is not None:
            logger.debug("cache HIT %s", request.url.path, extra={"cache": "HIT"})
            response = Response(content=hit.body, status_code=hit.status_code)
            for name, value in hit.headers:
                response.headers.append(name, value)
            response.headers["X-Cache-Status"] = "HIT"
            return response

        logger.debug("cache MISS %s", request.url.path, extra={"cache": "MISS"})
        response = await call_next(request)
        ttl = parse_edge_ttl(response.headers.get("cache-control"))
        if response.status_code != 200 or ttl <= 0:
            return response
        response.headers["X-Cache-Status"] = "MISS"
        headers = [
            (k, v) for k, v in response.headers.items() if k.lower() not in _SKIP_HEADERS
        ]
        response.body_iterator = cache.capture(
            key, response.body_iterator, response.status_code, headers, ttl
        )
        return response

    return edge_cache_middleware
