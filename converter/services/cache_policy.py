"""Downstream caching decisions for rendered responses.

Pages carrying a live rate are never cached: a stale copy would present an
old rate as current. Everything else may sit in the shared edge cache for
``page_edge_ttl_seconds`` and in browsers for no longer than that.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from converter.core.config import Settings

CACHEABLE_METHODS = ("GET", "HEAD")
_DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class CacheDirective:
    browser_ttl_seconds: int
    edge_ttl_seconds: int
    bypass: bool = False

    def __post_init__(self) -> None:
        if self.browser_ttl_seconds < 0 or self.edge_ttl_seconds < 0:
            raise ValueError("cache TTLs must be non-negative")
        if self.bypass and (self.browser_ttl_seconds or self.edge_ttl_seconds):
            raise ValueError("a bypass directive carries zero TTLs")

    @classmethod
    def no_store(cls) -> "CacheDirective":
        return cls(browser_ttl_seconds=0, edge_ttl_seconds=0, bypass=True)

    @property
    def shared_cacheable(self) -> bool:
        return not self.bypass and self.edge_ttl_seconds > 0


def _is_html(accept: str | None) -> bool:
    return "text/html" in (accept or "").lower()


def decide_cache_directive(
    method: str, accept: str | None, rate_sensitive: bool, settings: Settings
) -> CacheDirective:
    if method.upper() not in CACHEABLE_METHODS:
        return CacheDirective.no_store()
    if rate_sensitive:
        if _is_html(accept):
            return CacheDirective.no_store()
        # machine clients get a short private-cache window and no shared copy
        return CacheDirective(
            browser_ttl_seconds=settings.api_browser_ttl_seconds, edge_ttl_seconds=0
        )
    edge = settings.page_edge_ttl_seconds
    return CacheDirective(
        browser_ttl_seconds=min(settings.page_browser_ttl_seconds, edge),
        edge_ttl_seconds=edge,
    )


def cache_headers(directive: CacheDirective) -> Dict[str, str]:
    if directive.bypass:
        return {
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "Pragma": "no-cache",
            "Expires": "0",
        }
    value = f"public, max-age={directive.browser_ttl_seconds}"
    if directive.edge_ttl_seconds:
        value += f", s-maxage={directive.edge_ttl_seconds}"
    return {"Cache-Control": value}


def cache_key(url: str) -> str:
    """Normalized absolute URL identifying a cached GET response."""
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    port = parts.port
    netloc = host if port is None or port == _DEFAULT_PORTS.get(scheme) else f"{host}:{port}"
    query = urlencode(sorted(parse_qsl(parts.query, keep_blank_values=True)))
    return urlunsplit((scheme, netloc, parts.path or "/", query, ""))


def parse_edge_ttl(cache_control: str | None) -> int:
    """Shared-cache lifetime a response's Cache-Control allows (0 = none)."""
    if not cache_control:
        return 0
    directives = [d.strip().lower() for d in cache_control.split(",")]
    if any(d in ("no-store", "no-cache", "private") for d in directives):
        return 0
    for d in directives:
        if d.startswith("s-maxage="):
            try:
                return max(int(d.split("=", 1)[1]), 0)
            except ValueError:
                return 0
    return 0
