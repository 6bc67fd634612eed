"""Template byte streams for the page pipeline.

``open()`` is split in two: it confirms the template is available (raising
``TemplateUnavailable`` otherwise) and only then hands back the stream, so a
missing template fails the request before any rewriting starts.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import AsyncIterator, Iterator, Optional

import httpx
from starlette.concurrency import iterate_in_threadpool

from converter.core.config import Settings
from converter.core.errors import TemplateUnavailable

logger = logging.getLogger("converter.templates")

CHUNK_SIZE = 16 * 1024


class TemplateStore(ABC):
    @abstractmethod
    async def open(self, path: str) -> AsyncIterator[bytes]:
        """Return a byte stream for ``path`` or raise TemplateUnavailable."""
        raise NotImplementedError


def _read_chunks(file_path: Path) -> Iterator[bytes]:
    with file_path.open("rb") as fh:
        while True:
            chunk = fh.read(CHUNK_SIZE)
            if not chunk:
                break
            yield chunk


async def _stream_file(file_path: Path) -> AsyncIterator[bytes]:
    chunks = _read_chunks(file_path)
    try:
        async for chunk in iterate_in_threadpool(chunks):
            yield chunk
    finally:
        chunks.close()


class FileTemplateStore(TemplateStore):
    def __init__(self, root: Path):
        self.root = Path(root).resolve()

    def _resolve(self, path: str) -> Path:
        candidate = (self.root / path.lstrip("/")).resolve()
        if self.root not in candidate.parents or not candidate.is_file():
            logger.warning("template %s not found under %s", path, self.root)
            raise TemplateUnavailable("Template not found")
        return candidate

    async def open(self, path: str) -> AsyncIterator[bytes]:
        file_path = self._resolve(path)
        return _stream_file(file_path)


class HttpTemplateStore(TemplateStore):
    """Fetch templates from the static asset origin, streaming the body."""

    def __init__(self, base_url: str, *, timeout: float = 5.0, client: Optional[httpx.AsyncClient] = None):
        self.base_url = str(base_url)
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def open(self, path: str) -> AsyncIterator[bytes]:
        request = self._client.build_request("GET", path)
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            logger.warning("template fetch failed for %s: %s", path, e)
            raise TemplateUnavailable("Template not found") from e
        if response.status_code != 200:
            await response.aclose()
            logger.warning("template %s returned HTTP %s", path, response.status_code)
            raise TemplateUnavailable("Template not found")
        return self._stream(response)

    @staticmethod
    async def _stream(response: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        finally:
            await response.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()


def make_template_store(settings: Settings) -> TemplateStore:
    if settings.template_source == "http":
        return HttpTemplateStore(
            str(settings.template_base_url), timeout=settings.http_timeout_seconds
        )
    return FileTemplateStore(settings.static_dir)
