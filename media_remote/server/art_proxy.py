"""
Album art proxy.

Normalizes the two art transports players report (local file and remote
HTTP URL) into one streamed response with content headers. Neither path
loads the whole image into memory.
"""

import asyncio
import logging
import mimetypes
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, BinaryIO, Optional
from urllib.parse import unquote, urlparse

import aiohttp
from aiohttp import ClientSession, ClientTimeout

from media_remote.exceptions import (
    ArtIOError,
    ArtNotFoundError,
    FetchError,
    UnsupportedArtError,
)

logger = logging.getLogger(__name__)

STREAM_CHUNK_SIZE = 64 * 1024  # 64KB chunks
CONNECT_TIMEOUT_SECONDS = 10.0

# Upstream headers forwarded to the client, only when present
FORWARDED_HEADERS = ("Content-Length", "Content-Type")


class ArtKind(Enum):
    """Shape of an art reference."""

    ABSENT = "absent"
    LOCAL = "local"
    REMOTE = "remote"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class ArtReference:
    """
    Where a player says its current art lives.

    location is a filesystem path for LOCAL, the URL for REMOTE and the raw
    reference for UNSUPPORTED.
    """

    kind: ArtKind
    location: str = ""

    @classmethod
    def parse(cls, art_url: Optional[str]) -> "ArtReference":
        """Classify a raw art URL reported by a player."""
        if not art_url:
            return cls(ArtKind.ABSENT)

        parsed = urlparse(art_url)
        scheme = parsed.scheme.lower()
        if scheme == "file":
            return cls(ArtKind.LOCAL, unquote(parsed.path))
        if scheme in ("http", "https"):
            return cls(ArtKind.REMOTE, art_url)
        return cls(ArtKind.UNSUPPORTED, art_url)


@dataclass
class ArtResource:
    """An opened art resource: headers to send and the body to stream."""

    chunks: AsyncIterator[bytes]
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def content_length(self) -> Optional[int]:
        value = self.headers.get("Content-Length")
        return int(value) if value is not None else None

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("Content-Type")


class ResourceProxy:
    """
    Opens art references as byte streams.

    Usage:
        proxy = ResourceProxy()
        async with proxy.open(ArtReference.parse(art_url)) as resource:
            async for chunk in resource.chunks:
                ...

    Raises from open():
        ArtNotFoundError: No art reference
        UnsupportedArtError: Reference scheme not implemented
        ArtIOError: Local file missing or unreadable
        FetchError: Remote fetch failed
    """

    def __init__(
        self,
        chunk_size: int = STREAM_CHUNK_SIZE,
        connect_timeout: float = CONNECT_TIMEOUT_SECONDS,
        session: Optional[ClientSession] = None,
    ):
        """
        Initialize art proxy.

        Args:
            chunk_size: Bytes per streamed chunk
            connect_timeout: Remote connect/read timeout (seconds)
            session: Shared client session; a fresh one per fetch if None
        """
        self._chunk_size = chunk_size
        self._connect_timeout = connect_timeout
        self._session = session

    @asynccontextmanager
    async def open(self, reference: ArtReference) -> AsyncIterator[ArtResource]:
        if reference.kind == ArtKind.ABSENT:
            raise ArtNotFoundError("Player reports no art")
        if reference.kind == ArtKind.UNSUPPORTED:
            raise UnsupportedArtError(reference.location)

        if reference.kind == ArtKind.LOCAL:
            async with self._open_local(reference.location) as resource:
                yield resource
        else:
            async with self._open_remote(reference.location) as resource:
                yield resource

    # =========================================================================
    # Local files
    # =========================================================================

    @asynccontextmanager
    async def _open_local(self, path: str) -> AsyncIterator[ArtResource]:
        loop = asyncio.get_running_loop()
        try:
            f = await loop.run_in_executor(None, open, path, "rb")
        except FileNotFoundError as e:
            raise ArtIOError(path, e.strerror or str(e), missing=True) from e
        except OSError as e:
            raise ArtIOError(path, e.strerror or str(e)) from e

        try:
            size = os.fstat(f.fileno()).st_size
            headers = {"Content-Length": str(size)}
            content_type, _ = mimetypes.guess_type(path)
            if content_type:
                headers["Content-Type"] = content_type

            logger.debug(f"Serving local art {path} ({size} bytes, {content_type})")
            yield ArtResource(chunks=self._iter_file(f, path), headers=headers)
        finally:
            f.close()

    async def _iter_file(self, f: BinaryIO, path: str) -> AsyncIterator[bytes]:
        loop = asyncio.get_running_loop()
        while True:
            try:
                chunk = await loop.run_in_executor(None, f.read, self._chunk_size)
            except OSError as e:
                raise ArtIOError(path, e.strerror or str(e)) from e
            if not chunk:
                return
            yield chunk

    # =========================================================================
    # Remote URLs
    # =========================================================================

    @asynccontextmanager
    async def _open_remote(self, url: str) -> AsyncIterator[ArtResource]:
        owns_session = self._session is None
        session = self._session or ClientSession(
            timeout=ClientTimeout(
                total=None,  # No total timeout for streaming
                connect=self._connect_timeout,
                sock_read=self._connect_timeout,
            )
        )

        try:
            try:
                # Identity encoding keeps the upstream Content-Length valid
                upstream = await session.get(url, headers={"Accept-Encoding": "identity"})
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise FetchError(f"Cannot fetch art from {url[:100]}: {e}") from e

            try:
                if not 200 <= upstream.status < 300:
                    raise FetchError(f"Upstream returned {upstream.status} for {url[:100]}")

                headers = {
                    name: upstream.headers[name]
                    for name in FORWARDED_HEADERS
                    if name in upstream.headers
                }
                logger.debug(f"Proxying remote art {url[:100]}, headers: {headers}")
                yield ArtResource(chunks=self._iter_upstream(upstream, url), headers=headers)
            finally:
                upstream.release()
        finally:
            if owns_session:
                await session.close()

    async def _iter_upstream(
        self,
        upstream: aiohttp.ClientResponse,
        url: str,
    ) -> AsyncIterator[bytes]:
        try:
            async for chunk in upstream.content.iter_chunked(self._chunk_size):
                yield chunk
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError(f"Upstream stream failed for {url[:100]}: {e}") from e
