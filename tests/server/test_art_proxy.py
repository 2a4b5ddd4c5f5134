"""Tests for the album art proxy."""

import asyncio
import socket

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from media_remote.exceptions import (
    ArtIOError,
    ArtNotFoundError,
    FetchError,
    UnsupportedArtError,
)
from media_remote.server.art_proxy import ArtKind, ArtReference, ResourceProxy

IMAGE_BYTES = bytes(range(256)) * 40  # 10240 bytes


async def _read_all(resource) -> bytes:
    data = b""
    async for chunk in resource.chunks:
        data += chunk
    return data


def _unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class TestArtReference:
    """Tests for ArtReference.parse()."""

    def test_absent(self) -> None:
        assert ArtReference.parse(None).kind == ArtKind.ABSENT
        assert ArtReference.parse("").kind == ArtKind.ABSENT

    def test_local_file(self) -> None:
        ref = ArtReference.parse("file:///home/user/cover.png")
        assert ref.kind == ArtKind.LOCAL
        assert ref.location == "/home/user/cover.png"

    def test_local_file_percent_decoded(self) -> None:
        ref = ArtReference.parse("file:///tmp/My%20Album/cover%231.jpg")
        assert ref.location == "/tmp/My Album/cover#1.jpg"

    def test_remote(self) -> None:
        for url in ("http://example.com/a.jpg", "https://i.scdn.co/image/ab67"):
            ref = ArtReference.parse(url)
            assert ref.kind == ArtKind.REMOTE
            assert ref.location == url

    def test_unsupported(self) -> None:
        ref = ArtReference.parse("data:image/png;base64,iVBORw0KGgo=")
        assert ref.kind == ArtKind.UNSUPPORTED


class TestLocalArt:
    """Tests for serving local art files."""

    async def test_streams_file_with_headers(self, tmp_path) -> None:
        path = tmp_path / "cover.png"
        path.write_bytes(IMAGE_BYTES)
        proxy = ResourceProxy(chunk_size=1024)

        async with proxy.open(ArtReference.parse(path.as_uri())) as resource:
            assert resource.content_length == len(IMAGE_BYTES)
            assert resource.content_type == "image/png"
            chunks = [chunk async for chunk in resource.chunks]

        assert b"".join(chunks) == IMAGE_BYTES
        assert len(chunks) == 10
        assert all(len(c) <= 1024 for c in chunks)

    async def test_path_with_spaces(self, tmp_path) -> None:
        album = tmp_path / "My Album"
        album.mkdir()
        path = album / "cover.jpg"
        path.write_bytes(b"jpeg")

        async with ResourceProxy().open(ArtReference.parse(path.as_uri())) as resource:
            assert await _read_all(resource) == b"jpeg"
            assert resource.content_type == "image/jpeg"

    async def test_unknown_type_has_no_content_type(self, tmp_path) -> None:
        path = tmp_path / "cover"
        path.write_bytes(b"bytes")

        async with ResourceProxy().open(ArtReference.parse(path.as_uri())) as resource:
            assert "Content-Type" not in resource.headers
            assert resource.content_length == 5

    async def test_missing_file(self, tmp_path) -> None:
        ref = ArtReference.parse((tmp_path / "missing.png").as_uri())

        with pytest.raises(ArtIOError) as exc_info:
            async with ResourceProxy().open(ref):
                pass
        assert exc_info.value.missing is True

    async def test_unreadable_path(self, tmp_path) -> None:
        ref = ArtReference(ArtKind.LOCAL, str(tmp_path))  # a directory

        with pytest.raises(ArtIOError) as exc_info:
            async with ResourceProxy().open(ref):
                pass
        assert exc_info.value.missing is False


class TestRemoteArt:
    """Tests for proxying remote art."""

    async def test_streams_upstream_with_headers(self) -> None:
        async def handle(request: web.Request) -> web.Response:
            return web.Response(body=IMAGE_BYTES, content_type="image/jpeg")

        app = web.Application()
        app.router.add_get("/cover.jpg", handle)

        async with TestServer(app) as server:
            url = str(server.make_url("/cover.jpg"))
            async with ResourceProxy(chunk_size=4096).open(ArtReference.parse(url)) as resource:
                assert resource.content_type == "image/jpeg"
                assert resource.content_length == len(IMAGE_BYTES)
                assert await _read_all(resource) == IMAGE_BYTES

    async def test_no_fabricated_content_type(self) -> None:
        """Headers the upstream omits are not invented."""

        async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
            await reader.readuntil(b"\r\n\r\n")
            writer.write(
                b"HTTP/1.1 200 OK\r\n"
                b"Content-Length: 5\r\n"
                b"Connection: close\r\n"
                b"\r\n"
                b"hello"
            )
            await writer.drain()
            writer.close()

        server = await asyncio.start_server(handle, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        try:
            url = f"http://127.0.0.1:{port}/cover"
            async with ResourceProxy().open(ArtReference.parse(url)) as resource:
                assert resource.headers == {"Content-Length": "5"}
                assert resource.content_type is None
                assert await _read_all(resource) == b"hello"
        finally:
            server.close()
            await server.wait_closed()

    async def test_upstream_error_status(self) -> None:
        app = web.Application()

        async with TestServer(app) as server:
            url = str(server.make_url("/missing.jpg"))
            with pytest.raises(FetchError, match="404"):
                async with ResourceProxy().open(ArtReference.parse(url)):
                    pass

    async def test_connection_refused(self) -> None:
        url = f"http://127.0.0.1:{_unused_port()}/cover.jpg"

        with pytest.raises(FetchError):
            async with ResourceProxy(connect_timeout=2.0).open(ArtReference.parse(url)):
                pass


class TestUnavailableArt:
    async def test_absent(self) -> None:
        with pytest.raises(ArtNotFoundError):
            async with ResourceProxy().open(ArtReference.parse(None)):
                pass

    async def test_unsupported_scheme(self) -> None:
        with pytest.raises(UnsupportedArtError) as exc_info:
            async with ResourceProxy().open(ArtReference.parse("data:image/png;base64,AAAA")):
                pass
        assert exc_info.value.reference.startswith("data:")
