"""
HTTP API.

aiohttp routes for listing players, streaming their state, proxying album
art and sending transport commands. Exceptions from the core are turned
into status codes here.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from aiohttp import hdrs, web

from media_remote.exceptions import (
    ArtIOError,
    ArtNotFoundError,
    DiscoveryError,
    FetchError,
    PlayerNotFoundError,
    PlayerVanishedError,
    TransportError,
    UnsupportedArtError,
)
from media_remote.players.directory import PlayerDirectory
from media_remote.state.broadcaster import SnapshotBroadcaster

from .art_proxy import ArtReference, ResourceProxy
from .commands import Command, CommandDispatcher
from .event_stream import EventStreamEncoder

logger = logging.getLogger(__name__)

API_PREFIX = "/api"

# Request key: art responses whose source named no content type
OMIT_CONTENT_TYPE = "media_remote.omit_content_type"


class ApiRoutes:
    """
    Request handlers for the /api surface.

    Usage:
        routes = ApiRoutes(directory, broadcaster, proxy, dispatcher, encoder)
        app = web.Application()
        routes.register(app)
    """

    def __init__(
        self,
        directory: PlayerDirectory,
        broadcaster: SnapshotBroadcaster,
        proxy: ResourceProxy,
        dispatcher: CommandDispatcher,
        encoder: EventStreamEncoder,
    ):
        self._directory = directory
        self._broadcaster = broadcaster
        self._proxy = proxy
        self._dispatcher = dispatcher
        self._encoder = encoder

    def register(self, app: web.Application, prefix: str = API_PREFIX) -> None:
        app.router.add_get(f"{prefix}/list", self._handle_list)
        app.router.add_get(f"{prefix}/metadata/{{player_id}}", self._handle_metadata)
        app.router.add_get(f"{prefix}/icon/{{player_id}}/{{cache_token}}", self._handle_icon)
        app.router.add_post(f"{prefix}/playpause/{{player_id}}", self._handle_play_pause)
        app.router.add_post(f"{prefix}/seek/{{player_id}}/{{delta_us}}", self._handle_seek)
        app.router.add_post(f"{prefix}/next/{{player_id}}", self._handle_next)
        app.router.add_post(f"{prefix}/prev/{{player_id}}", self._handle_previous)
        app.on_response_prepare.append(_drop_default_content_type)

    # =========================================================================
    # Listing
    # =========================================================================

    async def _handle_list(self, request: web.Request) -> web.Response:
        loop = asyncio.get_running_loop()
        try:
            player_ids = await loop.run_in_executor(None, self._directory.list)
        except DiscoveryError as e:
            logger.error(f"Player listing failed: {e}")
            return web.Response(status=503, text=f"Player discovery unavailable: {e}")
        return web.json_response(player_ids)

    # =========================================================================
    # Live state
    # =========================================================================

    async def _handle_metadata(self, request: web.Request) -> web.StreamResponse:
        player_id = request.match_info["player_id"]
        subscription = self._broadcaster.subscribe(player_id)

        try:
            ready = await subscription.wait_ready()
        except BaseException:
            subscription.close()
            raise

        if not ready:
            error = subscription.error
            subscription.close()
            if isinstance(error, PlayerNotFoundError):
                return web.Response(status=404, text=f"player {player_id} not found")
            if isinstance(error, DiscoveryError):
                return web.Response(status=503, text=f"Player discovery unavailable: {error}")
            logger.warning(f"State stream for {player_id} failed before first update: {error}")
            return web.Response(status=500, text=f"Cannot read player state: {error}")

        logger.debug(f"Opening state stream for {player_id}")
        return await self._encoder.stream(request, subscription)

    # =========================================================================
    # Album art
    # =========================================================================

    def _read_art_url(self, player_id: str) -> Optional[str]:
        handle = self._directory.resolve(player_id)
        if handle is None:
            raise PlayerNotFoundError(player_id)
        try:
            return handle.get_snapshot_fields().art_url
        finally:
            handle.close()

    async def _handle_icon(self, request: web.Request) -> web.StreamResponse:
        # cache_token only busts client caches; it is not checked
        player_id = request.match_info["player_id"]
        loop = asyncio.get_running_loop()

        try:
            art_url = await loop.run_in_executor(None, self._read_art_url, player_id)
        except (PlayerNotFoundError, PlayerVanishedError):
            return web.Response(status=404, text=f"player {player_id} not found")
        except DiscoveryError as e:
            return web.Response(status=503, text=f"Player discovery unavailable: {e}")
        except TransportError as e:
            logger.error(f"Cannot read art reference for {player_id}: {e}")
            return web.Response(status=500, text=f"Cannot read player state: {e}")

        response: Optional[web.StreamResponse] = None
        try:
            async with self._proxy.open(ArtReference.parse(art_url)) as resource:
                response = web.StreamResponse(status=200, headers=resource.headers)
                if resource.content_type is None:
                    request[OMIT_CONTENT_TYPE] = True
                await response.prepare(request)

                bytes_sent = 0
                async for chunk in resource.chunks:
                    await response.write(chunk)
                    bytes_sent += len(chunk)

                await response.write_eof()
                logger.debug(f"Sent art for {player_id}, {bytes_sent} bytes")
                return response

        except ArtNotFoundError:
            return web.Response(status=404, text="no art")
        except UnsupportedArtError as e:
            return web.Response(status=501, text=str(e))
        except (ArtIOError, FetchError) as e:
            if response is not None and response.prepared:
                logger.warning(f"Art stream for {player_id} aborted: {e}")
                return response
            logger.warning(f"Art for {player_id} unavailable: {e}")
            if isinstance(e, FetchError):
                return web.Response(status=502, text=str(e))
            return web.Response(status=404 if e.missing else 500, text=str(e))
        except (ConnectionResetError, ConnectionError) as e:
            # Client went away mid-image
            logger.debug(f"Client closed art request for {player_id}: {type(e).__name__}")
            return response if response is not None else web.Response(status=499)

    # =========================================================================
    # Commands
    # =========================================================================

    async def _run_command(
        self,
        request: web.Request,
        command: Command,
        delta_us: Optional[int] = None,
    ) -> web.Response:
        player_id = request.match_info["player_id"]
        result = await self._dispatcher.dispatch(command, player_id, delta_us)
        return web.Response(status=result.http_status, text=result.message)

    async def _handle_play_pause(self, request: web.Request) -> web.Response:
        return await self._run_command(request, Command.PLAY_PAUSE)

    async def _handle_seek(self, request: web.Request) -> web.Response:
        raw = request.match_info["delta_us"]
        try:
            delta_us = int(raw)
        except ValueError:
            return web.Response(status=400, text=f"invalid seek offset: {raw}")
        return await self._run_command(request, Command.SEEK, delta_us)

    async def _handle_next(self, request: web.Request) -> web.Response:
        return await self._run_command(request, Command.NEXT)

    async def _handle_previous(self, request: web.Request) -> web.Response:
        return await self._run_command(request, Command.PREVIOUS)


async def _drop_default_content_type(
    request: web.Request, response: web.StreamResponse
) -> None:
    # aiohttp fills in application/octet-stream before this signal fires
    if request.get(OMIT_CONTENT_TYPE):
        response.headers.pop(hdrs.CONTENT_TYPE, None)


def add_static_client(app: web.Application, static_dir: Path) -> None:
    """Serve a web client directory at "/", with index.html for the root."""
    index = static_dir / "index.html"

    async def handle_index(request: web.Request) -> web.StreamResponse:
        if not index.is_file():
            raise web.HTTPNotFound()
        return web.FileResponse(index)

    app.router.add_get("/", handle_index)
    app.router.add_static("/", static_dir, show_index=False)


def create_web_app(
    routes: ApiRoutes,
    static_dir: Optional[Path] = None,
) -> web.Application:
    """Build the aiohttp application: API routes, then the optional web client."""
    app = web.Application()
    routes.register(app)
    if static_dir is not None:
        add_static_client(app, static_dir)
        logger.info(f"Serving web client from {static_dir}")
    return app
