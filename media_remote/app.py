"""
MediaRemote Application.

Main orchestrator that wires together all components and manages lifecycle.
"""

import asyncio
import logging
import signal
from pathlib import Path
from typing import Optional

from aiohttp import web

from media_remote.config import Config
from media_remote.players import BackendFactory, PlayerBackend, PlayerDirectory
from media_remote.server import (
    ApiRoutes,
    CommandDispatcher,
    EventStreamEncoder,
    ResourceProxy,
    create_web_app,
)
from media_remote.state import SnapshotBroadcaster

logger = logging.getLogger(__name__)


class MediaRemote:
    """
    Main MediaRemote application.

    Orchestrates all components:
    - Player backend and directory (MprisBackend, PlayerDirectory)
    - Live state (SnapshotBroadcaster, EventStreamEncoder)
    - Album art (ResourceProxy)
    - Transport commands (CommandDispatcher)
    - HTTP server (aiohttp)

    Usage:
        config = load_config(...)
        app = MediaRemote(config)
        await app.run()
    """

    def __init__(self, config: Config, backend: Optional[PlayerBackend] = None):
        """
        Initialize MediaRemote.

        Args:
            config: Validated configuration
            backend: Connected backend to use instead of the configured one
        """
        self._config = config
        self._is_running = False
        self._shutdown_event = asyncio.Event()

        # Components (initialized in start())
        self._backend: Optional[PlayerBackend] = backend
        self._directory: Optional[PlayerDirectory] = None
        self._broadcaster: Optional[SnapshotBroadcaster] = None
        self._web_app: Optional[web.Application] = None
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None

    def build_web_app(self, backend: PlayerBackend) -> web.Application:
        """Create the core components over a backend and the aiohttp app serving them."""
        self._directory = PlayerDirectory(backend)
        self._broadcaster = SnapshotBroadcaster(
            self._directory,
            event_wait=self._config.stream.event_wait_seconds,
        )
        routes = ApiRoutes(
            directory=self._directory,
            broadcaster=self._broadcaster,
            proxy=ResourceProxy(
                chunk_size=self._config.art.chunk_size,
                connect_timeout=self._config.art.connect_timeout_seconds,
            ),
            dispatcher=CommandDispatcher(self._directory),
            encoder=EventStreamEncoder(keepalive_seconds=self._config.stream.keepalive_seconds),
        )

        static_dir = Path(self._config.server.static_dir) if self._config.server.static_dir else None
        return create_web_app(routes, static_dir=static_dir)

    async def start(self) -> None:
        """
        Start MediaRemote and all components.

        Startup order:
        1. Player backend
        2. Directory, broadcaster, proxy and dispatcher
        3. HTTP server

        Raises:
            BackendNotFoundError: If the player backend is unavailable
            OSError: If the HTTP port cannot be bound
        """
        logger.info("Starting MediaRemote...")

        # 1. Create player backend
        if self._backend is None:
            logger.debug("Creating player backend...")
            loop = asyncio.get_running_loop()
            self._backend = await loop.run_in_executor(
                None, BackendFactory.create_from_config, self._config
            )
        logger.info(f"Using player backend: {self._backend.name}")

        # 2. Core components
        self._web_app = self.build_web_app(self._backend)

        # 3. HTTP server
        self._runner = web.AppRunner(self._web_app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self._config.server.host, self._config.server.port)
        await self._site.start()

        self._is_running = True
        logger.info(
            f"MediaRemote listening on {self._config.server.host}:{self._config.server.port}"
        )

    async def stop(self) -> None:
        """
        Stop MediaRemote and all components.

        Shutdown order (reverse of startup):
        1. Close live subscriptions
        2. Stop HTTP server
        3. Disconnect backend
        """
        if not self._is_running:
            return

        logger.info("Stopping MediaRemote...")
        self._is_running = False

        # 1. Close live subscriptions so watcher threads exit
        if self._broadcaster:
            self._broadcaster.close_all()

        # 2. Stop HTTP server
        if self._runner:
            try:
                await self._runner.cleanup()
            except Exception as e:
                logger.warning(f"Error stopping HTTP server: {e}")
            self._runner = None
            self._site = None

        # 3. Disconnect backend
        if self._backend:
            try:
                self._backend.disconnect()
            except Exception as e:
                logger.warning(f"Error disconnecting backend: {e}")

        logger.info("MediaRemote stopped")

    async def run(self) -> None:
        """
        Run MediaRemote until interrupted.

        Sets up signal handlers for graceful shutdown on SIGINT/SIGTERM.
        """
        loop = asyncio.get_running_loop()

        def handle_signal() -> None:
            logger.info("Shutdown signal received")
            self._shutdown_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, handle_signal)

        try:
            await self.start()

            # Wait for shutdown signal
            await self._shutdown_event.wait()

        finally:
            await self.stop()

    def request_shutdown(self) -> None:
        """Ask run() to return."""
        self._shutdown_event.set()

    @property
    def is_running(self) -> bool:
        """Check if the application is running."""
        return self._is_running

    @property
    def directory(self) -> Optional[PlayerDirectory]:
        return self._directory

    @property
    def broadcaster(self) -> Optional[SnapshotBroadcaster]:
        return self._broadcaster
