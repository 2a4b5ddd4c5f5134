"""
Player directory.

Stateless lookup layer over a player backend: every call re-queries the
backend, since player liveness cannot be assumed between calls.
"""

from __future__ import annotations

import logging
from typing import Optional

from media_remote.exceptions import DiscoveryError, PlayerVanishedError, TransportError

from .base import PlayerBackend, PlayerHandle
from .types import PlayerInfo

logger = logging.getLogger(__name__)


class PlayerDirectory:
    """
    Enumerates controllable players and resolves ids to live handles.

    Usage:
        directory = PlayerDirectory(backend)
        for player_id in directory.list():
            handle = directory.resolve(player_id)
    """

    def __init__(self, backend: PlayerBackend):
        self._backend = backend

    @property
    def backend(self) -> PlayerBackend:
        return self._backend

    def list(self) -> list[str]:
        """
        List ids of all currently active players.

        Order is whatever the backend enumeration yields.

        Raises:
            DiscoveryError: If the enumeration mechanism cannot be reached
        """
        try:
            return list(self._backend.list_players())
        except TransportError as e:
            raise DiscoveryError(f"Cannot enumerate players: {e}") from e

    def describe(self) -> list[PlayerInfo]:
        """List display information for all active players."""
        try:
            return self._backend.list_player_info()
        except TransportError as e:
            raise DiscoveryError(f"Cannot enumerate players: {e}") from e

    def resolve(self, player_id: str) -> Optional[PlayerHandle]:
        """
        Resolve a player id to a live handle.

        A player that vanishes mid-lookup resolves to None rather than
        raising. Only a backend-level connectivity failure propagates.

        Raises:
            DiscoveryError: If the backend cannot be reached
        """
        try:
            handle = self._backend.resolve(player_id)
        except PlayerVanishedError:
            logger.debug(f"Player {player_id} vanished during lookup")
            return None
        except TransportError as e:
            raise DiscoveryError(f"Cannot resolve player {player_id}: {e}") from e

        if handle is not None and handle.player_id != player_id:
            logger.warning(
                f"Backend resolved {player_id} to mismatched handle {handle.player_id}"
            )
            handle.close()
            return None
        return handle
