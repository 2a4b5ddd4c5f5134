"""
Abstract player backend interface.

Defines the player-control capability surface the core consumes. All
methods are blocking; callers on the event loop run them in an executor.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from .types import CapabilityFlags, PlayerFields, PlayerInfo

logger = logging.getLogger(__name__)


class PlayerHandle(ABC):
    """
    Live handle to one player.

    Handles are borrowed for a single operation or subscription and must
    not be cached beyond it: the player may disappear at any time.
    """

    @property
    @abstractmethod
    def player_id(self) -> str:
        """Opaque id this handle was resolved from."""
        pass

    # =========================================================================
    # State - Required
    # =========================================================================

    @abstractmethod
    def get_snapshot_fields(self) -> PlayerFields:
        """
        Read the player's current state in one go.

        Raises:
            TransportError: If any part of the read fails
        """
        pass

    @abstractmethod
    def capability_flags(self) -> CapabilityFlags:
        """Read the transport operations the player currently permits."""
        pass

    @abstractmethod
    def wait_next_event(self, timeout: float) -> bool:
        """
        Block until the player emits a state change or the timeout elapses.

        Returns:
            True if an event arrived, False on timeout

        Raises:
            PlayerVanishedError: If the player went away while waiting
        """
        pass

    # =========================================================================
    # Capability-checked commands - Required
    # =========================================================================
    # Each returns False when the player's capability flags do not permit
    # the operation, True once the command was delivered.

    @abstractmethod
    def checked_play_pause(self) -> bool:
        pass

    @abstractmethod
    def checked_seek(self, delta_us: int) -> bool:
        pass

    @abstractmethod
    def checked_next(self) -> bool:
        pass

    @abstractmethod
    def checked_previous(self) -> bool:
        pass

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """Release event subscriptions held by this handle."""
        pass


class PlayerBackend(ABC):
    """
    Abstract base class for player-control backends.

    A backend enumerates the players available on this machine and resolves
    ids to live handles. Implementations may vary by platform without
    touching the core.
    """

    def __init__(self, name: str = "PlayerBackend"):
        """Initialize backend."""
        self.name = name
        self._is_connected: bool = False

    @abstractmethod
    def list_players(self) -> list[str]:
        """
        Enumerate ids of all currently active players.

        Raises:
            TransportError: If the enumeration mechanism cannot be reached
        """
        pass

    @abstractmethod
    def resolve(self, player_id: str) -> Optional[PlayerHandle]:
        """
        Return a handle for player_id, or None if no such player exists.

        Raises:
            PlayerVanishedError: If the player went away during lookup
            TransportError: If the backend itself cannot be reached
        """
        pass

    def list_player_info(self) -> list[PlayerInfo]:
        """Describe all active players. Backends may add display details."""
        return [PlayerInfo(player_id=player_id) for player_id in self.list_players()]

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @abstractmethod
    def connect(self) -> bool:
        """Initialize connection to backend. Returns True if successful."""
        pass

    def disconnect(self) -> None:
        """Disconnect and clean up backend resources."""
        self._is_connected = False

    def is_connected(self) -> bool:
        """Check if backend is connected."""
        return self._is_connected
