"""
Player backends module.

Provides the player-control capability interface, the directory over it,
and the factory for concrete backends.
"""

from .base import PlayerBackend, PlayerHandle
from .directory import PlayerDirectory
from .factory import (
    BackendFactory,
    BackendNotFoundError,
    BackendRegistry,
)
from .types import (
    CapabilityFlags,
    PlaybackStatus,
    PlayerFields,
    PlayerInfo,
)
from .mpris import MprisBackend

__all__ = [
    # Types
    "CapabilityFlags",
    "PlaybackStatus",
    "PlayerFields",
    "PlayerInfo",
    # Base classes
    "PlayerBackend",
    "PlayerHandle",
    # Directory
    "PlayerDirectory",
    # Factory
    "BackendFactory",
    "BackendNotFoundError",
    "BackendRegistry",
    # MPRIS backend
    "MprisBackend",
]
