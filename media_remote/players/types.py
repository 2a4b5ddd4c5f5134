"""
Player backend types and enumerations.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class PlaybackStatus(str, Enum):
    """
    Playback status enumeration.

    Values match the MPRIS PlaybackStatus property strings.
    """

    PLAYING = "Playing"
    PAUSED = "Paused"
    STOPPED = "Stopped"


@dataclass(frozen=True)
class CapabilityFlags:
    """
    Transport operations a player currently permits.

    None means the player did not report the flag.
    """

    can_control: Optional[bool] = None
    can_play: Optional[bool] = None
    can_pause: Optional[bool] = None
    can_go_next: Optional[bool] = None
    can_go_previous: Optional[bool] = None
    can_seek: Optional[bool] = None

    def permits(self, *names: str) -> bool:
        """True only if every named flag is reported and set."""
        return all(getattr(self, name) is True for name in names)


@dataclass(frozen=True)
class PlayerFields:
    """
    Raw state read from a player at a single point in time.

    Positions and lengths are in microseconds.
    """

    status: PlaybackStatus
    position_us: Optional[int] = None
    length_us: Optional[int] = None
    title: Optional[str] = None
    art_url: Optional[str] = None
    rate: Optional[float] = None
    volume: Optional[float] = None
    capabilities: CapabilityFlags = field(default_factory=CapabilityFlags)

    @property
    def is_playing(self) -> bool:
        return self.status == PlaybackStatus.PLAYING


@dataclass
class PlayerInfo:
    """
    Information about a controllable player.

    Used for listing and display purposes.
    """

    player_id: str  # Opaque, unique for the player's lifetime
    bus_name: str = ""
    identity: str = ""

    def __str__(self) -> str:
        if self.identity:
            return f"{self.identity} [{self.player_id}]"
        return self.player_id
