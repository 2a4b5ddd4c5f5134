"""
Player state snapshots.

A StateSnapshot is a complete, point-in-time description of a player's
playback state as sent to browser clients.
"""

import hashlib
import json
from dataclasses import asdict, dataclass
from typing import Any, Optional

from media_remote.players.types import PlayerFields

# Hash token for "no art"; real hashes collide with it with probability 2**-64
NO_ART_HASH = 0


def art_url_hash(art_url: Optional[str]) -> int:
    """
    Hash an art reference into a stable 64-bit cache token.

    The token changes when the reference string changes; it is only used by
    clients for cache busting and equality checks.
    """
    if not art_url:
        return NO_ART_HASH
    digest = hashlib.blake2b(art_url.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big")


@dataclass(frozen=True)
class StateSnapshot:
    """
    Immutable playback state of one player.

    Every field except running may be None, meaning "unknown". Positions
    and lengths are in microseconds. Field names are the JSON keys the
    browser client reads.
    """

    running: bool
    position: Optional[int] = None
    length: Optional[int] = None
    title: Optional[str] = None
    playback_rate: Optional[float] = None
    art_url_hash: int = NO_ART_HASH
    can_control: Optional[bool] = None
    can_go_next: Optional[bool] = None
    can_go_prev: Optional[bool] = None
    can_seek: Optional[bool] = None
    has_volume: Optional[bool] = None
    volume: Optional[float] = None

    @classmethod
    def from_fields(cls, fields: PlayerFields) -> "StateSnapshot":
        """Build a snapshot from one consistent read of a player."""
        caps = fields.capabilities
        return cls(
            running=fields.is_playing,
            position=fields.position_us,
            length=fields.length_us,
            title=fields.title,
            playback_rate=fields.rate,
            art_url_hash=art_url_hash(fields.art_url),
            can_control=caps.can_control,
            can_go_next=caps.can_go_next,
            can_go_prev=caps.can_go_previous,
            can_seek=caps.can_seek,
            has_volume=None if fields.volume is None else True,
            volume=fields.volume,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    def to_json(self) -> str:
        """Serialize as a single-line JSON object."""
        return json.dumps(self.to_dict(), separators=(",", ":"))
