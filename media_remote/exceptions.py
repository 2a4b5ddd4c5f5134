"""
MediaRemote exception hierarchy.

Every failure the core reports maps onto one of these types. HTTP handlers
translate them into status codes at the route layer.
"""


class MediaRemoteError(Exception):
    """Base class for all MediaRemote errors."""

    pass


class DiscoveryError(MediaRemoteError):
    """The player enumeration mechanism itself could not be reached."""

    pass


class PlayerNotFoundError(MediaRemoteError):
    """No player with the requested id currently exists."""

    def __init__(self, player_id: str):
        super().__init__(f"Player not found: {player_id}")
        self.player_id = player_id


class TransportError(MediaRemoteError):
    """The underlying control or event mechanism failed."""

    pass


class PlayerVanishedError(TransportError):
    """A player disappeared while it was being queried or watched."""

    pass


class ArtNotFoundError(MediaRemoteError):
    """The player reports no art for the current track."""

    pass


class UnsupportedArtError(MediaRemoteError):
    """The art reference uses a scheme the proxy does not implement."""

    def __init__(self, reference: str):
        scheme = reference.split(":", 1)[0] if ":" in reference else reference
        super().__init__(f"Unsupported art reference scheme: {scheme!r}")
        self.reference = reference


class ArtIOError(MediaRemoteError):
    """A local art file is missing or unreadable."""

    def __init__(self, path: str, reason: str, missing: bool = False):
        super().__init__(f"Cannot read art file {path}: {reason}")
        self.path = path
        self.missing = missing


class FetchError(MediaRemoteError):
    """A remote art fetch failed (network error or upstream error status)."""

    pass
