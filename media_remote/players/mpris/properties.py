"""
MPRIS property parsing.

Converts the property dictionaries returned by
org.freedesktop.DBus.Properties.GetAll into backend-neutral types. D-Bus
values arrive as subclasses of the Python builtins, so these helpers work
on plain dicts too.
"""

import logging
from typing import Any, Mapping, Optional

from media_remote.players.types import CapabilityFlags, PlaybackStatus, PlayerFields

logger = logging.getLogger(__name__)

# Bus names and object path defined by the MPRIS 2 specification
MPRIS_BUS_PREFIX = "org.mpris.MediaPlayer2."
MPRIS_OBJECT_PATH = "/org/mpris/MediaPlayer2"
ROOT_INTERFACE = "org.mpris.MediaPlayer2"
PLAYER_INTERFACE = "org.mpris.MediaPlayer2.Player"
PROPERTIES_INTERFACE = "org.freedesktop.DBus.Properties"

# Metadata keys
META_LENGTH = "mpris:length"
META_ART_URL = "mpris:artUrl"
META_TITLE = "xesam:title"


def _optional_bool(props: Mapping[str, Any], key: str) -> Optional[bool]:
    value = props.get(key)
    return None if value is None else bool(value)


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring non-integer MPRIS value: {value!r}")
        return None


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring non-numeric MPRIS value: {value!r}")
        return None


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text or None


def parse_playback_status(value: Any) -> PlaybackStatus:
    """Parse PlaybackStatus; anything unrecognised counts as stopped."""
    try:
        return PlaybackStatus(str(value))
    except ValueError:
        return PlaybackStatus.STOPPED


def parse_capabilities(props: Mapping[str, Any]) -> CapabilityFlags:
    """Extract capability flags from Player interface properties."""
    return CapabilityFlags(
        can_control=_optional_bool(props, "CanControl"),
        can_play=_optional_bool(props, "CanPlay"),
        can_pause=_optional_bool(props, "CanPause"),
        can_go_next=_optional_bool(props, "CanGoNext"),
        can_go_previous=_optional_bool(props, "CanGoPrevious"),
        can_seek=_optional_bool(props, "CanSeek"),
    )


def parse_player_properties(props: Mapping[str, Any]) -> PlayerFields:
    """
    Build PlayerFields from a GetAll result on the Player interface.

    Args:
        props: Property name to value mapping

    Returns:
        PlayerFields with absent properties left as None
    """
    metadata = props.get("Metadata") or {}

    return PlayerFields(
        status=parse_playback_status(props.get("PlaybackStatus")),
        position_us=_optional_int(props.get("Position")),
        length_us=_optional_int(metadata.get(META_LENGTH)),
        title=_optional_str(metadata.get(META_TITLE)),
        art_url=_optional_str(metadata.get(META_ART_URL)),
        rate=_optional_float(props.get("Rate")),
        volume=_optional_float(props.get("Volume")),
        capabilities=parse_capabilities(props),
    )


def is_player_bus_name(name: str) -> bool:
    """Check whether a well-known bus name belongs to an MPRIS player."""
    return name.startswith(MPRIS_BUS_PREFIX)
