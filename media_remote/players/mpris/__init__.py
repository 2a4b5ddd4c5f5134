"""MPRIS (D-Bus) player backend."""

from .backend import MprisBackend
from .player import MprisPlayer
from .properties import parse_capabilities, parse_player_properties

__all__ = [
    "MprisBackend",
    "MprisPlayer",
    "parse_capabilities",
    "parse_player_properties",
]
