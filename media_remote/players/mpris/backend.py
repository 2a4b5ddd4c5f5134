"""
MPRIS player backend.

Enumerates media players on the D-Bus session bus that implement the MPRIS
2 interface. Players are identified by their unique connection name, which
is unique for the player's lifetime and changes when it restarts.
"""

import logging
from typing import Any, Iterator, Optional

from media_remote.exceptions import TransportError
from media_remote.players.base import PlayerBackend
from media_remote.players.types import PlayerInfo

from .mainloop import _import_dbus, ensure_main_loop, is_vanished_error, stop_main_loop
from .player import MprisPlayer
from .properties import MPRIS_OBJECT_PATH, PROPERTIES_INTERFACE, ROOT_INTERFACE, is_player_bus_name

logger = logging.getLogger(__name__)


class MprisBackend(PlayerBackend):
    """
    Player backend for Linux desktops using MPRIS over D-Bus.

    Usage:
        backend = MprisBackend()
        if backend.connect():
            for player_id in backend.list_players():
                handle = backend.resolve(player_id)
    """

    def __init__(self, name: str = "MPRIS"):
        super().__init__(name)
        self._bus: Optional[Any] = None

    def connect(self) -> bool:
        """Start the signal loop and open the session bus."""
        try:
            ensure_main_loop()
            dbus = _import_dbus()
            self._bus = dbus.SessionBus()
        except ImportError as e:
            logger.error(f"MPRIS backend unavailable: {e}")
            return False
        except Exception as e:
            logger.error(f"Failed to connect to D-Bus session bus: {e}")
            return False

        self._is_connected = True
        logger.info("Connected to D-Bus session bus")
        return True

    def disconnect(self) -> None:
        if self._bus is not None:
            try:
                self._bus.close()
            except Exception as e:
                logger.warning(f"Error closing session bus: {e}")
            self._bus = None
        stop_main_loop()
        super().disconnect()

    def _require_bus(self) -> Any:
        if self._bus is None:
            raise TransportError("MPRIS backend is not connected")
        return self._bus

    def _iter_players(self) -> Iterator[tuple[str, str]]:
        """
        Yield (well-known name, unique name) for each live player.

        Players that drop off the bus between listing and owner lookup are
        skipped.
        """
        dbus = _import_dbus()
        bus = self._require_bus()

        try:
            names = [str(name) for name in bus.list_names()]
        except dbus.exceptions.DBusException as e:
            raise TransportError(f"Cannot list bus names: {e}") from e

        seen: set[str] = set()
        for name in names:
            if not is_player_bus_name(name):
                continue
            try:
                owner = str(bus.get_name_owner(name))
            except dbus.exceptions.DBusException as e:
                if is_vanished_error(e):
                    logger.debug(f"Player {name} vanished during enumeration")
                    continue
                raise TransportError(f"Cannot look up owner of {name}: {e}") from e
            if owner in seen:
                continue
            seen.add(owner)
            yield name, owner

    def list_players(self) -> list[str]:
        return [owner for _, owner in self._iter_players()]

    def list_player_info(self) -> list[PlayerInfo]:
        dbus = _import_dbus()
        bus = self._require_bus()

        result = []
        for name, owner in self._iter_players():
            identity = ""
            try:
                obj = bus.get_object(owner, MPRIS_OBJECT_PATH, introspect=False)
                props = dbus.Interface(obj, PROPERTIES_INTERFACE)
                identity = str(props.Get(ROOT_INTERFACE, "Identity"))
            except dbus.exceptions.DBusException as e:
                logger.debug(f"No identity for {name}: {e}")
            result.append(PlayerInfo(player_id=owner, bus_name=name, identity=identity))
        return result

    def resolve(self, player_id: str) -> Optional[MprisPlayer]:
        for name, owner in self._iter_players():
            if owner == player_id:
                return MprisPlayer(self._require_bus(), owner, bus_name=name)
        return None
