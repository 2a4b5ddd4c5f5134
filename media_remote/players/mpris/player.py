"""
MPRIS player handle.

Wraps one player's D-Bus object: reads its Player interface properties,
issues capability-checked transport commands, and turns its change signals
into a blocking event feed.
"""

import logging
import queue
from typing import Any

from media_remote.exceptions import PlayerVanishedError, TransportError
from media_remote.players.base import PlayerHandle
from media_remote.players.types import CapabilityFlags, PlayerFields

from .mainloop import _import_dbus, is_vanished_error
from .properties import (
    MPRIS_OBJECT_PATH,
    PLAYER_INTERFACE,
    PROPERTIES_INTERFACE,
    parse_capabilities,
    parse_player_properties,
)

logger = logging.getLogger(__name__)

# Event queue markers
_CHANGED = "changed"
_VANISHED = "vanished"


class MprisPlayer(PlayerHandle):
    """
    Handle to one MPRIS player, identified by its unique bus name.

    Signal receivers are registered on creation and removed by close().
    """

    def __init__(self, bus: Any, unique_name: str, bus_name: str = ""):
        """
        Initialize player handle.

        Args:
            bus: Connected dbus.SessionBus
            unique_name: Unique connection name of the player (e.g. ":1.42")
            bus_name: Well-known org.mpris.MediaPlayer2.* name, for logging
        """
        self._dbus = _import_dbus()
        self._bus = bus
        self._unique_name = unique_name
        self._bus_name = bus_name or unique_name
        self._events: "queue.Queue[str]" = queue.Queue()
        self._matches: list[Any] = []

        try:
            obj = bus.get_object(unique_name, MPRIS_OBJECT_PATH, introspect=False)
            self._properties = self._dbus.Interface(obj, PROPERTIES_INTERFACE)
            self._player = self._dbus.Interface(obj, PLAYER_INTERFACE)
            self._subscribe_signals()
        except self._dbus.exceptions.DBusException as e:
            self.close()
            raise self._translate(e, "connect") from e

    @property
    def player_id(self) -> str:
        return self._unique_name

    @property
    def bus_name(self) -> str:
        return self._bus_name

    # =========================================================================
    # Signals
    # =========================================================================

    def _subscribe_signals(self) -> None:
        self._matches.append(
            self._bus.add_signal_receiver(
                self._on_properties_changed,
                signal_name="PropertiesChanged",
                dbus_interface=PROPERTIES_INTERFACE,
                bus_name=self._unique_name,
                path=MPRIS_OBJECT_PATH,
            )
        )
        self._matches.append(
            self._bus.add_signal_receiver(
                self._on_seeked,
                signal_name="Seeked",
                dbus_interface=PLAYER_INTERFACE,
                bus_name=self._unique_name,
                path=MPRIS_OBJECT_PATH,
            )
        )
        self._matches.append(
            self._bus.add_signal_receiver(
                self._on_name_owner_changed,
                signal_name="NameOwnerChanged",
                dbus_interface="org.freedesktop.DBus",
                bus_name="org.freedesktop.DBus",
                path="/org/freedesktop/DBus",
                arg0=self._unique_name,
            )
        )

    def _on_properties_changed(self, interface_name, changed, invalidated) -> None:
        # Called on the GLib loop thread
        if interface_name == PLAYER_INTERFACE:
            self._events.put(_CHANGED)

    def _on_seeked(self, position) -> None:
        self._events.put(_CHANGED)

    def _on_name_owner_changed(self, name, old_owner, new_owner) -> None:
        if not new_owner:
            logger.debug(f"Player {self._bus_name} ({self._unique_name}) left the bus")
            self._events.put(_VANISHED)

    def wait_next_event(self, timeout: float) -> bool:
        try:
            event = self._events.get(timeout=timeout)
        except queue.Empty:
            return False

        # A burst of signals costs one re-read
        while event != _VANISHED:
            try:
                event = self._events.get_nowait()
            except queue.Empty:
                return True
        raise PlayerVanishedError(f"Player {self._unique_name} disappeared")

    # =========================================================================
    # State
    # =========================================================================

    def _get_all(self) -> dict:
        try:
            return dict(self._properties.GetAll(PLAYER_INTERFACE))
        except self._dbus.exceptions.DBusException as e:
            raise self._translate(e, "read properties") from e

    def get_snapshot_fields(self) -> PlayerFields:
        return parse_player_properties(self._get_all())

    def capability_flags(self) -> CapabilityFlags:
        return parse_capabilities(self._get_all())

    # =========================================================================
    # Commands
    # =========================================================================

    def _call(self, action: str, method: str, *args: Any) -> bool:
        try:
            getattr(self._player, method)(*args)
        except self._dbus.exceptions.DBusException as e:
            raise self._translate(e, action) from e
        logger.debug(f"Sent {method} to {self._bus_name}")
        return True

    def checked_play_pause(self) -> bool:
        if not self.capability_flags().permits("can_control", "can_pause"):
            return False
        return self._call("play/pause", "PlayPause")

    def checked_seek(self, delta_us: int) -> bool:
        if not self.capability_flags().permits("can_control", "can_seek"):
            return False
        return self._call("seek", "Seek", self._dbus.Int64(delta_us))

    def checked_next(self) -> bool:
        if not self.capability_flags().permits("can_control", "can_go_next"):
            return False
        return self._call("next", "Next")

    def checked_previous(self) -> bool:
        if not self.capability_flags().permits("can_control", "can_go_previous"):
            return False
        return self._call("previous", "Previous")

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        for match in self._matches:
            try:
                match.remove()
            except Exception as e:
                logger.debug(f"Error removing signal match for {self._unique_name}: {e}")
        self._matches.clear()

    def _translate(self, error: Exception, action: str) -> TransportError:
        if is_vanished_error(error):
            return PlayerVanishedError(f"Player {self._unique_name} disappeared during {action}")
        return TransportError(f"MPRIS {action} failed for {self._bus_name}: {error}")
