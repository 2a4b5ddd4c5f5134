"""Tests for the MPRIS backend and player handle with a mocked dbus module."""

from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from media_remote.exceptions import PlayerVanishedError, TransportError
from media_remote.players.mpris.backend import MprisBackend
from media_remote.players.mpris.mainloop import is_vanished_error
from media_remote.players.mpris.player import MprisPlayer
from media_remote.players.mpris.properties import PLAYER_INTERFACE, PROPERTIES_INTERFACE

_PLAYER_PATCH = "media_remote.players.mpris.player._import_dbus"
_BACKEND_PATCH = "media_remote.players.mpris.backend._import_dbus"


class FakeDBusException(Exception):
    def __init__(self, message: str = "", name: str = "org.freedesktop.DBus.Error.Failed"):
        super().__init__(message)
        self._name = name

    def get_dbus_name(self) -> str:
        return self._name


def _vanished() -> FakeDBusException:
    return FakeDBusException("gone", name="org.freedesktop.DBus.Error.ServiceUnknown")


def _props(**overrides) -> dict:
    props: dict[str, Any] = {
        "PlaybackStatus": "Playing",
        "Position": 5_000_000,
        "CanControl": True,
        "CanPause": True,
        "CanGoNext": True,
        "CanGoPrevious": True,
        "CanSeek": True,
        "Metadata": {"xesam:title": "Song"},
    }
    props.update(overrides)
    return props


def _mock_dbus(props: dict):
    """Create a dbus module mock whose interfaces serve the given properties."""
    dbus = MagicMock()
    dbus.exceptions.DBusException = FakeDBusException
    dbus.Int64 = int

    properties = MagicMock()
    properties.GetAll.return_value = props
    player = MagicMock()

    def interface(obj, name):
        if name == PROPERTIES_INTERFACE:
            return properties
        if name == PLAYER_INTERFACE:
            return player
        return MagicMock()

    dbus.Interface.side_effect = interface
    return dbus, properties, player


def _signal_callback(bus: MagicMock, signal_name: str):
    for call in bus.add_signal_receiver.call_args_list:
        if call.kwargs.get("signal_name") == signal_name:
            return call.args[0]
    raise AssertionError(f"No receiver for {signal_name}")


@pytest.fixture
def mpris():
    """Yield (make_player, properties, player_iface, bus)."""
    props = _props()
    dbus, properties, player_iface = _mock_dbus(props)
    bus = MagicMock()

    with patch(_PLAYER_PATCH, return_value=dbus):

        def make_player() -> MprisPlayer:
            return MprisPlayer(bus, ":1.42", bus_name="org.mpris.MediaPlayer2.vlc")

        yield make_player, properties, player_iface, bus


class TestIsVanishedError:
    def test_service_unknown(self) -> None:
        assert is_vanished_error(_vanished()) is True

    def test_other_dbus_error(self) -> None:
        assert is_vanished_error(FakeDBusException("boom")) is False

    def test_plain_exception(self) -> None:
        assert is_vanished_error(ValueError("x")) is False


class TestMprisPlayer:
    def test_reads_fields(self, mpris) -> None:
        make_player, _, _, _ = mpris
        player = make_player()

        fields = player.get_snapshot_fields()

        assert player.player_id == ":1.42"
        assert fields.is_playing
        assert fields.title == "Song"
        assert fields.position_us == 5_000_000

    def test_subscribes_to_change_signals(self, mpris) -> None:
        make_player, _, _, bus = mpris
        make_player()
        signals = {c.kwargs["signal_name"] for c in bus.add_signal_receiver.call_args_list}
        assert signals == {"PropertiesChanged", "Seeked", "NameOwnerChanged"}

    def test_seek_permitted(self, mpris) -> None:
        make_player, _, player_iface, _ = mpris
        player = make_player()

        assert player.checked_seek(-5_000_000) is True
        player_iface.Seek.assert_called_once_with(-5_000_000)

    def test_seek_rejected_without_capability(self, mpris) -> None:
        make_player, properties, player_iface, _ = mpris
        properties.GetAll.return_value = _props(CanSeek=False)
        player = make_player()

        assert player.checked_seek(5_000_000) is False
        player_iface.Seek.assert_not_called()

    def test_commands_rejected_without_control(self, mpris) -> None:
        make_player, properties, player_iface, _ = mpris
        properties.GetAll.return_value = _props(CanControl=False)
        player = make_player()

        assert player.checked_play_pause() is False
        assert player.checked_next() is False
        assert player.checked_previous() is False
        player_iface.PlayPause.assert_not_called()

    def test_next_and_previous(self, mpris) -> None:
        make_player, _, player_iface, _ = mpris
        player = make_player()

        assert player.checked_next() is True
        assert player.checked_previous() is True
        player_iface.Next.assert_called_once()
        player_iface.Previous.assert_called_once()

    def test_vanished_during_read(self, mpris) -> None:
        make_player, properties, _, _ = mpris
        player = make_player()
        properties.GetAll.side_effect = _vanished()

        with pytest.raises(PlayerVanishedError):
            player.get_snapshot_fields()

    def test_other_read_failure(self, mpris) -> None:
        make_player, properties, _, _ = mpris
        player = make_player()
        properties.GetAll.side_effect = FakeDBusException("timeout")

        with pytest.raises(TransportError) as exc_info:
            player.get_snapshot_fields()
        assert not isinstance(exc_info.value, PlayerVanishedError)

    def test_command_failure(self, mpris) -> None:
        make_player, _, player_iface, _ = mpris
        player = make_player()
        player_iface.PlayPause.side_effect = FakeDBusException("no reply")

        with pytest.raises(TransportError):
            player.checked_play_pause()

    def test_wait_times_out(self, mpris) -> None:
        make_player, _, _, _ = mpris
        assert make_player().wait_next_event(0.01) is False

    def test_properties_changed_wakes_waiter(self, mpris) -> None:
        make_player, _, _, bus = mpris
        player = make_player()

        _signal_callback(bus, "PropertiesChanged")(PLAYER_INTERFACE, {"Volume": 0.3}, [])
        assert player.wait_next_event(1.0) is True

    def test_other_interface_changes_ignored(self, mpris) -> None:
        make_player, _, _, bus = mpris
        player = make_player()

        _signal_callback(bus, "PropertiesChanged")("org.mpris.MediaPlayer2", {}, [])
        assert player.wait_next_event(0.01) is False

    def test_seeked_wakes_waiter(self, mpris) -> None:
        make_player, _, _, bus = mpris
        player = make_player()

        _signal_callback(bus, "Seeked")(10_000_000)
        assert player.wait_next_event(1.0) is True

    def test_owner_lost_raises_vanished(self, mpris) -> None:
        make_player, _, _, bus = mpris
        player = make_player()

        _signal_callback(bus, "NameOwnerChanged")(":1.42", ":1.42", "")
        with pytest.raises(PlayerVanishedError):
            player.wait_next_event(1.0)

    def test_signal_burst_wakes_once(self, mpris) -> None:
        make_player, _, _, bus = mpris
        player = make_player()
        changed = _signal_callback(bus, "PropertiesChanged")

        for volume in (0.1, 0.2, 0.3):
            changed(PLAYER_INTERFACE, {"Volume": volume}, [])
        _signal_callback(bus, "Seeked")(10_000_000)

        assert player.wait_next_event(1.0) is True
        assert player.wait_next_event(0.01) is False

    def test_owner_lost_behind_changes_raises_vanished(self, mpris) -> None:
        make_player, _, _, bus = mpris
        player = make_player()
        changed = _signal_callback(bus, "PropertiesChanged")

        changed(PLAYER_INTERFACE, {"Volume": 0.1}, [])
        changed(PLAYER_INTERFACE, {"Volume": 0.2}, [])
        _signal_callback(bus, "NameOwnerChanged")(":1.42", ":1.42", "")
        with pytest.raises(PlayerVanishedError):
            player.wait_next_event(1.0)

    def test_close_removes_matches(self, mpris) -> None:
        make_player, _, _, bus = mpris
        player = make_player()
        bus.add_signal_receiver.return_value.remove.assert_not_called()

        player.close()
        assert bus.add_signal_receiver.return_value.remove.call_count == 3


class TestMprisBackend:
    def _backend(self, names: list[str], owners: dict[str, Any]) -> MprisBackend:
        bus = MagicMock()
        bus.list_names.return_value = names

        def get_name_owner(name):
            owner = owners[name]
            if isinstance(owner, Exception):
                raise owner
            return owner

        bus.get_name_owner.side_effect = get_name_owner
        backend = MprisBackend()
        backend._bus = bus
        backend._is_connected = True
        return backend

    def test_lists_unique_names_of_mpris_players(self) -> None:
        dbus, _, _ = _mock_dbus(_props())
        backend = self._backend(
            [
                "org.freedesktop.DBus",
                "org.mpris.MediaPlayer2.vlc",
                "org.mpris.MediaPlayer2.spotify",
                ":1.42",
            ],
            {
                "org.mpris.MediaPlayer2.vlc": ":1.42",
                "org.mpris.MediaPlayer2.spotify": ":1.77",
            },
        )

        with patch(_BACKEND_PATCH, return_value=dbus):
            assert backend.list_players() == [":1.42", ":1.77"]

    def test_duplicate_owner_listed_once(self) -> None:
        dbus, _, _ = _mock_dbus(_props())
        backend = self._backend(
            ["org.mpris.MediaPlayer2.vlc", "org.mpris.MediaPlayer2.vlc.instance2"],
            {
                "org.mpris.MediaPlayer2.vlc": ":1.42",
                "org.mpris.MediaPlayer2.vlc.instance2": ":1.42",
            },
        )

        with patch(_BACKEND_PATCH, return_value=dbus):
            assert backend.list_players() == [":1.42"]

    def test_vanished_name_skipped(self) -> None:
        dbus, _, _ = _mock_dbus(_props())
        backend = self._backend(
            ["org.mpris.MediaPlayer2.vlc", "org.mpris.MediaPlayer2.gone"],
            {
                "org.mpris.MediaPlayer2.vlc": ":1.42",
                "org.mpris.MediaPlayer2.gone": _vanished(),
            },
        )

        with patch(_BACKEND_PATCH, return_value=dbus):
            assert backend.list_players() == [":1.42"]

    def test_list_names_failure(self) -> None:
        dbus, _, _ = _mock_dbus(_props())
        backend = self._backend([], {})
        backend._bus.list_names.side_effect = FakeDBusException("disconnected")

        with patch(_BACKEND_PATCH, return_value=dbus):
            with pytest.raises(TransportError):
                backend.list_players()

    def test_not_connected(self) -> None:
        dbus, _, _ = _mock_dbus(_props())
        with patch(_BACKEND_PATCH, return_value=dbus):
            with pytest.raises(TransportError):
                MprisBackend().list_players()

    def test_resolve(self) -> None:
        dbus, _, _ = _mock_dbus(_props())
        backend = self._backend(
            ["org.mpris.MediaPlayer2.vlc"],
            {"org.mpris.MediaPlayer2.vlc": ":1.42"},
        )

        with patch(_BACKEND_PATCH, return_value=dbus), patch(_PLAYER_PATCH, return_value=dbus):
            handle = backend.resolve(":1.42")
            assert handle is not None
            assert handle.player_id == ":1.42"
            assert handle.bus_name == "org.mpris.MediaPlayer2.vlc"
            assert backend.resolve(":1.99") is None

    def test_connect_without_bindings(self) -> None:
        with patch(
            "media_remote.players.mpris.backend.ensure_main_loop",
            side_effect=ImportError("dbus-python is required"),
        ):
            backend = MprisBackend()
            assert backend.connect() is False
            assert not backend.is_connected()
