"""Shared fixtures: an in-memory player backend with scriptable players."""

import dataclasses
import queue
import threading
from typing import Callable, Optional

import pytest

from media_remote.exceptions import PlayerVanishedError, TransportError
from media_remote.players.base import PlayerBackend, PlayerHandle
from media_remote.players.directory import PlayerDirectory
from media_remote.players.types import (
    CapabilityFlags,
    PlaybackStatus,
    PlayerFields,
    PlayerInfo,
)

FULL_CAPABILITIES = CapabilityFlags(
    can_control=True,
    can_play=True,
    can_pause=True,
    can_go_next=True,
    can_go_previous=True,
    can_seek=True,
)

_CHANGED = "changed"
_VANISHED = "vanished"


class FakePlayer:
    """Scriptable player state shared by every handle resolved to it."""

    def __init__(self, player_id: str, fields: Optional[PlayerFields] = None, identity: str = ""):
        self.player_id = player_id
        self.identity = identity
        self.fields = fields or PlayerFields(
            status=PlaybackStatus.PLAYING,
            position_us=1_000_000,
            length_us=180_000_000,
            title="First Song",
            rate=1.0,
            volume=0.5,
            capabilities=FULL_CAPABILITIES,
        )
        self.commands: list[tuple] = []
        self.fail_reads = False
        self.fail_commands = False
        self.vanished = False
        self.handles_opened = 0
        self.handles_closed = 0
        self._lock = threading.Lock()
        self._queues: list[queue.Queue] = []

    def update(self, **changes) -> None:
        """Change fields and notify watchers."""
        self.fields = dataclasses.replace(self.fields, **changes)
        self.emit()

    def set_capabilities(self, **flags) -> None:
        self.fields = dataclasses.replace(
            self.fields,
            capabilities=dataclasses.replace(self.fields.capabilities, **flags),
        )

    def emit(self, marker: str = _CHANGED) -> None:
        with self._lock:
            for q in self._queues:
                q.put(marker)

    def vanish(self) -> None:
        self.vanished = True
        self.emit(_VANISHED)

    @property
    def open_handles(self) -> int:
        with self._lock:
            return len(self._queues)

    def _attach(self) -> queue.Queue:
        q: queue.Queue = queue.Queue()
        with self._lock:
            self._queues.append(q)
            self.handles_opened += 1
        return q

    def _detach(self, q: queue.Queue) -> None:
        with self._lock:
            if q in self._queues:
                self._queues.remove(q)
                self.handles_closed += 1


class FakeHandle(PlayerHandle):
    def __init__(self, player: FakePlayer):
        self._player = player
        self._events = player._attach()

    @property
    def player_id(self) -> str:
        return self._player.player_id

    def _check_alive(self) -> None:
        if self._player.vanished:
            raise PlayerVanishedError(f"Player {self.player_id} disappeared")

    def get_snapshot_fields(self) -> PlayerFields:
        self._check_alive()
        if self._player.fail_reads:
            raise TransportError("read failed")
        return self._player.fields

    def capability_flags(self) -> CapabilityFlags:
        return self.get_snapshot_fields().capabilities

    def wait_next_event(self, timeout: float) -> bool:
        try:
            event = self._events.get(timeout=timeout)
        except queue.Empty:
            return False
        if event == _VANISHED:
            raise PlayerVanishedError(f"Player {self.player_id} disappeared")
        return True

    def _command(self, name: str, *flags: str, arg=None) -> bool:
        self._check_alive()
        if self._player.fail_commands:
            raise TransportError(f"{name} failed")
        if not self._player.fields.capabilities.permits(*flags):
            return False
        self._player.commands.append((name, arg) if arg is not None else (name,))
        return True

    def checked_play_pause(self) -> bool:
        return self._command("playpause", "can_control", "can_pause")

    def checked_seek(self, delta_us: int) -> bool:
        return self._command("seek", "can_control", "can_seek", arg=delta_us)

    def checked_next(self) -> bool:
        return self._command("next", "can_control", "can_go_next")

    def checked_previous(self) -> bool:
        return self._command("prev", "can_control", "can_go_previous")

    def close(self) -> None:
        self._player._detach(self._events)


class FakeBackend(PlayerBackend):
    def __init__(self, name: str = "Fake Backend"):
        super().__init__(name)
        self.players: dict[str, FakePlayer] = {}
        self.available = True

    def connect(self) -> bool:
        self._is_connected = True
        return True

    def _check_available(self) -> None:
        if not self.available:
            raise TransportError("session bus unreachable")

    def list_players(self) -> list[str]:
        self._check_available()
        return [pid for pid, p in self.players.items() if not p.vanished]

    def list_player_info(self) -> list[PlayerInfo]:
        self._check_available()
        return [
            PlayerInfo(player_id=pid, identity=p.identity)
            for pid, p in self.players.items()
            if not p.vanished
        ]

    def resolve(self, player_id: str) -> Optional[FakeHandle]:
        self._check_available()
        player = self.players.get(player_id)
        if player is None or player.vanished:
            return None
        return FakeHandle(player)


@pytest.fixture
def backend() -> FakeBackend:
    b = FakeBackend()
    b.connect()
    return b


@pytest.fixture
def make_player(backend: FakeBackend) -> Callable[..., FakePlayer]:
    """Add a player to the fake backend."""

    def _make(player_id: str = "player1", **kwargs) -> FakePlayer:
        player = FakePlayer(player_id, **kwargs)
        backend.players[player_id] = player
        return player

    return _make


@pytest.fixture
def directory(backend: FakeBackend) -> PlayerDirectory:
    return PlayerDirectory(backend)
