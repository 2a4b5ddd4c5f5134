"""
Transport command dispatcher.

Runs play/pause, seek, next and previous against a freshly resolved player
and reports a fixed outcome for each attempt. Commands are never retried.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from media_remote.exceptions import DiscoveryError, PlayerVanishedError, TransportError
from media_remote.players.base import PlayerHandle
from media_remote.players.directory import PlayerDirectory

logger = logging.getLogger(__name__)


class Command(str, Enum):
    """Transport commands, valued by their URL path segment."""

    PLAY_PAUSE = "playpause"
    SEEK = "seek"
    NEXT = "next"
    PREVIOUS = "prev"


class CommandOutcome(Enum):
    """Result taxonomy for a command attempt."""

    SUCCESS = "success"
    REJECTED = "rejected"  # Player capabilities do not permit the operation
    NOT_FOUND = "not_found"
    TRANSPORT_ERROR = "transport_error"


_HTTP_STATUS = {
    CommandOutcome.SUCCESS: 200,
    CommandOutcome.REJECTED: 400,
    CommandOutcome.NOT_FOUND: 404,
    CommandOutcome.TRANSPORT_ERROR: 500,
}


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one command with a one-line description."""

    outcome: CommandOutcome
    message: str

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self.outcome]


class CommandDispatcher:
    """
    Executes transport commands through capability-checked player calls.

    Steps per command:
    1. Resolve the player; absent -> NOT_FOUND
    2. Invoke the checked operation; not permitted -> REJECTED
    3. Transport failure -> TRANSPORT_ERROR
    4. Otherwise SUCCESS

    Seek offsets are signed microseconds and are passed through unclamped.
    """

    def __init__(self, directory: PlayerDirectory):
        self._directory = directory

    async def dispatch(
        self,
        command: Command,
        player_id: str,
        delta_us: Optional[int] = None,
    ) -> CommandResult:
        """Run execute() in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.execute, command, player_id, delta_us)

    def execute(
        self,
        command: Command,
        player_id: str,
        delta_us: Optional[int] = None,
    ) -> CommandResult:
        """Run one command attempt (blocking)."""
        if command == Command.SEEK and delta_us is None:
            raise ValueError("Seek requires an offset")

        try:
            handle = self._directory.resolve(player_id)
        except DiscoveryError as e:
            logger.error(f"{command.value} on {player_id}: {e}")
            return CommandResult(CommandOutcome.TRANSPORT_ERROR, f"{command.value} failed: {e}")

        if handle is None:
            return self._not_found(command, player_id)

        try:
            performed = self._invoke(handle, command, delta_us)
        except PlayerVanishedError:
            return self._not_found(command, player_id)
        except TransportError as e:
            logger.error(f"{command.value} on {player_id} failed: {e}")
            return CommandResult(CommandOutcome.TRANSPORT_ERROR, f"{command.value} failed: {e}")
        finally:
            handle.close()

        if not performed:
            logger.info(f"{command.value} rejected by player {player_id}")
            return CommandResult(
                CommandOutcome.REJECTED,
                f"{command.value} not permitted by player {player_id}",
            )

        logger.debug(f"{command.value} sent to {player_id}")
        return CommandResult(CommandOutcome.SUCCESS, f"{command.value} ok")

    def _invoke(self, handle: PlayerHandle, command: Command, delta_us: Optional[int]) -> bool:
        if command == Command.PLAY_PAUSE:
            return handle.checked_play_pause()
        if command == Command.SEEK:
            return handle.checked_seek(delta_us)
        if command == Command.NEXT:
            return handle.checked_next()
        return handle.checked_previous()

    def _not_found(self, command: Command, player_id: str) -> CommandResult:
        logger.info(f"{command.value}: player {player_id} not found")
        return CommandResult(CommandOutcome.NOT_FOUND, f"player {player_id} not found")
