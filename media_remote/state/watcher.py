"""
State watcher.

Runs one dedicated thread per subscription: the player event source is a
blocking call with no async equivalent, so it must stay off the event loop.
"""

import logging
import threading

from media_remote.exceptions import PlayerNotFoundError
from media_remote.players.base import PlayerHandle
from media_remote.players.directory import PlayerDirectory

from .channel import ChannelClosed, LatestValueChannel
from .snapshot import StateSnapshot

logger = logging.getLogger(__name__)

DEFAULT_EVENT_WAIT_SECONDS = 1.0


def build_snapshot(handle: PlayerHandle) -> StateSnapshot:
    """Build a full snapshot from one read of the player's current state."""
    return StateSnapshot.from_fields(handle.get_snapshot_fields())


class StateWatcher(threading.Thread):
    """
    Publishes a fresh StateSnapshot for every player event.

    Lifecycle:
    1. Resolve the player once; close the channel with PlayerNotFoundError
       if it does not exist
    2. Publish an initial snapshot immediately
    3. Block on the next player event and publish a full re-read on each
    4. Stop when a publish fails (subscriber gone), the player vanishes,
       or any read fails; read failures end the stream rather than
       emitting a partial snapshot

    While idle, the event wait times out every event_wait seconds so a
    departed subscriber is noticed without waiting for the next event.
    """

    def __init__(
        self,
        directory: PlayerDirectory,
        player_id: str,
        channel: LatestValueChannel[StateSnapshot],
        event_wait: float = DEFAULT_EVENT_WAIT_SECONDS,
    ):
        super().__init__(name=f"state-watcher-{player_id}", daemon=True)
        self._directory = directory
        self._player_id = player_id
        self._channel = channel
        self._event_wait = event_wait

    @property
    def player_id(self) -> str:
        return self._player_id

    def run(self) -> None:
        try:
            handle = self._directory.resolve(self._player_id)
        except Exception as e:
            logger.warning(f"Cannot resolve player {self._player_id}: {e}")
            self._channel.close(e)
            return

        if handle is None:
            logger.info(f"Player {self._player_id} not found, ending subscription")
            self._channel.close(PlayerNotFoundError(self._player_id))
            return

        logger.debug(f"Watching player {self._player_id}")
        try:
            self._watch(handle)
        except ChannelClosed:
            logger.debug(f"Subscriber for {self._player_id} went away")
            self._channel.close()
        except Exception as e:
            logger.info(f"Watch on player {self._player_id} ended: {e}")
            logger.debug("Watcher failure detail", exc_info=True)
            self._channel.close(e)
        finally:
            handle.close()
            logger.debug(f"Stopped watching player {self._player_id}")

    def _watch(self, handle: PlayerHandle) -> None:
        self._channel.publish(build_snapshot(handle))

        while True:
            if handle.wait_next_event(self._event_wait):
                self._channel.publish(build_snapshot(handle))
            elif self._channel.receiver_closed:
                raise ChannelClosed()
