"""
Snapshot broadcaster.

Bridges per-subscription watcher threads into the asyncio world as
cancel-aware, latest-value snapshot feeds.
"""

import asyncio
import logging
from typing import AsyncIterator, Optional

from media_remote.players.directory import PlayerDirectory

from .channel import LatestValueChannel
from .snapshot import StateSnapshot
from .watcher import DEFAULT_EVENT_WAIT_SECONDS, StateWatcher

logger = logging.getLogger(__name__)


class Subscription:
    """
    One client's live feed of one player's state.

    Iterating yields snapshots until the watcher stops for any reason.
    Intermediate snapshots are dropped when the consumer falls behind;
    the most recent one is always delivered. close() releases the
    watcher thread.
    """

    def __init__(
        self,
        player_id: str,
        channel: LatestValueChannel[StateSnapshot],
        watcher: StateWatcher,
        broadcaster: Optional["SnapshotBroadcaster"] = None,
    ):
        self.player_id = player_id
        self._channel = channel
        self._watcher = watcher
        self._broadcaster = broadcaster
        self._closed = False

    def __aiter__(self) -> AsyncIterator[StateSnapshot]:
        return self

    async def __anext__(self) -> StateSnapshot:
        snapshot = await self.next()
        if snapshot is None:
            raise StopAsyncIteration
        return snapshot

    async def next(self) -> Optional[StateSnapshot]:
        """Wait for the next snapshot; None once the feed has ended."""
        if self._closed:
            return None
        return await self._channel.receive()

    async def wait_ready(self) -> bool:
        """
        Wait for the first snapshot or the end of the feed, without
        consuming anything.

        Returns:
            True if a snapshot is ready, False if the feed ended first
        """
        if self._closed:
            return False
        return await self._channel.wait_ready()

    @property
    def error(self) -> Optional[BaseException]:
        """Why the feed ended: None, PlayerNotFoundError, or a read failure."""
        return self._channel.error

    @property
    def stats(self) -> tuple[int, int]:
        """(published, delivered) snapshot counts."""
        return self._channel.stats

    @property
    def is_closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Drop interest; the watcher stops on its next publish attempt."""
        if self._closed:
            return
        self._closed = True
        self._channel.close_receiver()
        if self._broadcaster is not None:
            self._broadcaster._discard(self)
        logger.debug(f"Subscription to {self.player_id} closed")


class SnapshotBroadcaster:
    """
    Creates independent snapshot subscriptions.

    Each subscription owns its own watcher thread and channel; nothing is
    shared between subscriptions, even for the same player.

    Usage:
        broadcaster = SnapshotBroadcaster(directory)
        subscription = broadcaster.subscribe(player_id)
        try:
            async for snapshot in subscription:
                ...
        finally:
            subscription.close()
    """

    def __init__(
        self,
        directory: PlayerDirectory,
        event_wait: float = DEFAULT_EVENT_WAIT_SECONDS,
    ):
        self._directory = directory
        self._event_wait = event_wait
        self._subscriptions: set[Subscription] = set()

    def subscribe(self, player_id: str) -> Subscription:
        """
        Start watching a player. Must be called from the event loop.

        Returns:
            A Subscription; if the player does not exist its feed ends
            immediately with error set to PlayerNotFoundError
        """
        channel: LatestValueChannel[StateSnapshot] = LatestValueChannel(
            asyncio.get_running_loop()
        )
        watcher = StateWatcher(
            self._directory,
            player_id,
            channel,
            event_wait=self._event_wait,
        )
        subscription = Subscription(player_id, channel, watcher, broadcaster=self)
        self._subscriptions.add(subscription)
        watcher.start()
        logger.debug(
            f"Subscribed to {player_id} ({len(self._subscriptions)} active subscriptions)"
        )
        return subscription

    @property
    def active_count(self) -> int:
        return len(self._subscriptions)

    def close_all(self) -> None:
        """Close every live subscription."""
        for subscription in list(self._subscriptions):
            subscription.close()

    def _discard(self, subscription: Subscription) -> None:
        self._subscriptions.discard(subscription)
