"""Live player state: snapshots, the coalescing channel, watchers and subscriptions."""

from .broadcaster import SnapshotBroadcaster, Subscription
from .channel import ChannelClosed, LatestValueChannel
from .snapshot import NO_ART_HASH, StateSnapshot, art_url_hash
from .watcher import StateWatcher, build_snapshot

__all__ = [
    # Snapshots
    "NO_ART_HASH",
    "StateSnapshot",
    "art_url_hash",
    # Channel
    "ChannelClosed",
    "LatestValueChannel",
    # Watching
    "StateWatcher",
    "build_snapshot",
    "SnapshotBroadcaster",
    "Subscription",
]
