"""HTTP layer: routes, event-stream encoding, art proxy and command dispatch."""

from .art_proxy import ArtKind, ArtReference, ArtResource, ResourceProxy
from .commands import Command, CommandDispatcher, CommandOutcome, CommandResult
from .event_stream import EventStreamEncoder, format_comment, format_event
from .routes import ApiRoutes, create_web_app

__all__ = [
    # Art proxy
    "ArtKind",
    "ArtReference",
    "ArtResource",
    "ResourceProxy",
    # Commands
    "Command",
    "CommandDispatcher",
    "CommandOutcome",
    "CommandResult",
    # Event stream
    "EventStreamEncoder",
    "format_comment",
    "format_event",
    # Routes
    "ApiRoutes",
    "create_web_app",
]
