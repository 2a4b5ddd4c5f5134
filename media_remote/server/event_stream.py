"""
Event-stream encoder.

Serializes a snapshot subscription into the text/event-stream protocol:
one `update` event per snapshot, comment pulses on a fixed period to keep
intermediary proxies from timing the connection out, and a final `end`
event when the subscription ends.
"""

import asyncio
import logging
from typing import Optional

from aiohttp import web

from media_remote.state.broadcaster import Subscription

logger = logging.getLogger(__name__)

DEFAULT_KEEPALIVE_SECONDS = 30.0

EVENT_UPDATE = "update"
EVENT_END = "end"

EVENT_STREAM_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # nginx: do not buffer the stream
}


def format_event(name: str, data: str) -> bytes:
    """Frame a named event. Multi-line data becomes one data line per line."""
    lines = [f"event: {name}"]
    lines.extend(f"data: {line}" for line in data.split("\n"))
    return ("\n".join(lines) + "\n\n").encode("utf-8")


def format_comment(text: str = "") -> bytes:
    """Frame a comment line; clients ignore it."""
    return f": {text}\n\n".encode("utf-8")


KEEPALIVE_FRAME = format_comment("keep-alive")


class EventStreamEncoder:
    """
    Writes one subscription to one HTTP response.

    States:
    - Init: prepare the response with event-stream headers
    - Streaming: write `update` per snapshot and a keep-alive pulse every
      keepalive_seconds, from a single writer so frames never interleave
    - Terminal: write exactly one `end` event and close the response

    A failed write means the client is gone; the subscription is closed in
    every case so its watcher thread stops.
    """

    def __init__(self, keepalive_seconds: float = DEFAULT_KEEPALIVE_SECONDS):
        self._keepalive = keepalive_seconds

    async def stream(
        self,
        request: web.Request,
        subscription: Subscription,
    ) -> web.StreamResponse:
        response = web.StreamResponse(status=200, headers=EVENT_STREAM_HEADERS)
        pending: Optional["asyncio.Future"] = None
        updates = 0

        try:
            await response.prepare(request)

            loop = asyncio.get_running_loop()
            next_pulse = loop.time() + self._keepalive
            pending = asyncio.ensure_future(subscription.next())

            while True:
                timeout = max(0.0, next_pulse - loop.time())
                done, _ = await asyncio.wait({pending}, timeout=timeout)

                if pending in done:
                    snapshot = pending.result()
                    if snapshot is None:
                        break
                    await response.write(format_event(EVENT_UPDATE, snapshot.to_json()))
                    updates += 1
                    pending = asyncio.ensure_future(subscription.next())

                now = loop.time()
                if now >= next_pulse:
                    await response.write(KEEPALIVE_FRAME)
                    while next_pulse <= now:
                        next_pulse += self._keepalive

            await response.write(format_event(EVENT_END, ""))
            await response.write_eof()
            published, _ = subscription.stats
            logger.debug(
                f"Stream for {subscription.player_id} ended after {updates} updates "
                f"of {published} published"
                + (f" ({subscription.error})" if subscription.error else "")
            )

        except (ConnectionResetError, ConnectionError) as e:
            logger.debug(
                f"Client left stream for {subscription.player_id} "
                f"after {updates} updates: {type(e).__name__}"
            )
        finally:
            if pending is not None and not pending.done():
                pending.cancel()
            subscription.close()

        return response
