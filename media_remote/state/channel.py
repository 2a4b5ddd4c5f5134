"""
Coalescing single-slot channel.

Carries values from one producer thread to one asyncio consumer with
latest-value semantics: a new value overwrites any unconsumed previous one,
so a slow consumer never causes a backlog and the producer never blocks.
"""

import asyncio
import logging
import threading
from typing import Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_EMPTY = object()


class ChannelClosed(Exception):
    """Raised on publish once the receiving side is gone."""

    pass


class LatestValueChannel(Generic[T]):
    """
    Thread-to-event-loop conduit holding at most one pending value.

    Producer side (any thread): publish(), close(), receiver_closed.
    Consumer side (event loop): receive(), wait_ready(), close_receiver().

    A value pending when the producer closes is still delivered before
    receive() reports the end of the stream.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop or asyncio.get_running_loop()
        self._lock = threading.Lock()
        self._wakeup = asyncio.Event()
        self._value: object = _EMPTY
        self._sender_closed = False
        self._receiver_closed = False
        self._error: Optional[BaseException] = None
        self._published = 0
        self._delivered = 0

    # =========================================================================
    # Producer side
    # =========================================================================

    def publish(self, value: T) -> None:
        """
        Replace the pending value.

        Raises:
            ChannelClosed: If the receiver is gone or the channel was closed
        """
        with self._lock:
            if self._receiver_closed or self._sender_closed:
                raise ChannelClosed()
            self._value = value
            self._published += 1
        if not self._wake():
            with self._lock:
                self._receiver_closed = True
            raise ChannelClosed()

    def close(self, error: Optional[BaseException] = None) -> None:
        """
        End the stream. Idempotent; the first error recorded wins.

        Args:
            error: Why the producer stopped, None for a normal end
        """
        with self._lock:
            if self._sender_closed:
                return
            self._sender_closed = True
            self._error = error
        self._wake()

    @property
    def receiver_closed(self) -> bool:
        with self._lock:
            return self._receiver_closed

    def _wake(self) -> bool:
        try:
            self._loop.call_soon_threadsafe(self._wakeup.set)
            return True
        except RuntimeError:
            # Event loop already closed
            return False

    # =========================================================================
    # Consumer side
    # =========================================================================

    async def receive(self) -> Optional[T]:
        """
        Wait for and take the latest value.

        Returns:
            The most recent value, or None once the stream has ended
        """
        while True:
            self._wakeup.clear()
            with self._lock:
                if self._receiver_closed:
                    return None
                if self._value is not _EMPTY:
                    value = self._value
                    self._value = _EMPTY
                    self._delivered += 1
                    return value  # type: ignore[return-value]
                if self._sender_closed:
                    return None
            await self._wakeup.wait()

    async def wait_ready(self) -> bool:
        """
        Wait until a value is pending or the stream ended, without consuming.

        Returns:
            True if a value is pending, False if the stream ended
        """
        while True:
            self._wakeup.clear()
            with self._lock:
                if self._receiver_closed:
                    return False
                if self._value is not _EMPTY:
                    return True
                if self._sender_closed:
                    return False
            await self._wakeup.wait()

    def close_receiver(self) -> None:
        """Drop interest; the producer's next publish fails."""
        with self._lock:
            self._receiver_closed = True
            self._value = _EMPTY
        self._wakeup.set()

    @property
    def error(self) -> Optional[BaseException]:
        """Why the producer stopped, once it has."""
        with self._lock:
            return self._error

    @property
    def stats(self) -> tuple[int, int]:
        """(published, delivered) counts, for diagnostics."""
        with self._lock:
            return self._published, self._delivered
