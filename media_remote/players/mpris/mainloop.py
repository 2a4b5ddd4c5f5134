"""
D-Bus binding loader and GLib main loop thread.

dbus-python delivers signals through a GLib main loop. One loop thread per
process dispatches every subscribed PropertiesChanged/Seeked signal; the
handlers only enqueue, so the loop never blocks on player I/O.
"""

import logging
import threading
from typing import Any, Optional

logger = logging.getLogger(__name__)

# D-Bus error names that mean the peer is gone rather than misbehaving
VANISHED_ERROR_NAMES = {
    "org.freedesktop.DBus.Error.ServiceUnknown",
    "org.freedesktop.DBus.Error.NameHasNoOwner",
    "org.freedesktop.DBus.Error.UnknownObject",
}


def _import_dbus():
    """Lazy import of dbus-python."""
    try:
        import dbus
        import dbus.mainloop.glib  # noqa: F401

        return dbus
    except ImportError:
        raise ImportError(
            "dbus-python is required for the MPRIS backend. "
            "Install with: pip install media-remote[mpris]"
        )


def _import_glib():
    """Lazy import of GLib from PyGObject."""
    try:
        from gi.repository import GLib

        return GLib
    except ImportError:
        raise ImportError(
            "PyGObject is required for the MPRIS backend. "
            "Install with: pip install media-remote[mpris]"
        )


def is_vanished_error(error: Exception) -> bool:
    """Check whether a DBusException reports a departed peer."""
    get_name = getattr(error, "get_dbus_name", None)
    return bool(get_name) and get_name() in VANISHED_ERROR_NAMES


class GLibLoopThread(threading.Thread):
    """Daemon thread running the GLib main loop for signal dispatch."""

    def __init__(self) -> None:
        super().__init__(name="mpris-glib-loop", daemon=True)
        self._loop: Optional[Any] = None
        self._started = threading.Event()

    def run(self) -> None:
        GLib = _import_glib()
        self._loop = GLib.MainLoop()
        self._started.set()
        logger.debug("GLib main loop running")
        self._loop.run()
        logger.debug("GLib main loop stopped")

    def wait_started(self, timeout: float = 5.0) -> bool:
        return self._started.wait(timeout)

    def stop(self) -> None:
        if self._loop is not None:
            self._loop.quit()


_loop_thread: Optional[GLibLoopThread] = None
_loop_lock = threading.Lock()


def ensure_main_loop() -> None:
    """
    Install the GLib D-Bus main loop and start its dispatch thread once.

    Must run before the first bus connection is opened.
    """
    global _loop_thread

    with _loop_lock:
        if _loop_thread is not None and _loop_thread.is_alive():
            return

        dbus = _import_dbus()
        dbus.mainloop.glib.threads_init()
        dbus.mainloop.glib.DBusGMainLoop(set_as_default=True)

        _loop_thread = GLibLoopThread()
        _loop_thread.start()
        if not _loop_thread.wait_started():
            logger.warning("GLib main loop did not start in time")


def stop_main_loop() -> None:
    """Stop the dispatch thread if it is running."""
    global _loop_thread

    with _loop_lock:
        if _loop_thread is not None:
            _loop_thread.stop()
            _loop_thread = None
