"""
MediaRemote - Remote control of local media players over HTTP.

Lists the players on this machine, streams their live playback state to
browsers as server-sent events, proxies their album art and relays
transport commands.
"""

__version__ = "0.1.0"

from .app import MediaRemote
from .config import Config, load_config, ConfigError

__all__ = [
    "__version__",
    "MediaRemote",
    "Config",
    "load_config",
    "ConfigError",
]
