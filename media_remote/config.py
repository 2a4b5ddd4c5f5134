"""
MediaRemote Configuration System.

Priority order (highest to lowest):
1. Command-line arguments
2. Environment variables
3. Configuration file (YAML)
4. Default values
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)


# Valid log levels
VALID_LOG_LEVELS = {"debug", "info", "warning", "error"}

# Environment variable mappings
ENV_MAPPINGS = {
    # Server
    "MEDIA_REMOTE_HOST": ("server", "host"),
    "MEDIA_REMOTE_PORT": ("server", "port"),
    "MEDIA_REMOTE_STATIC_DIR": ("server", "static_dir"),
    # Players
    "MEDIA_REMOTE_BACKEND": ("players", "backend"),
    # Stream
    "MEDIA_REMOTE_KEEPALIVE": ("stream", "keepalive_seconds"),
    # Logging
    "MEDIA_REMOTE_LOG_LEVEL": ("logging", "level"),
}

_INT_ENV_VARS = {"MEDIA_REMOTE_PORT"}
_FLOAT_ENV_VARS = {"MEDIA_REMOTE_KEEPALIVE"}


class ConfigError(Exception):
    """Configuration error."""

    pass


@dataclass
class ServerConfig:
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 3000
    static_dir: str = ""  # Web client directory served at "/", disabled if empty


@dataclass
class PlayersConfig:
    """Player backend configuration."""

    backend: str = "mpris"


@dataclass
class StreamConfig:
    """Live metadata stream configuration."""

    keepalive_seconds: float = 30.0
    event_wait_seconds: float = 1.0  # Watcher idle check for departed clients


@dataclass
class ArtConfig:
    """Album art proxy configuration."""

    connect_timeout_seconds: float = 10.0
    chunk_size: int = 64 * 1024


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class Config:
    """Complete MediaRemote configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    players: PlayersConfig = field(default_factory=PlayersConfig)
    stream: StreamConfig = field(default_factory=StreamConfig)
    art: ArtConfig = field(default_factory=ArtConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def validate_port(port: int) -> bool:
    """Validate port number."""
    return 1 <= port <= 65535


def validate_config(config: Config) -> None:
    """
    Validate configuration.

    Raises:
        ConfigError: If configuration is invalid
    """
    errors = []

    # Server
    if not validate_port(config.server.port):
        errors.append(f"Invalid HTTP port: {config.server.port}")
    if config.server.static_dir and not Path(config.server.static_dir).is_dir():
        errors.append(f"Static directory does not exist: {config.server.static_dir}")

    # Players
    if not config.players.backend:
        errors.append("Player backend type is required")

    # Stream
    if config.stream.keepalive_seconds <= 0:
        errors.append(f"Invalid keepalive interval: {config.stream.keepalive_seconds}")
    if config.stream.event_wait_seconds <= 0:
        errors.append(f"Invalid event wait interval: {config.stream.event_wait_seconds}")

    # Art
    if config.art.chunk_size <= 0:
        errors.append(f"Invalid art chunk size: {config.art.chunk_size}")
    if config.art.connect_timeout_seconds <= 0:
        errors.append(f"Invalid art connect timeout: {config.art.connect_timeout_seconds}")

    # Logging
    if config.logging.level.lower() not in VALID_LOG_LEVELS:
        errors.append(
            f"Invalid log level: {config.logging.level}. "
            f"Valid values: {sorted(VALID_LOG_LEVELS)}"
        )

    if errors:
        raise ConfigError("Configuration validation failed:\n  - " + "\n  - ".join(errors))


def load_yaml_config(path: Path) -> dict:
    """
    Load configuration from YAML file.

    Args:
        path: Path to YAML file

    Returns:
        Configuration dictionary

    Raises:
        ConfigError: If file cannot be read or parsed
    """
    if not path.exists():
        logger.debug(f"Config file not found: {path}")
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
            return data if data else {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing YAML config: {e}")
    except IOError as e:
        raise ConfigError(f"Error reading config file: {e}")


def _set_nested(d: dict, path: tuple, value: Any) -> None:
    """Set a nested dictionary value using a path tuple."""
    for key in path[:-1]:
        d = d.setdefault(key, {})
    d[path[-1]] = value


def load_env_config() -> dict:
    """
    Load configuration from environment variables.

    Returns:
        Configuration dictionary with values from environment
    """
    result: dict = {}

    for env_var, path in ENV_MAPPINGS.items():
        value: Any = os.environ.get(env_var)
        if value is None:
            continue

        if env_var in _INT_ENV_VARS:
            try:
                value = int(value)
            except ValueError:
                logger.warning(f"Invalid integer for {env_var}: {value}")
                continue
        elif env_var in _FLOAT_ENV_VARS:
            try:
                value = float(value)
            except ValueError:
                logger.warning(f"Invalid number for {env_var}: {value}")
                continue

        _set_nested(result, path, value)

    return result


def _deep_merge(base: dict, override: dict) -> None:
    """Recursively merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def merge_configs(*configs: dict) -> dict:
    """
    Deep merge multiple configuration dictionaries.
    Later configs override earlier ones.
    """
    result: dict = {}
    for config in configs:
        _deep_merge(result, config)
    return result


def dict_to_config(d: dict) -> Config:
    """Convert a dictionary to Config dataclass."""
    config = Config()

    # Server
    if "server" in d:
        s = d["server"]
        config.server.host = s.get("host", config.server.host)
        config.server.port = s.get("port", config.server.port)
        config.server.static_dir = s.get("static_dir", config.server.static_dir) or ""

    # Players
    if "players" in d:
        config.players.backend = d["players"].get("backend", config.players.backend)

    # Stream
    if "stream" in d:
        st = d["stream"]
        config.stream.keepalive_seconds = st.get(
            "keepalive_seconds", config.stream.keepalive_seconds
        )
        config.stream.event_wait_seconds = st.get(
            "event_wait_seconds", config.stream.event_wait_seconds
        )

    # Art
    if "art" in d:
        a = d["art"]
        config.art.connect_timeout_seconds = a.get(
            "connect_timeout_seconds", config.art.connect_timeout_seconds
        )
        config.art.chunk_size = a.get("chunk_size", config.art.chunk_size)

    # Logging
    if "logging" in d:
        config.logging.level = d["logging"].get("level", config.logging.level)

    return config


def load_config(
    config_path: Optional[Path] = None,
    cli_args: Optional[dict] = None,
) -> Config:
    """
    Load configuration from all sources.

    Priority (highest to lowest):
    1. CLI arguments
    2. Environment variables
    3. Config file
    4. Defaults

    Args:
        config_path: Path to YAML config file
        cli_args: Dictionary of CLI arguments

    Returns:
        Merged Config object

    Raises:
        ConfigError: If configuration is invalid
    """
    configs = []

    if config_path:
        file_config = load_yaml_config(config_path)
        if file_config:
            configs.append(file_config)
            logger.debug(f"Loaded config from {config_path}")

    env_config = load_env_config()
    if env_config:
        configs.append(env_config)
        logger.debug("Loaded config from environment variables")

    if cli_args:
        configs.append(cli_args)
        logger.debug("Loaded config from CLI arguments")

    merged = merge_configs(*configs) if configs else {}

    # Convert to Config object (fills in defaults)
    config = dict_to_config(merged)

    validate_config(config)

    return config
