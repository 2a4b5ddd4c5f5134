"""
MediaRemote CLI entry point.

Provides command-line interface for running MediaRemote.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from media_remote import __version__
from media_remote.app import MediaRemote
from media_remote.config import Config, ConfigError, load_config
from media_remote.exceptions import DiscoveryError
from media_remote.players import BackendFactory, BackendNotFoundError, PlayerDirectory

logger = logging.getLogger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_NETWORK_ERROR = 3


def setup_logging(level: str = "info") -> None:
    """Configure logging to stdout."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
        force=True,
    )


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="media-remote",
        description="Remote control of local media players over HTTP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  media-remote --list
  media-remote --list --json
  media-remote --config config.yaml
  media-remote --port 3000 --static-dir ./dist

Environment Variables:
  MEDIA_REMOTE_HOST, MEDIA_REMOTE_PORT, MEDIA_REMOTE_STATIC_DIR
  MEDIA_REMOTE_BACKEND, MEDIA_REMOTE_KEEPALIVE, MEDIA_REMOTE_LOG_LEVEL
""",
    )

    # General
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    # Listing mode
    parser.add_argument(
        "--list",
        action="store_true",
        dest="list_players",
        help="Print controllable players and exit",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output as JSON (used with --list)",
    )

    # Configuration
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("./config.yaml"),
        metavar="PATH",
        help="Path to config file (default: ./config.yaml)",
    )

    # Server
    server_group = parser.add_argument_group("Server")
    server_group.add_argument(
        "--host",
        metavar="TEXT",
        help="Bind address (default: 0.0.0.0)",
    )
    server_group.add_argument(
        "--port",
        type=int,
        metavar="INT",
        help="HTTP server port (default: 3000)",
    )
    server_group.add_argument(
        "--static-dir",
        metavar="PATH",
        help="Web client directory served at / (default: none)",
    )

    # Players
    players_group = parser.add_argument_group("Players")
    players_group.add_argument(
        "--backend",
        metavar="TEXT",
        help="Player backend type (default: mpris)",
    )

    # Logging
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        metavar="LEVEL",
        help="Log level: debug, info, warning, error",
    )

    return parser.parse_args(argv)


def _set_nested(d: dict, path: tuple, value: Any) -> None:
    """Set a nested dictionary value."""
    for key in path[:-1]:
        d = d.setdefault(key, {})
    d[path[-1]] = value


def args_to_dict(args: argparse.Namespace) -> dict:
    """Convert argparse namespace to nested config dict."""
    result: dict = {}

    # Map CLI args to config paths
    mappings = {
        "host": ("server", "host"),
        "port": ("server", "port"),
        "static_dir": ("server", "static_dir"),
        "backend": ("players", "backend"),
        "log_level": ("logging", "level"),
    }

    for arg_name, path in mappings.items():
        value = getattr(args, arg_name, None)
        if value is None:
            continue
        _set_nested(result, path, value)

    return result


def log_config(config: Config) -> None:
    """Log configuration summary."""
    logger.info(f"HTTP server: {config.server.host}:{config.server.port}")
    logger.info(f"Player backend: {config.players.backend}")
    logger.info(f"Keep-alive interval: {config.stream.keepalive_seconds}s")
    if config.server.static_dir:
        logger.info(f"Web client: {config.server.static_dir}")


def run_list(config: Config, json_output: bool) -> int:
    """
    Print currently controllable players.

    Args:
        config: Loaded configuration
        json_output: Output as JSON if True

    Returns:
        Exit code
    """
    try:
        backend = BackendFactory.create_from_config(config)
    except BackendNotFoundError as e:
        logger.error(f"Backend error: {e}")
        return EXIT_NETWORK_ERROR

    try:
        players = PlayerDirectory(backend).describe()
    except DiscoveryError as e:
        logger.error(f"Discovery failed: {e}")
        return EXIT_NETWORK_ERROR
    finally:
        backend.disconnect()

    if json_output:
        output = {
            "players": [
                {
                    "id": p.player_id,
                    "bus_name": p.bus_name,
                    "identity": p.identity,
                }
                for p in players
            ],
            "count": len(players),
        }
        print(json.dumps(output, indent=2))
        return EXIT_SUCCESS

    if not players:
        print("No controllable players found.")
        return EXIT_SUCCESS

    print(f"Found {len(players)} player(s):\n")
    for p in players:
        print(f"  {p}")
        if p.bus_name:
            print(f"    Bus name: {p.bus_name}")
    return EXIT_SUCCESS


def run_serve(config: Config) -> int:
    """
    Run the HTTP server.

    Args:
        config: Loaded configuration

    Returns:
        Exit code
    """
    try:
        app = MediaRemote(config)
        asyncio.run(app.run())
        return EXIT_SUCCESS

    except BackendNotFoundError as e:
        logger.error(f"Backend error: {e}")
        return EXIT_NETWORK_ERROR

    except (ConnectionError, OSError) as e:
        logger.error(f"Network error: {e}")
        return EXIT_NETWORK_ERROR

    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_SUCCESS

    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return EXIT_NETWORK_ERROR


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code: 0=success, 1=config error, 3=backend/network error
    """
    args = parse_args(argv)

    # Setup basic logging first (will be reconfigured after config load)
    setup_logging("info")

    try:
        config = load_config(args.config, args_to_dict(args))
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR

    setup_logging(config.logging.level)

    if args.list_players:
        return run_list(config, args.json_output)

    logger.info(f"MediaRemote v{__version__}")
    log_config(config)
    return run_serve(config)


if __name__ == "__main__":
    sys.exit(main())
