"""
Backend factory and registry.

Provides factory methods to instantiate player backends by type name.
"""

import logging
from typing import Optional

from media_remote.config import Config

from .base import PlayerBackend
from .mpris import MprisBackend

logger = logging.getLogger(__name__)


class BackendNotFoundError(Exception):
    """Raised when requested backend type is not available."""

    pass


class BackendRegistry:
    """
    Registry of available backend types.

    Backends register themselves here with their type name.
    Factory uses this to instantiate backends.
    """

    _backends: dict[str, type[PlayerBackend]] = {}

    @classmethod
    def register(cls, type_name: str, backend_class: type[PlayerBackend]) -> None:
        """Register a backend class."""
        cls._backends[type_name] = backend_class
        logger.debug(f"Registered backend type: {type_name}")

    @classmethod
    def get(cls, type_name: str) -> Optional[type[PlayerBackend]]:
        """Get backend class by type name."""
        return cls._backends.get(type_name)

    @classmethod
    def available_types(cls) -> list[str]:
        """Get list of registered backend type names."""
        return list(cls._backends.keys())


class BackendFactory:
    """
    Factory for creating player backend instances.

    Usage:
        backend = BackendFactory.create_from_config(config)
    """

    @classmethod
    def create_from_config(cls, config: Config) -> PlayerBackend:
        """
        Create and connect a backend based on configuration.

        Raises:
            BackendNotFoundError: If the type is unknown or connection fails
        """
        backend_type = config.players.backend

        backend_class = BackendRegistry.get(backend_type)
        if not backend_class:
            available = BackendRegistry.available_types()
            raise BackendNotFoundError(
                f"Backend type '{backend_type}' not available. " f"Available types: {available}"
            )

        backend = backend_class(name=f"{backend_type} Backend")
        if not backend.connect():
            raise BackendNotFoundError(f"Failed to connect backend '{backend_type}'")
        return backend

    @classmethod
    def list_available_backends(cls) -> list[str]:
        """List available backend types."""
        return BackendRegistry.available_types()


# Register backends
BackendRegistry.register("mpris", MprisBackend)
