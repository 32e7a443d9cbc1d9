"""
Named transport registry.

Maps a backend name to a factory plus default constructor arguments. Unknown
names fail at lookup time, before anything is serialized.
"""

from typing import Any, Callable, Dict, List, Tuple

import structlog

from ..errors import ConfigError
from .backends import CallbackTransport, SendmailTransport, SMTPTransport
from .base import Transport


logger = structlog.get_logger(__name__)

TransportFactory = Callable[..., Transport]


class TransportRegistry:
    """Registry of transport factories keyed by lowercase name."""

    def __init__(self):
        self._factories: Dict[str, Tuple[TransportFactory, Dict[str, Any]]] = {}

    def register(self, name: str, factory: TransportFactory, **default_args: Any) -> None:
        """
        Register (or replace) a backend.

        Args:
            name: Backend name, e.g. ``"smtp"``
            factory: Callable returning a Transport
            **default_args: Constructor arguments used unless overridden at creation
        """
        self._factories[name.lower()] = (factory, dict(default_args))
        logger.debug("transport_registered", name=name.lower())

    def set_defaults(self, name: str, **default_args: Any) -> None:
        """Replace the default constructor arguments of a registered backend."""
        factory, _ = self._lookup(name)
        self._factories[name.lower()] = (factory, dict(default_args))

    def create(self, name: str, **overrides: Any) -> Transport:
        """
        Instantiate a backend.

        Args:
            name: Registered backend name
            **overrides: Constructor arguments taking precedence over the defaults

        Returns:
            Transport instance

        Raises:
            ConfigError: If the name is not registered or the arguments are rejected
        """
        factory, defaults = self._lookup(name)
        args = {**defaults, **overrides}
        try:
            return factory(**args)
        except TypeError as e:
            raise ConfigError(f"Invalid arguments for transport {name!r}: {e}") from e

    def names(self) -> List[str]:
        return sorted(self._factories)

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._factories

    def _lookup(self, name: str) -> Tuple[TransportFactory, Dict[str, Any]]:
        try:
            return self._factories[name.lower()]
        except KeyError:
            raise ConfigError(
                f"Unknown transport: {name}. Registered: {', '.join(self.names()) or 'none'}"
            ) from None


def create_default_registry() -> TransportRegistry:
    """Registry holding the built-in ``sendmail``, ``smtp`` and ``sub`` backends."""
    registry = TransportRegistry()
    registry.register("sendmail", SendmailTransport)
    registry.register("smtp", SMTPTransport)
    registry.register("sub", CallbackTransport)
    return registry


default_registry = create_default_registry()
