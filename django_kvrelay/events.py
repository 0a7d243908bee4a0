"""Command outcome events and listeners.

A listener is any object with ``command_executed`` and ``command_failed``
methods. The dispatcher calls it synchronously after every command; there is
no global event bus.

Example:
    Logging every command on a connection::

        KVRELAY = {
            "default": {
                "host": "127.0.0.1",
                "listener": "django_kvrelay.events.LoggingListener",
            },
        }
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandExecuted:
    """A command completed successfully; ``time`` is elapsed milliseconds."""

    method: str
    arguments: list[Any] = field(repr=False)
    time: float
    connection_name: str | None = None


@dataclass(frozen=True)
class CommandFailed:
    """A command failed and the error is about to propagate to the caller."""

    method: str
    arguments: list[Any] = field(repr=False)
    exception: BaseException
    connection_name: str | None = None


@runtime_checkable
class CommandListener(Protocol):
    def command_executed(self, event: CommandExecuted) -> None: ...

    def command_failed(self, event: CommandFailed) -> None: ...


class LoggingListener:
    """Listener that writes command outcomes to the ``django_kvrelay.events`` logger.

    Argument values are not logged, only their count.
    """

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._logger = log or logger

    def command_executed(self, event: CommandExecuted) -> None:
        self._logger.debug(
            "Command %s executed in %.2fms",
            event.method,
            event.time,
            extra={"connection": event.connection_name, "argument_count": len(event.arguments)},
        )

    def command_failed(self, event: CommandFailed) -> None:
        self._logger.warning(
            "Command %s failed: %s",
            event.method,
            event.exception,
            extra={"connection": event.connection_name, "argument_count": len(event.arguments)},
        )


def create_listener(config: str | type | Any | None) -> CommandListener | None:
    """Create a listener instance from config.

    Args:
        config: A dotted path string, a class, an instance, or None for no listener
    """
    if config is None:
        return None

    # Already an instance
    if isinstance(config, CommandListener) and not isinstance(config, type):
        return config

    # A class (not a string path)
    if isinstance(config, type):
        return config()

    # Dotted path string
    cls = import_string(config)
    return cls()
