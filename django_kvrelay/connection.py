"""Command dispatch with key prefixing and one-shot reconnect on transport faults.

A ``Connection`` wraps a single wire client handle. Every command goes
through the same path:

1. The command name is normalized (stringified, trimmed, non-empty).
2. Key arguments are prefixed according to the command's key positions.
3. The wire client is invoked.
4. On failure, read-only commands whose error looks like a dropped transport
   are retried exactly once on a fresh client from the reconnect factory,
   after a short jittered backoff.

The retry replaces the held client in place, so a connection must not be
shared between threads without external locking.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from django_kvrelay.commands import is_retryable
from django_kvrelay.events import CommandExecuted, CommandFailed, create_listener
from django_kvrelay.exceptions import InvalidArgumentError, InvalidCommandError
from django_kvrelay.normalize import is_stringable, to_text
from django_kvrelay.prefixer import prefix_arguments, resolve_prefix
from django_kvrelay.retry import RetryPolicy, is_transient_error

if TYPE_CHECKING:
    from collections.abc import Callable

    from django_kvrelay.events import CommandListener
    from django_kvrelay.types import ClientFactory, WireClient

logger = logging.getLogger(__name__)

_SUBSCRIPTION_METHODS = frozenset({"subscribe", "psubscribe"})


class Connection:
    """Dispatcher bound to one logical connection.

    Args:
        client: The connected wire client.
        connector: Optional factory returning a new, connected wire client.
            Without it, commands are never retried.
        config: The merged connection config (``prefix``, ``retry_delay_ms``,
            ``retry_jitter_ms``, ``random_int``, ``sleep``, ``listener``).
        name: Connection alias reported in events.
        listener: Receives ``CommandExecuted`` / ``CommandFailed`` events;
            overrides the ``listener`` config key.
    """

    def __init__(
        self,
        client: WireClient,
        connector: ClientFactory | None = None,
        config: Mapping[str, Any] | None = None,
        name: str | None = None,
        listener: CommandListener | None = None,
    ) -> None:
        self._client = client
        self._connector = connector
        self._config = dict(config or {})
        self.name = name
        self._prefix = resolve_prefix(self._config.get("prefix"))
        self._retry_policy = RetryPolicy.from_config(self._config)
        self._listener = listener or create_listener(self._config.get("listener"))

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r} prefix={self._prefix!r}>"

    @property
    def client(self) -> WireClient:
        """The wire client currently in use (replaced after a reconnect)."""
        return self._client

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    def execute(self, method: Any, arguments: Sequence[Any] = ()) -> Any:
        """Execute a command, retrying once on a transient disconnect.

        Raises:
            InvalidCommandError: If ``method`` is not a non-empty string-like value.
        """
        method = self._normalize_command_method(method)
        arguments = prefix_arguments(method, arguments, self._prefix)
        attempt = 0

        while True:
            start = time.perf_counter()

            try:
                result = self._client.invoke(method, arguments)
            except Exception as exc:
                if attempt == 0 and self._should_retry(method, exc) and self._reconnect():
                    attempt += 1
                    logger.warning("Retrying %s after transient failure: %s", method, exc)
                    self._retry_policy.wait()
                    continue

                if self._listener is not None:
                    self._listener.command_failed(
                        CommandFailed(method, list(arguments), exc, connection_name=self.name),
                    )
                raise

            elapsed = round((time.perf_counter() - start) * 1000, 2)

            if self._listener is not None:
                self._listener.command_executed(
                    CommandExecuted(method, list(arguments), elapsed, connection_name=self.name),
                )

            return result

    def raw_execute(self, arguments: Sequence[Any]) -> Any:
        """Send a raw command, e.g. ``raw_execute(["CLIENT", "INFO"])``."""
        return self.execute("rawcommand", arguments)

    def subscribe(
        self,
        channels: Any,
        callback: Callable[[Any, Any], Any],
        method: Any = "subscribe",
    ) -> None:
        """Subscribe to channels; ``callback`` always receives ``(message, channel)``.

        Raises:
            InvalidArgumentError: If no valid channel is given or ``method`` is
                neither ``subscribe`` nor ``psubscribe``.
        """
        normalized_channels = self._normalize_subscription_channels(channels)
        normalized_method = self._normalize_subscription_method(method)
        handler = self._new_message_handler(callback)

        if normalized_method == "psubscribe":
            self._client.psubscribe(normalized_channels, handler)
        else:
            self._client.subscribe(normalized_channels, handler)

    def psubscribe(self, patterns: Any, callback: Callable[[Any, Any], Any]) -> None:
        """Subscribe to channel patterns."""
        self.subscribe(patterns, callback, method="psubscribe")

    def disconnect(self) -> None:
        """Close the underlying wire client."""
        self._client.close()

    # =========================================================================
    # Internals
    # =========================================================================

    def _should_retry(self, method: str, exc: Exception) -> bool:
        if self._connector is None:
            return False
        if not is_retryable(method):
            return False
        return is_transient_error(exc)

    def _reconnect(self) -> bool:
        if self._connector is None:
            return False
        client = self._connector()
        previous, self._client = self._client, client
        try:
            previous.close()
        except Exception:
            logger.debug("Closing the replaced wire client failed", exc_info=True)
        return True

    @staticmethod
    def _new_message_handler(callback: Callable[[Any, Any], Any]) -> Callable[..., None]:
        # Client conventions vary: (channel, message) or (pattern, channel, message).
        def handler(*arguments: Any) -> None:
            message = arguments[-1] if len(arguments) >= 1 else None
            channel = arguments[-2] if len(arguments) >= 2 else None
            callback(message, channel)

        return handler

    @staticmethod
    def _normalize_command_method(method: Any) -> str:
        text = to_text(method)
        normalized = text.strip() if text is not None else ""
        if not normalized:
            raise InvalidCommandError(method)
        return normalized

    @staticmethod
    def _normalize_subscription_method(method: Any) -> str:
        text = to_text(method)
        normalized = text.strip().lower() if text is not None else ""
        if not normalized:
            msg = f"Unsupported subscription method type [{type(method).__name__}]."
            raise InvalidArgumentError(msg)
        if normalized not in _SUBSCRIPTION_METHODS:
            msg = f"Unsupported subscription method [{normalized}]."
            raise InvalidArgumentError(msg)
        return normalized

    @staticmethod
    def _normalize_subscription_channels(channels: Any) -> list[str]:
        if isinstance(channels, (str, bytes)):
            source = [channels]
        elif isinstance(channels, Sequence):
            source = list(channels)
        else:
            msg = f"Unsupported subscription channel type [{type(channels).__name__}]."
            raise InvalidArgumentError(msg)

        normalized = []
        for channel in source:
            if not is_stringable(channel):
                continue
            name = to_text(channel)
            if name and name.strip():
                normalized.append(name)

        if not normalized:
            msg = "At least one valid subscription channel is required."
            raise InvalidArgumentError(msg)

        return normalized
