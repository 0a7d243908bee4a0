"""Wire client adapters for Redis-compatible client libraries.

Architecture:
- KeyValueWireClient: Base class with all logic, library-agnostic
- RedisWireClient: Sets class attributes for redis-py
- ValkeyWireClient: Sets class attributes for valkey-py

The class attributes pattern allows subclasses to swap the underlying library
while keeping the connect/invoke/subscribe surface the dispatcher relies on.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from django_kvrelay.exceptions import NotSupportedError
from django_kvrelay.types import IamCredentials, PasswordCredentials

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from django_kvrelay.types import Address, Credentials

# Try to import redis-py and/or valkey-py
_REDIS_AVAILABLE = False
_VALKEY_AVAILABLE = False

try:
    import redis

    _REDIS_AVAILABLE = True
except ImportError:
    redis = None  # type: ignore[assignment]

try:
    import valkey

    _VALKEY_AVAILABLE = True
except ImportError:
    valkey = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)


# =============================================================================
# KeyValueWireClient - base class (library-agnostic)
# =============================================================================


class KeyValueWireClient:
    """Base wire client class with configurable library.

    Subclasses must set:
    - _lib: The library module (e.g., valkey or redis)
    - _client_class: The client class (e.g., valkey.Valkey)

    Args:
        credential_provider_factory: Callable turning ``IamCredentials`` into a
            library credential provider. Required for IAM authentication.
        **options: Extra keyword arguments passed to the library client
            (``socket_timeout``, ``decode_responses``, ...).
    """

    # Class attributes - subclasses override these
    _lib: Any = None  # The library module
    _client_class: type | None = None  # e.g., valkey.Valkey

    def __init__(
        self,
        credential_provider_factory: Callable[[IamCredentials], Any] | None = None,
        **options: Any,
    ) -> None:
        self._credential_provider_factory = credential_provider_factory
        self._options = options
        self._client: Any | None = None

    @classmethod
    def is_available(cls) -> bool:
        """Check whether the backing client library could be imported."""
        return cls._lib is not None and cls._client_class is not None

    # =========================================================================
    # Connection lifecycle
    # =========================================================================

    def connect(
        self,
        addresses: Sequence[Address],
        use_tls: bool = False,
        credentials: Credentials | None = None,
        database_id: int | None = None,
        client_name: str | None = None,
    ) -> bool:
        """Create the library client and verify it with a PING."""
        if not addresses:
            msg = "At least one address is required to connect."
            raise ValueError(msg)

        kwargs = self._connection_kwargs(use_tls=use_tls, credentials=credentials, client_name=client_name)
        client = self._create_client(list(addresses), database_id, kwargs)
        client.ping()
        self._client = client
        return True

    def close(self) -> bool:
        """Close the library client, if any."""
        if self._client is None:
            return False
        self._client.close()
        self._client = None
        return True

    def _create_client(self, addresses: list[Address], database_id: int | None, kwargs: dict[str, Any]) -> Any:
        assert self._client_class is not None, "Subclasses must set _client_class"  # noqa: S101
        address = addresses[0]
        if len(addresses) > 1:
            logger.debug("Standalone client ignores %d extra address(es)", len(addresses) - 1)
        if database_id is not None:
            kwargs["db"] = database_id
        return self._client_class(host=address.host, port=address.port, **kwargs)

    def _connection_kwargs(
        self,
        *,
        use_tls: bool,
        credentials: Credentials | None,
        client_name: str | None,
    ) -> dict[str, Any]:
        kwargs = dict(self._options)
        if use_tls:
            kwargs["ssl"] = True
        if client_name is not None:
            kwargs["client_name"] = client_name

        if isinstance(credentials, IamCredentials):
            if self._credential_provider_factory is None:
                raise NotSupportedError("IAM authentication", backend=type(self).__name__)
            kwargs["credential_provider"] = self._credential_provider_factory(credentials)
        elif isinstance(credentials, PasswordCredentials):
            kwargs["password"] = credentials.password
            if credentials.username is not None:
                kwargs["username"] = credentials.username

        return kwargs

    def _require_client(self) -> Any:
        if self._client is None:
            msg = "Wire client not connected. Call connect() first."
            raise RuntimeError(msg)
        return self._client

    # =========================================================================
    # Commands
    # =========================================================================

    def invoke(self, name: str, args: Sequence[Any]) -> Any:
        """Run a named command; ``rawcommand`` sends ``args`` verbatim."""
        client = self._require_client()
        if name.lower() == "rawcommand":
            return client.execute_command(*args)
        return client.execute_command(name, *args)

    # =========================================================================
    # Pub/Sub
    # =========================================================================

    def subscribe(self, channels: Sequence[str], handler: Callable[..., Any]) -> bool:
        """Block and deliver messages as ``handler(channel, data)``."""
        return self._listen(channels, handler, pattern=False)

    def psubscribe(self, patterns: Sequence[str], handler: Callable[..., Any]) -> bool:
        """Block and deliver messages as ``handler(pattern, channel, data)``."""
        return self._listen(patterns, handler, pattern=True)

    def _listen(self, channels: Sequence[str], handler: Callable[..., Any], *, pattern: bool) -> bool:
        pubsub = self._require_client().pubsub(ignore_subscribe_messages=True)

        def on_message(message: dict[str, Any]) -> None:
            if pattern:
                handler(message.get("pattern"), message.get("channel"), message.get("data"))
            else:
                handler(message.get("channel"), message.get("data"))

        handlers = dict.fromkeys(channels, on_message)
        try:
            if pattern:
                pubsub.psubscribe(**handlers)
            else:
                pubsub.subscribe(**handlers)
            # Registered handlers consume every message; listen() only blocks.
            for _ in pubsub.listen():
                pass
        finally:
            pubsub.close()
        return True


# =============================================================================
# RedisWireClient - uses redis-py
# =============================================================================


class RedisWireClient(KeyValueWireClient):
    """Wire client using redis-py."""

    if _REDIS_AVAILABLE:
        _lib = redis
        _client_class = redis.Redis


# =============================================================================
# ValkeyWireClient - uses valkey-py
# =============================================================================


class ValkeyWireClient(KeyValueWireClient):
    """Wire client using valkey-py."""

    if _VALKEY_AVAILABLE:
        _lib = valkey
        _client_class = valkey.Valkey
