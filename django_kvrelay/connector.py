"""Connectors build ``Connection`` objects from layered configuration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from django.utils.module_loading import import_string

from django_kvrelay import config as connection_config
from django_kvrelay.connection import Connection
from django_kvrelay.exceptions import ConnectionEstablishmentError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from django_kvrelay.types import WireClient

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_CLASS = "django_kvrelay.client.RedisWireClient"
DEFAULT_CLUSTER_CLIENT_CLASS = "django_kvrelay.client.RedisClusterWireClient"


def _resolve_client_class(value: str | type | None, default: str) -> type:
    client_class = value or default
    if isinstance(client_class, str):
        try:
            client_class = import_string(client_class)
        except ImportError as exc:
            msg = f'Wire client class "{value or default}" is unavailable.'
            raise ConnectionEstablishmentError(msg) from exc
    return client_class


def _library_available(client_class: type) -> bool:
    is_available = getattr(client_class, "is_available", None)
    if is_available is None:
        return True
    return bool(is_available())


class Connector:
    """Build connections backed by a wire client.

    Args:
        client_factory: Callable ``(config) -> WireClient`` returning an
            unconnected client. Defaults to instantiating ``client_class``
            (or ``cluster_client_class`` for clusters) from the config.
        availability_check: Callable ``(client_class) -> bool`` verifying the
            client library is importable. Runs before every client creation,
            including when ``client_factory`` is given. Defaults to
            ``client_class.is_available()``.
    """

    def __init__(
        self,
        client_factory: Callable[[Mapping[str, Any]], WireClient] | None = None,
        availability_check: Callable[[type], bool] | None = None,
    ) -> None:
        self._client_factory = client_factory
        self._availability_check = availability_check or _library_available

    def connect(
        self,
        config: Mapping[str, Any],
        options: Mapping[str, Any] | None = None,
        name: str | None = None,
    ) -> Connection:
        """Create a connection for a single configured endpoint."""
        resolved_config = connection_config.merge(config, options)
        return self._create_connection(resolved_config, name=name)

    def connect_to_cluster(
        self,
        config: Sequence[Any] | Mapping[str, Any],
        cluster_options: Mapping[str, Any] | None = None,
        options: Mapping[str, Any] | None = None,
        name: str | None = None,
    ) -> Connection:
        """Create a connection for a cluster described by its seed nodes.

        The first node mapping supplies shared settings (password, prefix, ...);
        ``cluster_options`` override ``options``.
        """
        seed_node = connection_config.first_cluster_node(config)
        resolved_config = connection_config.merge(seed_node, {**(options or {}), **(cluster_options or {})})
        resolved_config["addresses"] = connection_config.cluster_addresses(config)
        resolved_config["cluster"] = True
        return self._create_connection(resolved_config, name=name)

    def _create_connection(self, resolved_config: dict[str, Any], name: str | None) -> Connection:
        def reconnect() -> WireClient:
            return self.create_client(resolved_config)

        return Connection(reconnect(), reconnect, resolved_config, name=name)

    def create_client(self, config: Mapping[str, Any]) -> WireClient:
        """Create and connect a wire client.

        Raises:
            ConnectionEstablishmentError: If the client library is unavailable or
                the connect call fails.
        """
        client = self._new_client(config)
        params = connection_config.connect_arguments(config)
        logger.debug(
            "Connecting %s to %s",
            type(client).__name__,
            ", ".join(str(address) for address in params.addresses),
            extra={"use_tls": params.use_tls},
        )

        try:
            connected = client.connect(**params.as_kwargs())
        except ConnectionEstablishmentError:
            raise
        except Exception as exc:
            msg = f"Unable to establish a connection: {exc}"
            raise ConnectionEstablishmentError(msg) from exc

        if connected is False:
            msg = f"Unable to establish a connection: {type(client).__name__}.connect() reported failure."
            raise ConnectionEstablishmentError(msg)

        return client

    def _new_client(self, config: Mapping[str, Any]) -> WireClient:
        if config.get("cluster"):
            client_class = _resolve_client_class(config.get("cluster_client_class"), DEFAULT_CLUSTER_CLIENT_CLASS)
        else:
            client_class = _resolve_client_class(config.get("client_class"), DEFAULT_CLIENT_CLASS)

        if not self._availability_check(client_class):
            msg = f'Client library for "{client_class.__name__}" is not installed.'
            raise ConnectionEstablishmentError(msg)

        if self._client_factory is not None:
            return self._client_factory(config)

        return client_class(**dict(config.get("client_options") or {}))
