"""Named connections configured through Django settings.

Settings layout::

    KVRELAY = {
        "connector": "django_kvrelay.connector.Connector",  # optional
        "options": {"prefix": "myapp:"},  # shared by every connection
        "default": {"url": "redis://127.0.0.1:6379/0"},
        "clusters": {
            "options": {"retry_delay_ms": 50},
            "sessions": [
                {"host": "node-1", "port": 7000, "password": "secret"},
                {"host": "node-2", "port": 7000},
            ],
        },
    }

Connections are kept per thread (and per async context), like Django's
``caches``, because a ``Connection`` replaces its wire client in place on
reconnect.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from django.conf import settings as django_settings
from django.core.exceptions import ImproperlyConfigured
from django.utils.connection import BaseConnectionHandler
from django.utils.module_loading import import_string

from django_kvrelay import config as connection_config
from django_kvrelay.connector import Connector

if TYPE_CHECKING:
    from collections.abc import Iterator

    from django_kvrelay.connection import Connection

_RESERVED_KEYS = frozenset({"connector", "options", "clusters"})


class ConnectionManager(BaseConnectionHandler):
    """Resolve, cache and close named connections.

    Args:
        settings: The ``KVRELAY`` mapping. Read from Django settings when omitted.
        connector: Connector instance. Defaults to the ``connector`` entry of
            the settings (class, instance or dotted path), then ``Connector``.
    """

    settings_name = "KVRELAY"

    def __init__(self, settings: Mapping[str, Any] | None = None, connector: Connector | None = None) -> None:
        super().__init__(settings)
        self._connector = connector

    def configure_settings(self, settings: Mapping[str, Any] | None) -> Mapping[str, Any]:
        if settings is None:
            settings = getattr(django_settings, self.settings_name, {})
        return settings

    @property
    def config(self) -> Mapping[str, Any]:
        return self.settings

    @property
    def connector(self) -> Connector:
        if self._connector is None:
            self._connector = self._build_connector(self.config.get("connector"))
        return self._connector

    def __getitem__(self, alias: str) -> Connection:
        try:
            return getattr(self._connections, alias)
        except AttributeError:
            pass
        connection = self.create_connection(alias)
        setattr(self._connections, alias, connection)
        return connection

    def __iter__(self) -> Iterator[str]:
        """Iterate over configured connection and cluster aliases."""
        for alias in self.config:
            if alias not in _RESERVED_KEYS:
                yield alias
        for alias in self.config.get("clusters") or {}:
            if alias != "options":
                yield alias

    def connection(self, name: str = "default") -> Connection:
        """Get this thread's connection, creating it on first use."""
        return self[name]

    def create_connection(self, alias: str) -> Connection:
        """Create a new, uncached connection for the given alias.

        Raises:
            ImproperlyConfigured: If no connection or cluster has that name.
        """
        options = self.config.get("options") or {}
        clusters = self.config.get("clusters") or {}

        if alias in clusters and alias != "options":
            cluster_options = clusters.get("options") or {}
            nodes = [self._parse(node) if isinstance(node, Mapping) else node for node in clusters[alias]]
            return self.connector.connect_to_cluster(nodes, cluster_options, options, name=alias)

        if alias in self.config and alias not in _RESERVED_KEYS:
            return self.connector.connect(self._parse(self.config[alias]), options, name=alias)

        msg = f"KVRELAY connection [{alias}] not configured."
        raise ImproperlyConfigured(msg)

    def disconnect(self, name: str = "default") -> None:
        """Close this thread's connection without forgetting it."""
        connection = getattr(self._connections, name, None)
        if connection is not None:
            connection.disconnect()

    def purge(self, name: str = "default") -> None:
        """Close and forget this thread's connection."""
        self.disconnect(name)
        if hasattr(self._connections, name):
            del self[name]

    def close_all(self) -> None:
        for connection in self.all(initialized_only=True):
            connection.disconnect()

    def connections(self) -> dict[str, Connection]:
        """Connections already created in this thread, by alias."""
        return {alias: getattr(self._connections, alias) for alias in self if hasattr(self._connections, alias)}

    @staticmethod
    def _parse(config: Mapping[str, Any]) -> dict[str, Any]:
        try:
            return connection_config.parse_url(config)
        except ValueError as exc:
            raise ImproperlyConfigured(str(exc)) from exc

    @staticmethod
    def _build_connector(config: str | type | Connector | None) -> Connector:
        if config is None:
            return Connector()
        if isinstance(config, str):
            config = import_string(config)
        if isinstance(config, type):
            return config()
        return config


manager = ConnectionManager()
