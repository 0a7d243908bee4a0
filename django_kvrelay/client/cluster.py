"""Cluster wire clients for Redis-compatible backends.

The cluster library client discovers the full topology from the seed
addresses; this adapter only hands the seeds over.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, override

from django_kvrelay.client.default import KeyValueWireClient, _REDIS_AVAILABLE, _VALKEY_AVAILABLE

if TYPE_CHECKING:
    from django_kvrelay.types import Address

if _REDIS_AVAILABLE:
    import redis
    import redis.cluster

if _VALKEY_AVAILABLE:
    import valkey
    import valkey.cluster

logger = logging.getLogger(__name__)


class KeyValueClusterWireClient(KeyValueWireClient):
    """Cluster wire client base class.

    Subclasses must set ``_cluster_class`` and ``_cluster_node_class``.
    """

    _cluster_class: type[Any] | None = None
    _cluster_node_class: type[Any] | None = None

    @classmethod
    @override
    def is_available(cls) -> bool:
        return cls._lib is not None and cls._cluster_class is not None

    @override
    def _create_client(self, addresses: list[Address], database_id: int | None, kwargs: dict[str, Any]) -> Any:
        assert self._cluster_class is not None, "Subclasses must set _cluster_class"  # noqa: S101
        assert self._cluster_node_class is not None, "Subclasses must set _cluster_node_class"  # noqa: S101
        if database_id:
            logger.debug("Cluster mode only supports database 0, ignoring database %d", database_id)
        startup_nodes = [self._cluster_node_class(address.host, address.port) for address in addresses]
        return self._cluster_class(startup_nodes=startup_nodes, **kwargs)


class RedisClusterWireClient(KeyValueClusterWireClient):
    """Cluster wire client using redis-py."""

    if _REDIS_AVAILABLE:
        _lib = redis
        _client_class = redis.Redis
        _cluster_class = redis.cluster.RedisCluster
        _cluster_node_class = redis.cluster.ClusterNode


class ValkeyClusterWireClient(KeyValueClusterWireClient):
    """Cluster wire client using valkey-py."""

    if _VALKEY_AVAILABLE:
        _lib = valkey
        _client_class = valkey.Valkey
        _cluster_class = valkey.cluster.ValkeyCluster
        _cluster_node_class = valkey.cluster.ClusterNode
