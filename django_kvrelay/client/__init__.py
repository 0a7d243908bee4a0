# Wire clients (connect, invoke commands, pub/sub) - used by the connector
from django_kvrelay.client.cluster import (
    KeyValueClusterWireClient,
    RedisClusterWireClient,
    ValkeyClusterWireClient,
)
from django_kvrelay.client.default import (
    KeyValueWireClient,
    RedisWireClient,
    ValkeyWireClient,
)

__all__ = [
    # Standalone wire clients
    "KeyValueWireClient",
    "RedisWireClient",
    "ValkeyWireClient",
    # Cluster wire clients
    "KeyValueClusterWireClient",
    "RedisClusterWireClient",
    "ValkeyClusterWireClient",
]
