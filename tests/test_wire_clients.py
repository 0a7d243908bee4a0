"""Wire client adapter tests.

The library client classes are replaced with mocks, so no server is needed.
"""

import pytest

from django_kvrelay.client import (
    RedisClusterWireClient,
    RedisWireClient,
    ValkeyClusterWireClient,
    ValkeyWireClient,
)
from django_kvrelay.client.default import _REDIS_AVAILABLE, _VALKEY_AVAILABLE
from django_kvrelay.exceptions import NotSupportedError
from django_kvrelay.types import Address, IamCredentials, PasswordCredentials

IAM = IamCredentials(username="app", cluster_name="cache", region="us-east-1")


@pytest.fixture
def library_client(mocker):
    client_class = mocker.MagicMock(name="Redis")
    mocker.patch.object(RedisWireClient, "_client_class", client_class)
    return client_class


@pytest.fixture
def connected(library_client):
    wire_client = RedisWireClient()
    wire_client.connect([Address("cache", 6380)])
    return wire_client, library_client.return_value


class TestAvailability:
    def test_redis(self):
        assert RedisWireClient.is_available() is _REDIS_AVAILABLE
        assert RedisClusterWireClient.is_available() is _REDIS_AVAILABLE

    def test_valkey(self):
        assert ValkeyWireClient.is_available() is _VALKEY_AVAILABLE
        assert ValkeyClusterWireClient.is_available() is _VALKEY_AVAILABLE


class TestConnect:
    def test_builds_library_client(self, library_client):
        wire_client = RedisWireClient(socket_timeout=2)

        assert wire_client.connect([Address("cache", 6380), Address("other", 6381)], database_id=3) is True

        library_client.assert_called_once_with(host="cache", port=6380, socket_timeout=2, db=3)
        library_client.return_value.ping.assert_called_once_with()

    def test_tls_name_and_acl(self, library_client):
        RedisWireClient().connect(
            [Address()],
            use_tls=True,
            credentials=PasswordCredentials("secret", username="app"),
            client_name="worker",
        )

        library_client.assert_called_once_with(
            host="127.0.0.1",
            port=6379,
            ssl=True,
            client_name="worker",
            password="secret",
            username="app",
        )

    def test_requires_address(self, library_client):
        with pytest.raises(ValueError, match="At least one address"):
            RedisWireClient().connect([])
        library_client.assert_not_called()

    def test_failed_ping_propagates(self, library_client):
        library_client.return_value.ping.side_effect = OSError("Connection refused")
        wire_client = RedisWireClient()

        with pytest.raises(OSError, match="Connection refused"):
            wire_client.connect([Address()])

        with pytest.raises(RuntimeError, match="not connected"):
            wire_client.invoke("get", ["k"])

    def test_iam_requires_provider_factory(self, library_client):
        with pytest.raises(NotSupportedError, match="IAM authentication' is not supported by RedisWireClient"):
            RedisWireClient().connect([Address()], use_tls=True, credentials=IAM)

    def test_iam_uses_credential_provider(self, library_client, mocker):
        provider = mocker.sentinel.provider
        factory = mocker.Mock(return_value=provider)

        RedisWireClient(credential_provider_factory=factory).connect([Address()], use_tls=True, credentials=IAM)

        factory.assert_called_once_with(IAM)
        library_client.assert_called_once_with(host="127.0.0.1", port=6379, ssl=True, credential_provider=provider)

    def test_close(self, connected):
        wire_client, library_instance = connected

        assert wire_client.close() is True
        library_instance.close.assert_called_once_with()
        assert wire_client.close() is False


class TestInvoke:
    def test_named_command(self, connected):
        wire_client, library_instance = connected
        library_instance.execute_command.return_value = b"value"

        assert wire_client.invoke("get", ["k"]) == b"value"
        library_instance.execute_command.assert_called_once_with("get", "k")

    def test_raw_command(self, connected):
        wire_client, library_instance = connected

        wire_client.invoke("rawcommand", ["CLIENT", "SETNAME", "worker"])

        library_instance.execute_command.assert_called_once_with("CLIENT", "SETNAME", "worker")

    def test_library_errors_propagate(self, connected):
        wire_client, library_instance = connected
        library_instance.execute_command.side_effect = RuntimeError("WRONGTYPE")

        with pytest.raises(RuntimeError, match="WRONGTYPE"):
            wire_client.invoke("get", ["k"])


class TestPubSub:
    def test_subscribe_delivers_channel_and_data(self, connected):
        wire_client, library_instance = connected
        pubsub = library_instance.pubsub.return_value
        received = []

        def fake_subscribe(**handlers):
            handlers["news"]({"type": "message", "pattern": None, "channel": b"news", "data": b"hello"})

        pubsub.subscribe.side_effect = fake_subscribe
        pubsub.listen.return_value = iter(())

        assert wire_client.subscribe(["news"], lambda *args: received.append(args)) is True

        library_instance.pubsub.assert_called_once_with(ignore_subscribe_messages=True)
        assert received == [(b"news", b"hello")]
        pubsub.close.assert_called_once_with()

    def test_psubscribe_delivers_pattern(self, connected):
        wire_client, library_instance = connected
        pubsub = library_instance.pubsub.return_value
        received = []

        def fake_psubscribe(**handlers):
            handlers["news.*"]({"type": "pmessage", "pattern": b"news.*", "channel": b"news.tech", "data": b"hi"})

        pubsub.psubscribe.side_effect = fake_psubscribe
        pubsub.listen.return_value = iter(())

        wire_client.psubscribe(["news.*"], lambda *args: received.append(args))

        assert received == [(b"news.*", b"news.tech", b"hi")]
        pubsub.subscribe.assert_not_called()

    def test_pubsub_closed_on_error(self, connected):
        wire_client, library_instance = connected
        pubsub = library_instance.pubsub.return_value
        pubsub.listen.side_effect = ConnectionError("Connection closed by server.")

        with pytest.raises(ConnectionError):
            wire_client.subscribe(["news"], lambda *args: None)

        pubsub.close.assert_called_once_with()


class TestCluster:
    @pytest.fixture
    def cluster_classes(self, mocker):
        cluster_class = mocker.MagicMock(name="RedisCluster")
        node_class = mocker.MagicMock(name="ClusterNode", side_effect=lambda host, port: (host, port))
        mocker.patch.object(RedisClusterWireClient, "_cluster_class", cluster_class)
        mocker.patch.object(RedisClusterWireClient, "_cluster_node_class", node_class)
        return cluster_class

    def test_hands_over_all_seeds(self, cluster_classes):
        RedisClusterWireClient().connect(
            [Address("node-1", 7000), Address("node-2", 7001)],
            credentials=PasswordCredentials("secret"),
        )

        cluster_classes.assert_called_once_with(
            startup_nodes=[("node-1", 7000), ("node-2", 7001)],
            password="secret",
        )
        cluster_classes.return_value.ping.assert_called_once_with()

    def test_database_is_not_forwarded(self, cluster_classes):
        RedisClusterWireClient().connect([Address("node-1", 7000)], database_id=4)

        _, kwargs = cluster_classes.call_args
        assert "db" not in kwargs

    def test_invoke(self, cluster_classes):
        wire_client = RedisClusterWireClient()
        wire_client.connect([Address("node-1", 7000)])

        wire_client.invoke("mget", ["a", "b"])

        cluster_classes.return_value.execute_command.assert_called_once_with("mget", "a", "b")
