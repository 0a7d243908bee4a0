"""Types shared by the connection builder, the dispatcher and wire clients."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 6379
DEFAULT_IAM_REFRESH_INTERVAL = 300

# IAM service names understood by the store's token signer
IAM_SERVICE_ELASTICACHE = "Elasticache"
IAM_SERVICE_MEMORYDB = "MemoryDB"


@dataclass(frozen=True)
class Address:
    """A single ``host:port`` endpoint."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class PasswordCredentials:
    """Static password, optionally with an ACL username."""

    password: str
    username: str | None = None


@dataclass(frozen=True)
class IamCredentials:
    """Cloud IAM authentication parameters; implies TLS."""

    username: str
    cluster_name: str
    region: str
    service: str = IAM_SERVICE_ELASTICACHE
    refresh_interval_seconds: int = DEFAULT_IAM_REFRESH_INTERVAL


type Credentials = PasswordCredentials | IamCredentials


@dataclass(frozen=True)
class ConnectionConfig:
    """Canonical connect parameters handed to a wire client."""

    addresses: list[Address] = field(default_factory=lambda: [Address()])
    use_tls: bool = False
    credentials: Credentials | None = None
    database_id: int | None = None
    client_name: str | None = None

    def as_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``WireClient.connect``, omitting unset values."""
        kwargs: dict[str, Any] = {"addresses": list(self.addresses)}
        if self.use_tls:
            kwargs["use_tls"] = True
        if self.credentials is not None:
            kwargs["credentials"] = self.credentials
        if self.database_id is not None:
            kwargs["database_id"] = self.database_id
        if self.client_name is not None:
            kwargs["client_name"] = self.client_name
        return kwargs


@runtime_checkable
class WireClient(Protocol):
    """Capabilities consumed from the underlying store client."""

    def connect(
        self,
        addresses: Sequence[Address],
        use_tls: bool = False,
        credentials: Credentials | None = None,
        database_id: int | None = None,
        client_name: str | None = None,
    ) -> bool: ...

    def close(self) -> bool: ...

    def invoke(self, name: str, args: Sequence[Any]) -> Any: ...

    def subscribe(self, channels: Sequence[str], handler: Callable[..., Any]) -> bool: ...

    def psubscribe(self, patterns: Sequence[str], handler: Callable[..., Any]) -> bool: ...


type ClientFactory = Callable[[], WireClient]
