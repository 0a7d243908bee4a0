"""Normalize connection configuration into wire-client connect parameters.

A configuration is a flat, string-keyed mapping. It may come in several legal
shapes: a single ``host``/``port`` pair, an ``addresses`` list, a ``url``,
or (for clusters) a list of node mappings, possibly nested one level deep
under named slots.

Example:
    Building connect parameters from layered settings::

        from django_kvrelay import config

        merged = config.merge(
            {"host": "cache.internal", "options": {"database": 2}},
            {"password": "secret"},
        )
        params = config.connect_arguments(merged)
        client.connect(**params.as_kwargs())
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import parse_qs, unquote, urlparse

from django_kvrelay.normalize import normalize_non_negative_int, normalize_string
from django_kvrelay.types import (
    DEFAULT_HOST,
    DEFAULT_IAM_REFRESH_INTERVAL,
    DEFAULT_PORT,
    IAM_SERVICE_ELASTICACHE,
    Address,
    ConnectionConfig,
    Credentials,
    IamCredentials,
    PasswordCredentials,
)

_TLS_SCHEMES = frozenset({"rediss", "valkeys", "tls"})
_URL_SCHEMES = frozenset({"redis", "valkey", "tcp"}) | _TLS_SCHEMES


def merge(config: Mapping[str, Any], options: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Merge connection config with options and nested option overrides.

    Precedence, lowest to highest: ``config``, ``options``, ``config["options"]``.
    The merge is shallow and the ``options`` key itself is dropped.
    """
    nested_options = config.get("options")
    if not isinstance(nested_options, Mapping):
        nested_options = {}

    merged = {key: value for key, value in config.items() if key != "options"}
    if options:
        merged.update(options)
    merged.update(nested_options)
    return merged


def parse_url(config: Mapping[str, Any]) -> dict[str, Any]:
    """Expand a ``url`` key into host, port, credentials, database and scheme.

    Values found in the URL override the explicit keys. Query parameters are
    copied over as plain options (``?database=3&name=worker``).
    """
    url = config.get("url")
    expanded = {key: value for key, value in config.items() if key != "url"}
    if not isinstance(url, str) or not url:
        return expanded

    parsed = urlparse(url)
    if parsed.scheme not in _URL_SCHEMES:
        msg = f"Unsupported connection URL scheme [{parsed.scheme}]."
        raise ValueError(msg)

    if parsed.scheme in _TLS_SCHEMES:
        expanded["scheme"] = "tls"
    if parsed.hostname:
        expanded["host"] = parsed.hostname
    if parsed.port:
        expanded["port"] = parsed.port
    if parsed.username:
        expanded["username"] = unquote(parsed.username)
    if parsed.password:
        expanded["password"] = unquote(parsed.password)

    database = parsed.path.lstrip("/")
    if database:
        expanded["database"] = database

    for key, values in parse_qs(parsed.query).items():
        expanded[key] = values[-1]

    return expanded


def connect_arguments(config: Mapping[str, Any]) -> ConnectionConfig:
    """Build connect parameters for a single logical connection."""
    return ConnectionConfig(
        addresses=addresses(config),
        use_tls=uses_tls(config) or has_iam(config),
        credentials=credentials(config),
        database_id=normalize_non_negative_int(config.get("database")),
        client_name=client_name(config.get("name")),
    )


def cluster_connect_arguments(
    cluster_config: Sequence[Any] | Mapping[str, Any],
    base_config: Mapping[str, Any] | None = None,
) -> ConnectionConfig:
    """Build connect parameters using cluster seed nodes as addresses."""
    merged = merge(base_config or {}, {"addresses": cluster_addresses(cluster_config)})
    return connect_arguments(merged)


def addresses(config: Mapping[str, Any]) -> list[Address]:
    """Normalize the ``addresses`` list, or fall back to top-level host/port."""
    raw_addresses = config.get("addresses")

    if _is_sequence(raw_addresses) and raw_addresses:
        normalized = [address for raw in raw_addresses if (address := _coerce_address(raw)) is not None]
        if normalized:
            return normalized

    return [normalize_address(config)]


def cluster_addresses(cluster_config: Sequence[Any] | Mapping[str, Any]) -> list[Address]:
    """Extract cluster seed addresses from flat or one-level-nested node lists."""
    nodes = _extract_cluster_nodes(cluster_config)
    if not nodes:
        return [Address()]
    return [normalize_address(node) for node in nodes]


def first_cluster_node(cluster_config: Sequence[Any] | Mapping[str, Any]) -> dict[str, Any]:
    """Return the first mapping in a cluster config, used as the seed node."""
    for node in _iter_values(cluster_config):
        if isinstance(node, Mapping):
            return dict(node)
    return {}


def normalize_address(address: Mapping[str, Any]) -> Address:
    """Normalize a host and port pair, defaulting invalid values."""
    host = normalize_string(address.get("host"), DEFAULT_HOST)
    port = normalize_non_negative_int(address.get("port"))
    return Address(host=host, port=port or DEFAULT_PORT)


def uses_tls(config: Mapping[str, Any]) -> bool:
    """Determine whether TLS is enabled by config; an explicit ``tls`` key wins."""
    if "tls" in config:
        return bool(config["tls"])
    return config.get("scheme") == "tls"


def has_iam(config: Mapping[str, Any]) -> bool:
    """Determine whether an IAM auth block is present (complete or not)."""
    return isinstance(config.get("iam"), Mapping)


def credentials(config: Mapping[str, Any]) -> Credentials | None:
    """Build IAM, ACL or password credentials, preferring complete IAM config."""
    iam = iam_credentials(config)
    if iam is not None:
        return iam

    password = config.get("password")
    if not isinstance(password, str) or not password:
        return None

    username = config.get("username")
    if isinstance(username, str) and username:
        return PasswordCredentials(password=password, username=username)
    return PasswordCredentials(password=password)


def iam_credentials(config: Mapping[str, Any]) -> IamCredentials | None:
    """Build IAM credentials when username, cluster name and region are all set."""
    if not has_iam(config):
        return None

    iam = config["iam"]
    username = normalize_string(iam.get("username"))
    cluster_name = normalize_string(iam.get("cluster_name"))
    region = normalize_string(iam.get("region"))

    if not username or not cluster_name or not region:
        return None

    refresh_interval = normalize_non_negative_int(iam.get("refresh_interval"))

    return IamCredentials(
        username=username,
        cluster_name=cluster_name,
        region=region,
        service=IAM_SERVICE_ELASTICACHE,
        refresh_interval_seconds=refresh_interval or DEFAULT_IAM_REFRESH_INTERVAL,
    )


def client_name(value: Any) -> str | None:
    """Normalize a client display name; blank names are omitted."""
    normalized = normalize_string(value).strip()
    return normalized or None


def _coerce_address(raw: Any) -> Address | None:
    if isinstance(raw, Mapping):
        return normalize_address(raw)
    # (host, port) pairs, as used for sentinel lists
    if _is_sequence(raw) and len(raw) == 2:
        return normalize_address({"host": raw[0], "port": raw[1]})
    return None


def _extract_cluster_nodes(cluster_config: Sequence[Any] | Mapping[str, Any]) -> list[Mapping[str, Any]]:
    nodes: list[Mapping[str, Any]] = []

    for value in _iter_values(cluster_config):
        if not isinstance(value, Mapping):
            continue
        if _looks_like_node(value):
            nodes.append(value)
            continue
        nodes.extend(nested for nested in value.values() if isinstance(nested, Mapping) and _looks_like_node(nested))

    return nodes


def _looks_like_node(value: Mapping[str, Any]) -> bool:
    return "host" in value or "port" in value


def _iter_values(config: Any) -> list[Any]:
    if isinstance(config, Mapping):
        return list(config.values())
    if _is_sequence(config):
        return list(config)
    return []


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


__all__ = [
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "addresses",
    "client_name",
    "cluster_addresses",
    "cluster_connect_arguments",
    "connect_arguments",
    "credentials",
    "first_cluster_node",
    "has_iam",
    "iam_credentials",
    "merge",
    "normalize_address",
    "parse_url",
    "uses_tls",
]
