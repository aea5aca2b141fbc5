"""Cluster queries used by the pre-flight checks."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import quote

import httpx

from espreflight.exceptions import TransportError
from espreflight.settings import Settings
from espreflight.topology import NodeRole
from espreflight.version import ClusterVersion

_MASTER = "master"
_DATA = "data"
_INGEST = "ingest"


class HealthStatus(Enum):
    """Index health as reported by the cluster."""

    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


@dataclass
class NodeInfo:
    """Information about a cluster node with HTTP enabled."""

    node_id: str
    name: str
    address: str
    roles: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_data(self) -> bool:
        return any(role == _DATA or role.startswith(f"{_DATA}_") for role in self.roles)

    @property
    def is_ingest(self) -> bool:
        return _INGEST in self.roles

    @property
    def is_client(self) -> bool:
        # Coordinating-only: neither master eligible, nor data, nor ingest
        return _MASTER not in self.roles and not self.is_data and not self.is_ingest

    def has_role(self, role: NodeRole) -> bool:
        """Check if the node satisfies ``role``."""
        match role:
            case NodeRole.ANY:
                return True
            case NodeRole.DATA:
                return self.is_data
            case NodeRole.CLIENT:
                return self.is_client
            case NodeRole.INGEST:
                return self.is_ingest


def parse_publish_address(raw: str) -> str:
    """Reduce a published HTTP address to "ip:port".

    Handles "hostname/1.2.3.4:9200" and the legacy "inet[/1.2.3.4:9200]" forms.
    """
    address = raw.strip()
    if address.startswith("inet[") and address.endswith("]"):
        address = address[len("inet[") : -1]
    if "/" in address:
        address = address.rsplit("/", 1)[1]
    return address


def parse_node(node_id: str, payload: dict[str, Any]) -> NodeInfo | None:
    """Build a NodeInfo from one entry of a ``_nodes/http`` response.

    Returns None for nodes without HTTP enabled.
    """
    http = payload.get("http") or {}
    publish_address = http.get("publish_address")
    if not publish_address:
        return None

    roles = payload.get("roles")
    if roles is None:
        # Clusters predating node roles only expose attributes
        attributes = payload.get("attributes") or {}
        roles = [
            role
            for role in (_MASTER, _DATA)
            if str(attributes.get(role, "true")).lower() != "false"
        ]

    return NodeInfo(
        node_id=node_id,
        name=str(payload.get("name", node_id)),
        address=parse_publish_address(str(publish_address)),
        roles=frozenset(str(role) for role in roles),
    )


class ClusterProbe(ABC):
    """Session for querying cluster state.

    Sessions are meant to be short lived; use as an async context manager so
    they are closed on every exit path.
    """

    @abstractmethod
    async def nodes_by_role(self, role: NodeRole) -> list[str]:
        """Get addresses of HTTP-enabled nodes satisfying ``role``."""
        ...

    async def all_nodes(self) -> list[str]:
        """Get addresses of all HTTP-enabled nodes."""
        return await self.nodes_by_role(NodeRole.ANY)

    @abstractmethod
    async def cluster_name(self) -> str:
        """Get the cluster name."""
        ...

    @abstractmethod
    async def index_exists(self, name: str) -> bool:
        """Check whether an index (or alias/pattern) exists."""
        ...

    @abstractmethod
    async def index_health(self, name: str) -> HealthStatus:
        """Get the health of an index."""
        ...

    @abstractmethod
    async def remote_version(self) -> ClusterVersion:
        """Get the cluster version."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the session."""
        ...

    async def __aenter__(self) -> "ClusterProbe":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


class HttpClusterProbe(ClusterProbe):
    """Cluster probe over the REST API.

    Every request is sent to the configured nodes in order until one answers.
    """

    def __init__(
        self,
        nodes: list[str],
        *,
        ssl: bool = False,
        auth: tuple[str, str] | None = None,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the probe (does not connect yet).

        Args:
            nodes: Node addresses in "host:port" format
            ssl: Use https instead of http
            auth: Basic auth (user, password)
            timeout: Request timeout in seconds
            transport: Custom httpx transport
        """
        self._nodes = list(nodes)
        self._scheme = "https" if ssl else "http"
        self._client = httpx.AsyncClient(auth=auth, timeout=timeout, transport=transport)
        self._node_info: list[NodeInfo] | None = None

    @classmethod
    def from_settings(
        cls, settings: Settings, nodes: list[str] | None = None
    ) -> "HttpClusterProbe":
        """Create a probe from settings, targeting ``nodes`` or the declared nodes."""
        auth = None
        if settings.http_auth_user:
            auth = (settings.http_auth_user, settings.http_auth_pass or "")
        return cls(
            nodes if nodes is not None else settings.declared_nodes,
            ssl=settings.net_ssl,
            auth=auth,
            timeout=settings.http_timeout,
        )

    async def _request(self, method: str, path: str) -> httpx.Response:
        if not self._nodes:
            raise TransportError("No nodes configured")

        errors: list[str] = []

        for node in self._nodes:
            try:
                return await self._client.request(method, f"{self._scheme}://{node}{path}")
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                # InvalidURL is not an HTTPError; a malformed node is a failed node
                errors.append(f"{node}: {e!r}")
                continue

        raise TransportError(
            f"Connection error (check network and/or proxy settings) - all nodes failed; "
            f"tried {self._nodes}. Errors: {'; '.join(errors)}"
        )

    async def _get_json(self, path: str) -> dict[str, Any]:
        response = await self._request("GET", path)
        if response.status_code != 200:
            raise TransportError(
                f"[GET] on [{path}] failed; server [{response.url.host}:{response.url.port}] "
                f"returned [{response.status_code}|{response.reason_phrase}]"
            )
        try:
            payload = response.json()
        except ValueError as e:
            raise TransportError(f"[GET] on [{path}] returned invalid JSON") from e
        if not isinstance(payload, dict):
            raise TransportError(f"[GET] on [{path}] returned unexpected payload {payload!r}")
        return payload

    async def _nodes_info(self) -> list[NodeInfo]:
        if self._node_info is None:
            payload = await self._get_json("/_nodes/http")
            nodes = payload.get("nodes")
            if not isinstance(nodes, dict):
                raise TransportError("[GET] on [/_nodes/http] returned no node information")
            parsed = (parse_node(node_id, info) for node_id, info in nodes.items())
            self._node_info = [node for node in parsed if node is not None]
        return self._node_info

    async def nodes_by_role(self, role: NodeRole) -> list[str]:
        """Get addresses of HTTP-enabled nodes satisfying ``role``."""
        nodes = await self._nodes_info()
        return list(dict.fromkeys(node.address for node in nodes if node.has_role(role)))

    async def cluster_name(self) -> str:
        """Get the cluster name."""
        payload = await self._get_json("/")
        try:
            return str(payload["cluster_name"])
        except KeyError as e:
            raise TransportError("Cluster info response has no cluster_name") from e

    async def index_exists(self, name: str) -> bool:
        """Check whether an index (or alias/pattern) exists."""
        path = f"/{quote(name, safe=',*')}"
        response = await self._request("HEAD", path)
        if response.status_code == 200:
            return True
        if response.status_code == 404:
            return False
        raise TransportError(
            f"[HEAD] on [{path}] failed; returned [{response.status_code}|{response.reason_phrase}]"
        )

    async def index_health(self, name: str) -> HealthStatus:
        """Get the health of an index."""
        payload = await self._get_json(f"/_cluster/health/{quote(name, safe=',*')}")
        status = str(payload.get("status", "")).lower()
        try:
            return HealthStatus(status)
        except ValueError as e:
            raise TransportError(f"Unknown health status [{status}] for index [{name}]") from e

    async def remote_version(self) -> ClusterVersion:
        """Get the cluster version."""
        payload = await self._get_json("/")
        try:
            return ClusterVersion.parse(str(payload["version"]["number"]))
        except (KeyError, TypeError, ValueError) as e:
            raise TransportError(f"Cannot parse cluster version from {payload!r}") from e

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
