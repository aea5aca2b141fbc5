"""Settings consumed by the pre-flight checks."""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field

from espreflight.exceptions import ConfigurationError
from espreflight.topology import NodeRole

ES_NODES = "es.nodes"
ES_PORT = "es.port"
ES_NODES_DISCOVERY = "es.nodes.discovery"
ES_NODES_WAN_ONLY = "es.nodes.wan.only"
ES_NODES_CLIENT_ONLY = "es.nodes.client.only"
ES_NODES_DATA_ONLY = "es.nodes.data.only"
ES_NODES_INGEST_ONLY = "es.nodes.ingest.only"
ES_INPUT_JSON = "es.input.json"
ES_MAPPING_INCLUDE = "es.mapping.include"
ES_MAPPING_EXCLUDE = "es.mapping.exclude"
ES_READ_SOURCE_FILTER = "es.read.source.filter"
ES_INTERNAL_TARGET_FIELDS = "es.internal.mr.target.fields"
ES_INDEX_READ_ALLOW_RED_STATUS = "es.index.read.allow.red.status"
ES_INDEX_AUTO_CREATE = "es.index.auto.create"
ES_RESOURCE = "es.resource"
ES_RESOURCE_READ = "es.resource.read"
ES_RESOURCE_WRITE = "es.resource.write"
ES_CLUSTER_NAME = "es.cluster.name"
ES_WRITE_OPERATION = "es.write.operation"
ES_MAPPING_ID = "es.mapping.id"
ES_INTERNAL_VERSION = "es.internal.es.version"
ES_NET_SSL = "es.net.ssl"
ES_HTTP_AUTH_USER = "es.net.http.auth.user"
ES_HTTP_AUTH_PASS = "es.net.http.auth.pass"
ES_HTTP_TIMEOUT = "es.http.timeout"
ES_SER_WRITER_VALUE_CLASS = "es.ser.writer.value.class"
ES_SER_READER_VALUE_CLASS = "es.ser.reader.value.class"
ES_SER_WRITER_BYTES_CLASS = "es.ser.writer.bytes.class"
ES_MAPPING_DEFAULT_EXTRACTOR_CLASS = "es.mapping.default.extractor.class"

OPERATION_INDEX = "index"
OPERATION_UPDATE = "update"

_TRUE = {"true", "yes", "1", "on"}
_FALSE = {"false", "no", "0", "off"}
_DURATION = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0, None: 1.0}


def parse_bool(key: str, value: str) -> bool:
    """Parse a boolean property value."""
    text = value.strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"Invalid boolean value [{value}] for setting '{key}'")


def parse_list(value: str) -> list[str]:
    """Parse a comma separated property value, dropping blank entries."""
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_duration(key: str, value: str) -> float:
    """Parse a duration such as "1m", "30s" or "500ms" into seconds.

    A bare number is taken as seconds.
    """
    match = _DURATION.match(value)
    if match is None:
        raise ConfigurationError(f"Invalid duration [{value}] for setting '{key}'")
    amount, unit = match.groups()
    return float(amount) * _DURATION_UNITS[unit]


def qualify_node(node: str, port: int) -> str:
    """Normalize a declared node into a "host:port" address.

    Strips any http(s) scheme or trailing slash and appends ``port`` when the
    node does not carry its own. IPv6 literals must be bracketed ("[::1]" or
    "[::1]:9200").

    Raises:
        ConfigurationError: If the node is an unbracketed IPv6 literal or
            carries an invalid port
    """
    address = node.strip()
    for scheme in ("http://", "https://"):
        if address.lower().startswith(scheme):
            address = address[len(scheme) :]
            break
    address = address.rstrip("/")

    if address.startswith("["):
        host, bracket, rest = address.partition("]")
        if not bracket or (rest and not rest.startswith(":")):
            raise ConfigurationError(f"Invalid node [{node}] in setting '{ES_NODES}'")
        host = f"{host}]"
        has_port, node_port = bool(rest), rest[1:]
    else:
        if address.count(":") > 1:
            raise ConfigurationError(
                f"Invalid node [{node}] in setting '{ES_NODES}'; "
                "IPv6 addresses must be enclosed in brackets"
            )
        host, separator, node_port = address.partition(":")
        has_port = bool(separator)

    if not has_port:
        return f"{host}:{port}"
    if not node_port.isdigit() or not 0 < int(node_port) < 65536:
        raise ConfigurationError(
            f"Invalid port [{node_port}] for node [{node}] in setting '{ES_NODES}'"
        )
    return f"{host}:{node_port}"


def _index_of(resource: str | None) -> str | None:
    if not resource:
        return None
    return resource.strip().split("/", 1)[0]


@dataclass
class Settings:
    """Pre-flight settings.

    ``nodes_discovery`` and ``nodes_data_only`` are tri-state: ``None`` means
    unset, in which case the effective value is derived from the other node
    options (see :attr:`discovery_enabled` and :attr:`data_only`).
    """

    nodes: list[str] = field(default_factory=lambda: ["localhost"])
    port: int = 9200
    nodes_discovery: bool | None = None
    nodes_wan_only: bool = False
    nodes_client_only: bool = False
    nodes_data_only: bool | None = None
    nodes_ingest_only: bool = False
    input_json: bool = False
    mapping_include: list[str] = field(default_factory=list)
    mapping_exclude: list[str] = field(default_factory=list)
    read_source_filter: list[str] = field(default_factory=list)
    internal_target_fields: list[str] = field(default_factory=list)
    index_read_allow_red_status: bool = False
    index_auto_create: bool = True
    resource: str | None = None
    resource_read: str | None = None
    resource_write: str | None = None
    cluster_name: str | None = None
    operation: str = OPERATION_INDEX
    mapping_id: str | None = None
    internal_version: str | None = None
    net_ssl: bool = False
    http_auth_user: str | None = None
    http_auth_pass: str | None = None
    http_timeout: float = 60.0
    value_writer_class: str | None = None
    value_reader_class: str | None = None
    bytes_converter_class: str | None = None
    field_extractor_class: str | None = None

    @classmethod
    def from_properties(cls, props: Mapping[str, str]) -> "Settings":
        """Create settings from flat ``es.*`` properties.

        Unknown keys are ignored.
        """
        settings = cls()

        def get(key: str) -> str | None:
            value = props.get(key)
            if value is None or not str(value).strip():
                return None
            return str(value)

        if (value := get(ES_NODES)) is not None:
            settings.nodes = parse_list(value)
        if (value := get(ES_PORT)) is not None:
            try:
                settings.port = int(value)
            except ValueError as e:
                raise ConfigurationError(f"Invalid port [{value}] for setting '{ES_PORT}'") from e

        bool_fields = {
            ES_NODES_DISCOVERY: "nodes_discovery",
            ES_NODES_WAN_ONLY: "nodes_wan_only",
            ES_NODES_CLIENT_ONLY: "nodes_client_only",
            ES_NODES_DATA_ONLY: "nodes_data_only",
            ES_NODES_INGEST_ONLY: "nodes_ingest_only",
            ES_INPUT_JSON: "input_json",
            ES_INDEX_READ_ALLOW_RED_STATUS: "index_read_allow_red_status",
            ES_INDEX_AUTO_CREATE: "index_auto_create",
            ES_NET_SSL: "net_ssl",
        }
        for key, name in bool_fields.items():
            if (value := get(key)) is not None:
                setattr(settings, name, parse_bool(key, value))

        list_fields = {
            ES_MAPPING_INCLUDE: "mapping_include",
            ES_MAPPING_EXCLUDE: "mapping_exclude",
            ES_READ_SOURCE_FILTER: "read_source_filter",
            ES_INTERNAL_TARGET_FIELDS: "internal_target_fields",
        }
        for key, name in list_fields.items():
            if (value := get(key)) is not None:
                setattr(settings, name, parse_list(value))

        str_fields = {
            ES_RESOURCE: "resource",
            ES_RESOURCE_READ: "resource_read",
            ES_RESOURCE_WRITE: "resource_write",
            ES_CLUSTER_NAME: "cluster_name",
            ES_WRITE_OPERATION: "operation",
            ES_MAPPING_ID: "mapping_id",
            ES_INTERNAL_VERSION: "internal_version",
            ES_HTTP_AUTH_USER: "http_auth_user",
            ES_HTTP_AUTH_PASS: "http_auth_pass",
            ES_SER_WRITER_VALUE_CLASS: "value_writer_class",
            ES_SER_READER_VALUE_CLASS: "value_reader_class",
            ES_SER_WRITER_BYTES_CLASS: "bytes_converter_class",
            ES_MAPPING_DEFAULT_EXTRACTOR_CLASS: "field_extractor_class",
        }
        for key, name in str_fields.items():
            if (value := get(key)) is not None:
                setattr(settings, name, value.strip())

        if (value := get(ES_HTTP_TIMEOUT)) is not None:
            settings.http_timeout = parse_duration(ES_HTTP_TIMEOUT, value)

        return settings

    @property
    def discovery_enabled(self) -> bool:
        """Whether node discovery runs; defaults to off in WAN mode."""
        if self.nodes_discovery is not None:
            return self.nodes_discovery
        return not self.nodes_wan_only

    @property
    def data_only(self) -> bool:
        """Whether routing is restricted to data nodes.

        Defaults to on unless WAN mode or another role restriction is active.
        """
        if self.nodes_data_only is not None:
            return self.nodes_data_only
        return not (self.nodes_wan_only or self.nodes_client_only or self.nodes_ingest_only)

    @property
    def role_restriction(self) -> NodeRole | None:
        """The active role restriction, if any.

        Assumes :func:`espreflight.validation.validate_settings` has passed,
        so at most one restriction is set.
        """
        if self.nodes_client_only:
            return NodeRole.CLIENT
        if self.data_only:
            return NodeRole.DATA
        if self.nodes_ingest_only:
            return NodeRole.INGEST
        return None

    @property
    def declared_nodes(self) -> list[str]:
        """Declared nodes qualified with the default port, duplicates removed."""
        return list(dict.fromkeys(qualify_node(node, self.port) for node in self.nodes))

    @property
    def read_resource(self) -> str | None:
        return self.resource_read or self.resource

    @property
    def write_resource(self) -> str | None:
        return self.resource_write or self.resource

    @property
    def read_index(self) -> str | None:
        return _index_of(self.read_resource)

    @property
    def write_index(self) -> str | None:
        return _index_of(self.write_resource)


def determine_source_fields(settings: Settings) -> list[str]:
    """Compute the source fields to project when reading.

    User supplied and integration supplied source filters are mutually
    exclusive.
    """
    if settings.internal_target_fields and settings.read_source_filter:
        raise ConfigurationError(
            "Both internal and user provided source filters have been set. The internal "
            "source filters are usually set by integrations and must not be combined with "
            f"'{ES_READ_SOURCE_FILTER}'. Please remove the user defined value "
            f"'{ES_READ_SOURCE_FILTER}' ({','.join(settings.read_source_filter)})"
        )
    if settings.internal_target_fields:
        return list(settings.internal_target_fields)
    return list(settings.read_source_filter)
