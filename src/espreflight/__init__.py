"""Pre-flight validation and node negotiation for cluster clients."""

from espreflight.bootstrap import ClusterBootstrap, ProbeFactory
from espreflight.exceptions import (
    ConfigurationError,
    NodeFilterError,
    PreflightError,
    TransportError,
)
from espreflight.probe import ClusterProbe, HealthStatus, HttpClusterProbe, NodeInfo
from espreflight.readiness import check_readable
from espreflight.serializers import (
    NoOpValueWriter,
    set_bytes_converter_if_needed,
    set_field_extractor_if_not_set,
    set_value_reader_if_not_set,
    set_value_writer_if_not_set,
)
from espreflight.settings import Settings
from espreflight.topology import NodeRole, TopologyState, discover_if_enabled, filter_by_role
from espreflight.validation import validate_settings
from espreflight.version import ClusterVersion, resolve_version

__all__ = [
    "preflight",
    "ClusterBootstrap",
    "ProbeFactory",
    "Settings",
    "ClusterProbe",
    "HttpClusterProbe",
    "NodeInfo",
    "HealthStatus",
    "NodeRole",
    "TopologyState",
    "ClusterVersion",
    "validate_settings",
    "discover_if_enabled",
    "filter_by_role",
    "resolve_version",
    "check_readable",
    "NoOpValueWriter",
    "set_value_writer_if_not_set",
    "set_value_reader_if_not_set",
    "set_bytes_converter_if_needed",
    "set_field_extractor_if_not_set",
    "PreflightError",
    "ConfigurationError",
    "NodeFilterError",
    "TransportError",
]

__version__ = "0.1.0"


async def preflight(
    settings: Settings,
    *,
    probe_factory: ProbeFactory = HttpClusterProbe.from_settings,
) -> ClusterBootstrap:
    """Validate settings and negotiate nodes and version with the cluster.

    Args:
        settings: Settings to validate
        probe_factory: Creates a probe session for the given settings and nodes

    Returns:
        An initialized ClusterBootstrap
    """
    bootstrap = ClusterBootstrap(settings, probe_factory=probe_factory)
    await bootstrap.initialize()
    return bootstrap
