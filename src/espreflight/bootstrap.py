"""Pre-flight negotiation of nodes and version against a cluster."""

import logging
from collections.abc import Callable, Mapping

from espreflight.probe import ClusterProbe, HttpClusterProbe
from espreflight.readiness import check_index_existence, validate_settings_for_reading
from espreflight.settings import Settings
from espreflight.topology import TopologyState, discover_if_enabled, filter_nodes_if_needed
from espreflight.validation import check_cluster_name, check_id_for_operation, validate_settings
from espreflight.version import ClusterVersion, resolve_version

logger = logging.getLogger(__name__)

ProbeFactory = Callable[[Settings, list[str]], ClusterProbe]


class ClusterBootstrap:
    """Validates settings and negotiates the usable nodes of a cluster."""

    def __init__(
        self,
        settings: Settings,
        *,
        probe_factory: ProbeFactory = HttpClusterProbe.from_settings,
    ) -> None:
        """Initialize bootstrap (does not contact the cluster yet).

        Args:
            settings: Settings to validate; the discovered version is recorded here
            probe_factory: Creates a probe session for the given settings and nodes
        """
        self._settings = settings
        self._probe_factory = probe_factory
        self._topology = TopologyState.from_settings(settings)
        self._version: ClusterVersion | None = None

    @classmethod
    def from_properties(
        cls,
        props: Mapping[str, str],
        *,
        probe_factory: ProbeFactory = HttpClusterProbe.from_settings,
    ) -> "ClusterBootstrap":
        """Create bootstrap from ``es.*`` properties."""
        return cls(Settings.from_properties(props), probe_factory=probe_factory)

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def topology(self) -> TopologyState:
        return self._topology

    @property
    def nodes(self) -> list[str]:
        """Get the current working set."""
        return list(self._topology.working_set)

    @property
    def version(self) -> ClusterVersion | None:
        return self._version

    def _open_probe(self) -> ClusterProbe:
        return self._probe_factory(self._settings, self.nodes)

    def validate(self) -> None:
        """Check settings for conflicting options (no I/O)."""
        validate_settings(self._settings)

    async def verify_cluster_name(self) -> None:
        """Check the configured cluster name against the cluster."""
        async with self._open_probe() as probe:
            await check_cluster_name(self._settings, probe)

    async def discover_nodes(self) -> list[str] | None:
        """Add discovered nodes to the working set, if discovery is enabled."""
        if not self._topology.discovery_enabled:
            return None
        async with self._open_probe() as probe:
            return await discover_if_enabled(self._topology, probe)

    async def filter_nodes(self) -> None:
        """Narrow the working set to the restricted role, if any."""
        if self._topology.role_restriction is None:
            return
        async with self._open_probe() as probe:
            await filter_nodes_if_needed(self._topology, probe)

    async def discover_version(self) -> ClusterVersion:
        """Resolve the cluster version, once."""
        async with self._open_probe() as probe:
            self._version = await resolve_version(self._settings, probe)
        return self._version

    async def initialize(self) -> list[str]:
        """Run the full pre-flight sequence.

        Returns the negotiated working set.
        """
        self.validate()
        if self._settings.cluster_name:
            await self.verify_cluster_name()
        await self.discover_nodes()
        await self.filter_nodes()
        version = await self.discover_version()
        logger.debug("Pre-flight complete; nodes %s, cluster version [%s]", self.nodes, version)
        return self.nodes

    async def prepare_read(self) -> None:
        """Checks to run before reading."""
        async with self._open_probe() as probe:
            await validate_settings_for_reading(self._settings, probe)

    async def prepare_write(self) -> None:
        """Checks to run before writing."""
        check_id_for_operation(self._settings)
        async with self._open_probe() as probe:
            await check_index_existence(self._settings, probe)
