"""Node discovery and role filtering of the working set."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from espreflight.exceptions import NodeFilterError, transport_errors_as_config

if TYPE_CHECKING:
    from espreflight.probe import ClusterProbe
    from espreflight.settings import Settings

logger = logging.getLogger(__name__)


class NodeRole(Enum):
    """Role a node can be asked to satisfy."""

    ANY = "any"
    DATA = "data"
    CLIENT = "client"
    INGEST = "ingest"


@dataclass(frozen=True)
class _RoleMessages:
    no_nodes: str
    mode: str


# Wording for each role; filter_by_role is otherwise role-agnostic.
_ROLE_MESSAGES: dict[NodeRole, _RoleMessages] = {
    NodeRole.CLIENT: _RoleMessages(
        no_nodes="Client-only routing specified but no client nodes with HTTP-enabled available",
        mode="client-only",
    ),
    NodeRole.DATA: _RoleMessages(
        no_nodes="No data nodes with HTTP-enabled available",
        mode="data-only",
    ),
    NodeRole.INGEST: _RoleMessages(
        no_nodes="Ingest-only routing specified but no ingest nodes with HTTP-enabled available",
        mode="ingest-only",
    ),
}


@dataclass
class TopologyState:
    """Nodes the client may connect to, plus the options that shape them.

    ``working_set`` keeps insertion order and never holds the same address
    twice. It is only ever replaced wholesale.
    """

    working_set: list[str] = field(default_factory=list)
    discovery_enabled: bool = False
    role_restriction: NodeRole | None = None

    def __post_init__(self) -> None:
        self.working_set = list(dict.fromkeys(self.working_set))

    @classmethod
    def from_settings(cls, settings: "Settings") -> "TopologyState":
        """Create the initial state from declared settings."""
        return cls(
            working_set=settings.declared_nodes,
            discovery_enabled=settings.discovery_enabled,
            role_restriction=settings.role_restriction,
        )


async def discover_if_enabled(state: TopologyState, probe: "ClusterProbe") -> list[str] | None:
    """Add every HTTP-reachable cluster node to the working set.

    Declared nodes keep their position; newly discovered ones are appended.

    Returns:
        The discovered addresses, or None when discovery is disabled
    """
    if not state.discovery_enabled:
        return None

    with transport_errors_as_config("discover cluster nodes"):
        discovered = await probe.all_nodes()

    logger.debug("Nodes discovery enabled - found %s", discovered)
    state.working_set = list(dict.fromkeys([*state.working_set, *discovered]))
    return discovered


async def filter_by_role(state: TopologyState, probe: "ClusterProbe", role: NodeRole) -> None:
    """Narrow the working set to nodes advertising ``role``.

    The relative order of the working set is preserved. On failure the state
    is left untouched.

    Raises:
        NodeFilterError: If the cluster has no node of that role, or none of
            them is in the working set
        ConfigurationError: If the cluster cannot be queried
    """
    messages = _ROLE_MESSAGES.get(role)
    if messages is None:
        raise ValueError(f"Cannot filter nodes by role {role.name}")

    with transport_errors_as_config(f"list {role.value} nodes"):
        role_nodes = await probe.nodes_by_role(role)

    if not role_nodes:
        raise NodeFilterError(
            messages.no_nodes,
            role=role,
            role_nodes=[],
            working_set=list(state.working_set),
            discovery_enabled=state.discovery_enabled,
        )
    logger.debug("Found %s nodes %s", role.value, role_nodes)

    wanted = set(role_nodes)
    retained = [address for address in state.working_set if address in wanted]
    logger.debug(
        "Filtered discovered only nodes %s to %s %s", state.working_set, messages.mode, retained
    )

    if not retained:
        if state.discovery_enabled:
            detail = (
                f"looks like the {role.value} nodes discovered have been removed; "
                f"is the cluster in a stable state? {role_nodes}"
            )
        else:
            detail = (
                "node discovery is disabled and none of nodes specified fit the criterion "
                f"{state.working_set}"
            )
        raise NodeFilterError(
            f"{messages.no_nodes}; {detail}",
            role=role,
            role_nodes=list(role_nodes),
            working_set=list(state.working_set),
            discovery_enabled=state.discovery_enabled,
        )

    state.working_set = retained


async def filter_nodes_if_needed(state: TopologyState, probe: "ClusterProbe") -> None:
    """Apply the active role restriction, if there is one."""
    if state.role_restriction is None:
        return
    await filter_by_role(state, probe, state.role_restriction)
