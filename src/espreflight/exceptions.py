"""Exceptions for cluster pre-flight checks."""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from espreflight.topology import NodeRole


class PreflightError(Exception):
    """Base exception for pre-flight errors."""

    pass


class ConfigurationError(PreflightError):
    """Configuration is inconsistent or cannot be satisfied by the cluster."""

    pass


class TransportError(PreflightError):
    """Error talking to the cluster (unreachable, bad response, etc)."""

    pass


class NodeFilterError(ConfigurationError):
    """No node in the working set satisfies the requested role."""

    role: "NodeRole"
    role_nodes: list[str]
    working_set: list[str]
    discovery_enabled: bool

    def __init__(
        self,
        message: str,
        *,
        role: "NodeRole",
        role_nodes: list[str],
        working_set: list[str],
        discovery_enabled: bool,
    ) -> None:
        self.role = role
        self.role_nodes = role_nodes
        self.working_set = working_set
        self.discovery_enabled = discovery_enabled
        super().__init__(message)


@contextmanager
def transport_errors_as_config(action: str) -> Iterator[None]:
    """Re-raise cluster transport failures as configuration errors.

    Args:
        action: What was being attempted, e.g. "discover cluster nodes"
    """
    try:
        yield
    except TransportError as e:
        raise ConfigurationError(f"Cannot {action}; the cluster is not accessible: {e}") from e
