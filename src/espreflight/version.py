"""Remote cluster version detection."""

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from espreflight.exceptions import ConfigurationError, TransportError
from espreflight.settings import ES_NODES_WAN_ONLY, Settings

if TYPE_CHECKING:
    from espreflight.probe import ClusterProbe

logger = logging.getLogger(__name__)

_MAJOR = re.compile(r"^\s*v?(\d+)(?:\.|$)", re.IGNORECASE)


@dataclass(frozen=True, order=True)
class ClusterVersion:
    """Major version of the remote cluster."""

    major: int

    @classmethod
    def parse(cls, text: str) -> "ClusterVersion":
        """Parse "7.17.3", "7.x" or "7" into a major version."""
        match = _MAJOR.match(text)
        if match is None:
            raise ValueError(f"Unsupported/Unknown cluster version [{text}]")
        return cls(int(match.group(1)))

    def __str__(self) -> str:
        return f"{self.major}.x"


async def resolve_version(settings: Settings, probe: "ClusterProbe") -> ClusterVersion:
    """Resolve the remote cluster version.

    A version already present in ``settings`` is returned without touching the
    cluster. Otherwise the discovered version is recorded in ``settings``.

    Raises:
        ConfigurationError: If the recorded version is invalid or the cluster
            cannot be reached
    """
    if settings.internal_version:
        logger.debug(
            "Cluster version [%s] already present in configuration; skipping discovery",
            settings.internal_version,
        )
        try:
            return ClusterVersion.parse(settings.internal_version)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

    try:
        version = await probe.remote_version()
    except TransportError as e:
        raise ConfigurationError(
            "Cannot detect cluster version - typically this happens if the network/cluster "
            "is not accessible or when targeting a WAN/Cloud instance without the proper "
            f"setting '{ES_NODES_WAN_ONLY}'"
        ) from e

    logger.debug("Discovered cluster version [%s]", version)
    settings.internal_version = str(version)
    return version
