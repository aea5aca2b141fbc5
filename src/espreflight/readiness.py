"""Index checks run before reading or writing."""

import logging

from espreflight.exceptions import ConfigurationError, transport_errors_as_config
from espreflight.probe import ClusterProbe, HealthStatus
from espreflight.settings import ES_INDEX_AUTO_CREATE, Settings
from espreflight.validation import check_index_name_for_read

logger = logging.getLogger(__name__)


async def check_readable(settings: Settings, probe: ClusterProbe) -> None:
    """Refuse to read from a red index.

    Missing indices pass; they are dealt with by the reader itself.

    Raises:
        ConfigurationError: If the read index is red and red reads are not allowed
    """
    if settings.index_read_allow_red_status:
        return

    index = settings.read_index
    if not index:
        raise ConfigurationError("No read resource specified")

    with transport_errors_as_config(f"check the health of index [{index}]"):
        if not await probe.index_exists(index):
            logger.debug("Index [%s] does not exist; skipping health check", index)
            return
        status = await probe.index_health(index)

    if status is HealthStatus.RED:
        raise ConfigurationError(
            f"Index specified [{index}] is either red or includes an index that is red, "
            "and thus all requested data cannot be safely and fully loaded. Bailing out..."
        )


async def check_index_existence(settings: Settings, probe: ClusterProbe) -> None:
    """Require the write index to exist when auto-creation is disabled."""
    if settings.index_auto_create:
        return

    index = settings.write_index
    if not index:
        raise ConfigurationError("No write resource specified")

    with transport_errors_as_config(f"check the existence of index [{index}]"):
        exists = await probe.index_exists(index)

    if not exists:
        raise ConfigurationError(
            f"Target index [{settings.write_resource}] does not exist and auto-creation is "
            f"disabled [setting '{ES_INDEX_AUTO_CREATE}' is "
            f"'{str(settings.index_auto_create).lower()}']"
        )


async def validate_settings_for_reading(settings: Settings, probe: ClusterProbe) -> None:
    """Checks to run before reading."""
    check_index_name_for_read(settings)
    await check_readable(settings, probe)
