"""Consistency checks over pre-flight settings."""

from typing import TYPE_CHECKING

from espreflight.exceptions import ConfigurationError, transport_errors_as_config
from espreflight.settings import (
    ES_CLUSTER_NAME,
    ES_INPUT_JSON,
    ES_MAPPING_EXCLUDE,
    ES_MAPPING_ID,
    ES_MAPPING_INCLUDE,
    ES_NODES_CLIENT_ONLY,
    ES_NODES_DATA_ONLY,
    ES_NODES_DISCOVERY,
    ES_NODES_INGEST_ONLY,
    ES_NODES_WAN_ONLY,
    OPERATION_UPDATE,
    Settings,
    determine_source_fields,
)

if TYPE_CHECKING:
    from espreflight.probe import ClusterProbe


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ConfigurationError(message)


def validate_settings(settings: Settings) -> None:
    """Check that node, input and field-filter options do not conflict.

    The first violation is raised.

    Raises:
        ConfigurationError: Naming the offending option(s)
    """
    # WAN mode rules out all node negotiation
    if settings.nodes_wan_only:
        _require(
            not settings.discovery_enabled,
            f"Discovery cannot be enabled when running in WAN mode "
            f"['{ES_NODES_DISCOVERY}' with '{ES_NODES_WAN_ONLY}']",
        )
        _require(
            not settings.nodes_client_only,
            f"Client-only nodes cannot be enabled when running in WAN mode "
            f"['{ES_NODES_CLIENT_ONLY}' with '{ES_NODES_WAN_ONLY}']",
        )
        _require(
            not settings.data_only,
            f"Data-only nodes cannot be enabled when running in WAN mode "
            f"['{ES_NODES_DATA_ONLY}' with '{ES_NODES_WAN_ONLY}']",
        )
        _require(
            not settings.nodes_ingest_only,
            f"Ingest-only nodes cannot be enabled when running in WAN mode "
            f"['{ES_NODES_INGEST_ONLY}' with '{ES_NODES_WAN_ONLY}']",
        )

    restrictions = [settings.nodes_client_only, settings.data_only, settings.nodes_ingest_only]
    _require(
        sum(restrictions) <= 1,
        "Use either client-only or data-only or ingest-only nodes but not a combination "
        f"['{ES_NODES_CLIENT_ONLY}', '{ES_NODES_DATA_ONLY}', '{ES_NODES_INGEST_ONLY}']",
    )

    if settings.input_json:
        _require(
            not settings.mapping_include,
            "When writing data as JSON, the field inclusion feature is ignored. "
            "This is most likely not what the user intended. Bailing out... "
            f"['{ES_MAPPING_INCLUDE}' with '{ES_INPUT_JSON}']",
        )
        _require(
            not settings.mapping_exclude,
            "When writing data as JSON, the field exclusion feature is ignored. "
            "This is most likely not what the user intended. Bailing out... "
            f"['{ES_MAPPING_EXCLUDE}' with '{ES_INPUT_JSON}']",
        )

    determine_source_fields(settings)


def check_id_for_operation(settings: Settings) -> None:
    """Updates need a document id."""
    if settings.operation == OPERATION_UPDATE:
        _require(
            bool(settings.mapping_id),
            f"Operation [{settings.operation}] requires an id but none ({ES_MAPPING_ID}) "
            "was specified",
        )


def check_index_name_for_read(settings: Settings) -> None:
    """Read resources cannot use field extraction patterns."""
    index = settings.read_index or ""
    if "{" in index and "}" in index:
        raise ConfigurationError(
            "Cannot read indices that have curly brace field extraction patterns in them: "
            f"{index}"
        )


async def check_cluster_name(settings: Settings, probe: "ClusterProbe") -> None:
    """Check the configured cluster name against the live cluster."""
    _require(bool(settings.cluster_name), f"{ES_CLUSTER_NAME} must not be null.")

    with transport_errors_as_config("verify the cluster name"):
        actual = await probe.cluster_name()

    _require(
        settings.cluster_name == actual,
        f"{ES_CLUSTER_NAME} [{settings.cluster_name}] does not match cluster_name [{actual}].",
    )
