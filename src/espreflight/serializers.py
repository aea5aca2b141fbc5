"""Default serializer and extractor choices for a job.

Each setter fills one ``*_class`` setting with the integration's default
when the user has not chosen one, and reports whether it did. Components are
given as classes or as dotted import paths ("package.module.ClassName") and
are stored as dotted paths.
"""

import logging
from typing import Any

from espreflight.settings import Settings

logger = logging.getLogger(__name__)

Component = type | str


def qualified_name(component: Component) -> str:
    """Get the dotted import path of a component."""
    if isinstance(component, str):
        return component
    return f"{component.__module__}.{component.__qualname__}"


class NoOpValueWriter:
    """Value writer for input that is already serialized.

    Raw JSON documents are passed through as they are.
    """

    def write(self, value: Any) -> Any:
        return value


NO_OP_VALUE_WRITER = qualified_name(NoOpValueWriter)


def set_value_writer_if_not_set(settings: Settings, writer: Component) -> bool:
    """Default the value writer.

    JSON input bypasses serialization, so :class:`NoOpValueWriter` is used in
    place of ``writer`` when ``input_json`` is on.

    Args:
        settings: Settings to update
        writer: Default value writer

    Returns:
        True if the setting was filled in, False if the user already chose one
    """
    if settings.value_writer_class:
        return False

    name = qualified_name(writer)
    if settings.input_json:
        logger.debug(
            "Input marked as JSON; bypassing serialization through [%s] instead of [%s]",
            NO_OP_VALUE_WRITER,
            name,
        )
        name = NO_OP_VALUE_WRITER
    settings.value_writer_class = name
    logger.debug("Using pre-defined writer serializer [%s] as default", name)
    return True


def set_value_reader_if_not_set(settings: Settings, reader: Component) -> bool:
    """Default the value reader; returns whether the setting was filled in."""
    if settings.value_reader_class:
        return False

    settings.value_reader_class = qualified_name(reader)
    logger.debug(
        "Using pre-defined reader serializer [%s] as default", settings.value_reader_class
    )
    return True


def set_bytes_converter_if_needed(settings: Settings, converter: Component) -> bool:
    """Default the bytes converter, which only JSON input needs.

    Returns:
        True if the setting was filled in
    """
    if not settings.input_json or settings.bytes_converter_class:
        return False

    settings.bytes_converter_class = qualified_name(converter)
    logger.debug(
        "JSON input specified; using pre-defined bytes/json converter [%s] as default",
        settings.bytes_converter_class,
    )
    return True


def set_field_extractor_if_not_set(settings: Settings, extractor: Component) -> bool:
    if settings.field_extractor_class:
        return False

    settings.field_extractor_class = qualified_name(extractor)
    logger.debug(
        "Using pre-defined field extractor [%s] as default", settings.field_extractor_class
    )
    return True
