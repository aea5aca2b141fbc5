"""Pytest configuration for es-preflight tests."""

from collections.abc import Callable

import pytest
from fakes import FakeProbe

from espreflight.settings import Settings


@pytest.fixture
def probe() -> FakeProbe:
    """Create an empty fake probe."""
    return FakeProbe()


@pytest.fixture
def probe_factory(probe: FakeProbe) -> Callable[[Settings, list[str]], FakeProbe]:
    """Create a probe factory handing out the shared fake probe.

    Each session records the nodes it was opened against.
    """

    def factory(settings: Settings, nodes: list[str]) -> FakeProbe:
        probe.sessions.append(list(nodes))
        return probe

    return factory
