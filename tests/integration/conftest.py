"""Integration test fixtures for es-preflight.

These tests require a running cluster, e.g.:
    docker run -p 9200:9200 -e discovery.type=single-node \
        -e xpack.security.enabled=false elasticsearch:8.13.4
    ES_TEST_CLUSTER=localhost:9200 pytest -m integration
"""

import os

import pytest

ES_TEST_CLUSTER = os.environ.get("ES_TEST_CLUSTER")


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "integration: marks tests as requiring a running cluster")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if ES_TEST_CLUSTER:
        return
    skip = pytest.mark.skip(reason="ES_TEST_CLUSTER not set")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def cluster_address() -> str:
    """Get the test cluster address."""
    assert ES_TEST_CLUSTER is not None
    return ES_TEST_CLUSTER
