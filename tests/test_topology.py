"""Tests for node discovery and role filtering."""

import pytest
from fakes import FakeProbe

from espreflight.exceptions import ConfigurationError, NodeFilterError, TransportError
from espreflight.settings import Settings
from espreflight.topology import (
    NodeRole,
    TopologyState,
    discover_if_enabled,
    filter_by_role,
    filter_nodes_if_needed,
)

DECLARED = ["a:9200", "b:9200", "c:9200"]


class TestTopologyState:
    def test_removes_duplicates_keeping_order(self) -> None:
        state = TopologyState(working_set=["b:9200", "a:9200", "b:9200"])
        assert state.working_set == ["b:9200", "a:9200"]

    def test_from_settings(self) -> None:
        settings = Settings(nodes=["a", "b:9201", "a:9200"])
        state = TopologyState.from_settings(settings)

        assert state.working_set == ["a:9200", "b:9201"]
        assert state.discovery_enabled
        assert state.role_restriction is NodeRole.DATA

    def test_from_settings_wan(self) -> None:
        state = TopologyState.from_settings(Settings(nodes=["es.cloud:443"], nodes_wan_only=True))

        assert state.working_set == ["es.cloud:443"]
        assert not state.discovery_enabled
        assert state.role_restriction is None


class TestDiscoverIfEnabled:
    async def test_disabled(self, probe: FakeProbe) -> None:
        state = TopologyState(working_set=["a:9200"], discovery_enabled=False)

        assert await discover_if_enabled(state, probe) is None
        assert state.working_set == ["a:9200"]
        assert probe.calls == []

    async def test_appends_discovered_nodes(self, probe: FakeProbe) -> None:
        probe.role_nodes[NodeRole.ANY] = ["b:9200", "d:9200"]
        state = TopologyState(working_set=["a:9200", "b:9200"], discovery_enabled=True)

        discovered = await discover_if_enabled(state, probe)

        assert discovered == ["b:9200", "d:9200"]
        assert state.working_set == ["a:9200", "b:9200", "d:9200"]

    async def test_unreachable_cluster(self, probe: FakeProbe) -> None:
        probe.error = TransportError("connection refused")
        state = TopologyState(working_set=["a:9200"], discovery_enabled=True)

        with pytest.raises(ConfigurationError, match="discover cluster nodes") as exc_info:
            await discover_if_enabled(state, probe)

        assert exc_info.value.__cause__ is probe.error
        assert state.working_set == ["a:9200"]


class TestFilterByRole:
    async def test_data_only_keeps_data_nodes(self, probe: FakeProbe) -> None:
        probe.role_nodes[NodeRole.DATA] = ["b:9200", "c:9200"]
        state = TopologyState(working_set=list(DECLARED), role_restriction=NodeRole.DATA)

        await filter_by_role(state, probe, NodeRole.DATA)

        assert state.working_set == ["b:9200", "c:9200"]

    async def test_disjoint_client_nodes_without_discovery(self, probe: FakeProbe) -> None:
        probe.role_nodes[NodeRole.CLIENT] = ["d:9200"]
        state = TopologyState(working_set=list(DECLARED), role_restriction=NodeRole.CLIENT)

        with pytest.raises(NodeFilterError, match="node discovery is disabled") as exc_info:
            await filter_by_role(state, probe, NodeRole.CLIENT)

        error = exc_info.value
        assert "Client-only routing specified" in str(error)
        assert str(DECLARED) in str(error)
        assert error.role is NodeRole.CLIENT
        assert error.role_nodes == ["d:9200"]
        assert not error.discovery_enabled
        assert state.working_set == DECLARED

    async def test_disjoint_nodes_with_discovery(self, probe: FakeProbe) -> None:
        probe.role_nodes[NodeRole.INGEST] = ["d:9200", "e:9200"]
        state = TopologyState(
            working_set=list(DECLARED),
            discovery_enabled=True,
            role_restriction=NodeRole.INGEST,
        )

        with pytest.raises(NodeFilterError, match="is the cluster in a stable state") as exc_info:
            await filter_by_role(state, probe, NodeRole.INGEST)

        message = str(exc_info.value)
        assert message.startswith("Ingest-only routing specified")
        assert "ingest nodes discovered have been removed" in message
        assert "['d:9200', 'e:9200']" in message
        assert exc_info.value.discovery_enabled
        assert state.working_set == DECLARED

    @pytest.mark.parametrize("discovery", [True, False])
    async def test_no_nodes_of_role(self, probe: FakeProbe, discovery: bool) -> None:
        state = TopologyState(working_set=list(DECLARED), discovery_enabled=discovery)

        with pytest.raises(NodeFilterError, match="^No data nodes with HTTP-enabled available$"):
            await filter_by_role(state, probe, NodeRole.DATA)

        assert state.working_set == DECLARED

    @pytest.mark.parametrize("role", [NodeRole.CLIENT, NodeRole.DATA, NodeRole.INGEST])
    async def test_disjoint_role_nodes_leave_state_unchanged(
        self, probe: FakeProbe, role: NodeRole
    ) -> None:
        probe.role_nodes[role] = ["x:9200", "y:9200"]
        state = TopologyState(working_set=list(DECLARED))

        with pytest.raises(NodeFilterError):
            await filter_by_role(state, probe, role)

        assert state.working_set == DECLARED

    @pytest.mark.parametrize("role", [NodeRole.CLIENT, NodeRole.DATA, NodeRole.INGEST])
    async def test_superset_keeps_working_set(self, probe: FakeProbe, role: NodeRole) -> None:
        probe.role_nodes[role] = ["z:9200", "c:9200", "b:9200", "a:9200"]
        state = TopologyState(working_set=list(DECLARED))

        await filter_by_role(state, probe, role)

        assert state.working_set == DECLARED

    async def test_keeps_working_set_order(self, probe: FakeProbe) -> None:
        probe.role_nodes[NodeRole.DATA] = ["c:9200", "a:9200"]
        state = TopologyState(working_set=list(DECLARED))

        await filter_by_role(state, probe, NodeRole.DATA)

        assert state.working_set == ["a:9200", "c:9200"]

    async def test_idempotent(self, probe: FakeProbe) -> None:
        probe.role_nodes[NodeRole.DATA] = ["c:9200", "b:9200"]
        state = TopologyState(working_set=list(DECLARED))

        await filter_by_role(state, probe, NodeRole.DATA)
        once = list(state.working_set)
        await filter_by_role(state, probe, NodeRole.DATA)

        assert state.working_set == once == ["b:9200", "c:9200"]

    async def test_any_role_rejected(self, probe: FakeProbe) -> None:
        state = TopologyState(working_set=list(DECLARED))

        with pytest.raises(ValueError, match="ANY"):
            await filter_by_role(state, probe, NodeRole.ANY)

        assert probe.calls == []

    async def test_unreachable_cluster(self, probe: FakeProbe) -> None:
        probe.error = TransportError("connection refused")
        state = TopologyState(working_set=list(DECLARED))

        with pytest.raises(ConfigurationError, match="list client nodes") as exc_info:
            await filter_by_role(state, probe, NodeRole.CLIENT)

        assert not isinstance(exc_info.value, NodeFilterError)
        assert isinstance(exc_info.value.__cause__, TransportError)
        assert state.working_set == DECLARED


class TestFilterNodesIfNeeded:
    async def test_no_restriction(self, probe: FakeProbe) -> None:
        state = TopologyState(working_set=list(DECLARED))

        await filter_nodes_if_needed(state, probe)

        assert probe.calls == []
        assert state.working_set == DECLARED

    async def test_uses_active_restriction(self, probe: FakeProbe) -> None:
        probe.role_nodes[NodeRole.CLIENT] = ["a:9200"]
        state = TopologyState(working_set=list(DECLARED), role_restriction=NodeRole.CLIENT)

        await filter_nodes_if_needed(state, probe)

        assert probe.calls == ["nodes_by_role:client"]
        assert state.working_set == ["a:9200"]
