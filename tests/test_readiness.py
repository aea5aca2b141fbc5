"""Tests for index readiness checks."""

import pytest
from fakes import FakeProbe

from espreflight.exceptions import ConfigurationError, TransportError
from espreflight.probe import HealthStatus
from espreflight.readiness import (
    check_index_existence,
    check_readable,
    validate_settings_for_reading,
)
from espreflight.settings import Settings


class TestCheckReadable:
    async def test_red_index_blocks_read(self, probe: FakeProbe) -> None:
        probe.indices["logs-2024"] = HealthStatus.RED

        with pytest.raises(ConfigurationError, match=r"\[logs-2024\] is either red"):
            await check_readable(Settings(resource_read="logs-2024"), probe)

    async def test_red_index_allowed(self, probe: FakeProbe) -> None:
        probe.indices["logs-2024"] = HealthStatus.RED
        settings = Settings(resource_read="logs-2024", index_read_allow_red_status=True)

        await check_readable(settings, probe)

        assert probe.calls == []

    @pytest.mark.parametrize("status", [HealthStatus.GREEN, HealthStatus.YELLOW])
    async def test_healthy_index(self, probe: FakeProbe, status: HealthStatus) -> None:
        probe.indices["logs-2024"] = status

        await check_readable(Settings(resource_read="logs-2024/doc"), probe)

        assert probe.calls == ["index_exists:logs-2024", "index_health:logs-2024"]

    async def test_missing_index(self, probe: FakeProbe) -> None:
        await check_readable(Settings(resource_read="logs-2024"), probe)

        assert probe.calls == ["index_exists:logs-2024"]

    async def test_no_read_resource(self, probe: FakeProbe) -> None:
        with pytest.raises(ConfigurationError, match="No read resource"):
            await check_readable(Settings(), probe)

    async def test_unreachable_cluster(self, probe: FakeProbe) -> None:
        probe.error = TransportError("connection refused")

        with pytest.raises(ConfigurationError, match="health of index") as exc_info:
            await check_readable(Settings(resource_read="logs-2024"), probe)

        assert exc_info.value.__cause__ is probe.error


class TestCheckIndexExistence:
    async def test_auto_create_skips_check(self, probe: FakeProbe) -> None:
        await check_index_existence(Settings(resource_write="logs"), probe)

        assert probe.calls == []

    async def test_missing_index(self, probe: FakeProbe) -> None:
        settings = Settings(resource_write="logs/doc", index_auto_create=False)

        with pytest.raises(ConfigurationError, match="auto-creation is disabled"):
            await check_index_existence(settings, probe)

    async def test_existing_index(self, probe: FakeProbe) -> None:
        probe.indices["logs"] = HealthStatus.GREEN

        await check_index_existence(Settings(resource_write="logs", index_auto_create=False), probe)


class TestValidateSettingsForReading:
    async def test_pattern_rejected_before_probe(self, probe: FakeProbe) -> None:
        with pytest.raises(ConfigurationError, match="curly brace"):
            await validate_settings_for_reading(Settings(resource_read="logs-{date}"), probe)

        assert probe.calls == []

    async def test_runs_health_check(self, probe: FakeProbe) -> None:
        probe.indices["logs"] = HealthStatus.RED

        with pytest.raises(ConfigurationError, match="is either red"):
            await validate_settings_for_reading(Settings(resource="logs"), probe)
