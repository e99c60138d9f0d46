"""
Unit tests for configuration validation functionality.

Tests the validation of the agent, backend and probe definition sections,
including defaults, bounds and error reporting.
"""

import pytest

from fleetprobe.config.validators import (
    validate_agent_config,
    validate_backend_config,
    validate_probe_definition,
    validate_probe_definitions,
)
from fleetprobe.models import AgentConfig
from fleetprobe.validation import ValidationError


@pytest.mark.unit
class TestAgentConfigValidation:
    """Test cases for the [agent] section."""

    def test_validate_agent_config_success(self, sample_config_data):
        config = validate_agent_config(sample_config_data["agent"])

        assert config.max_concurrency == 10
        assert config.batch_size == 100
        assert config.queue_size == 1000
        assert config.probe_interval == 60.0

    def test_validate_agent_config_defaults(self):
        """An empty table yields the built-in tunables."""
        config = validate_agent_config({})

        assert config == AgentConfig()
        assert config.max_concurrency == 100
        assert config.buffer_multiplier == 10
        assert config.flush_interval == 10.0
        assert config.retry_backoff == 10.0

    def test_validate_agent_config_rejects_zero_concurrency(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_agent_config({"max_concurrency": 0})

        assert "agent.max_concurrency" in str(exc_info.value)

    def test_validate_agent_config_rejects_bool(self):
        with pytest.raises(ValidationError):
            validate_agent_config({"batch_size": True})

    def test_validate_agent_config_rejects_unknown_key(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_agent_config({"max_concurency": 5})

        assert "max_concurency" in str(exc_info.value)


@pytest.mark.unit
class TestBackendConfigValidation:
    """Test cases for the [backend] section."""

    def test_validate_backend_config_strips_trailing_slash(self):
        config = validate_backend_config({"base_url": "https://api.example.com/"})

        assert config.base_url == "https://api.example.com"

    def test_validate_backend_config_rejects_non_http_url(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_backend_config({"base_url": "ftp://api.example.com"})

        assert "backend.base_url" in str(exc_info.value)


@pytest.mark.unit
class TestProbeDefinitionValidation:
    """Test cases for [[probes]] entries."""

    def test_validate_probe_definition_success(self, sample_config_data):
        definition = validate_probe_definition(sample_config_data["probes"][0], 0)

        assert definition.service == "production"
        assert definition.roles == ("web",)
        assert definition.ping.address == "{{ host.ip_addresses.eth0 }}"
        assert definition.ping.count == 3
        assert definition.http.method == "GET"
        assert definition.http.expect_pattern == "ok"
        assert definition.tcp is None
        assert definition.command is None

    def test_role_alias_and_integer_port(self, sample_config_data):
        definition = validate_probe_definition(sample_config_data["probes"][1], 1)

        assert definition.roles == ("db",)
        assert definition.tcp.port == "5432"
        assert definition.tcp.timeout == 5.0

    def test_http_method_is_normalized(self):
        definition = validate_probe_definition(
            {"service": "s", "http": {"url": "http://x/", "method": "post"}}, 0
        )

        assert definition.http.method == "POST"

    def test_http_headers_are_sorted_pairs(self):
        definition = validate_probe_definition(
            {"service": "s", "http": {"url": "http://x/", "headers": {"X-B": "2", "X-A": "1"}}}, 0
        )

        assert definition.http.headers == (("X-A", "1"), ("X-B", "2"))

    def test_missing_probe_kind(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_probe_definition({"service": "production", "roles": ["web"]}, 3)

        assert "probes[3]" in str(exc_info.value)

    def test_missing_service(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_probe_definition({"ping": {"address": "127.0.0.1"}}, 0)

        assert "probes[0].service" in str(exc_info.value)

    def test_invalid_expect_pattern(self):
        with pytest.raises(ValidationError):
            validate_probe_definition(
                {"service": "s", "tcp": {"host": "h", "port": 80, "expect_pattern": "("}}, 0
            )

    def test_port_out_of_range(self):
        with pytest.raises(ValidationError):
            validate_probe_definition({"service": "s", "tcp": {"host": "h", "port": 70000}}, 0)

    def test_unknown_probe_key(self):
        with pytest.raises(ValidationError):
            validate_probe_definition({"service": "s", "ping": {"adress": "h"}}, 0)

    def test_validate_probe_definitions_keeps_order(self, sample_config_data):
        definitions = validate_probe_definitions(sample_config_data["probes"])

        assert [d.service for d in definitions] == ["production", "staging"]

    def test_validate_probe_definitions_empty_list(self):
        assert validate_probe_definitions([]) == ()

    def test_validate_probe_definitions_not_a_list(self):
        with pytest.raises(ValidationError):
            validate_probe_definitions({"service": "s"})
