"""
Unit tests for configuration loading and structural equality.
"""

import tomllib

import pytest

from fleetprobe.config import API_KEY_ENV_VAR, build_app_config, load_config
from fleetprobe.validation import ValidationError


@pytest.mark.unit
class TestBuildAppConfig:
    """Test cases for assembling the AppConfig."""

    def test_build_app_config_success(self, sample_config_data):
        config = build_app_config(sample_config_data, environ={})

        assert config.api_key == "test-api-key"
        assert config.probe_only is False
        assert config.backend.base_url == "https://api.example.com"
        assert len(config.probes) == 2

    def test_api_key_from_environment(self, sample_config_data):
        del sample_config_data["api_key"]

        config = build_app_config(sample_config_data, environ={API_KEY_ENV_VAR: "from-env"})

        assert config.api_key == "from-env"

    def test_file_api_key_wins_over_environment(self, sample_config_data):
        config = build_app_config(sample_config_data, environ={API_KEY_ENV_VAR: "from-env"})

        assert config.api_key == "test-api-key"

    def test_missing_api_key(self, sample_config_data):
        del sample_config_data["api_key"]

        with pytest.raises(ValidationError) as exc_info:
            build_app_config(sample_config_data, environ={})

        assert exc_info.value.field_name == "api_key"

    def test_unknown_top_level_key(self, sample_config_data):
        sample_config_data["probes_only"] = True

        with pytest.raises(ValidationError):
            build_app_config(sample_config_data, environ={})

    def test_api_key_is_not_in_repr(self, sample_config_data):
        config = build_app_config(sample_config_data, environ={})

        assert "test-api-key" not in repr(config)


@pytest.mark.unit
class TestLoadConfig:
    """Test cases for loading from a TOML file."""

    def test_load_config_from_file(self, write_config, sample_config_data):
        config_path = write_config(sample_config_data)

        config = load_config(config_path)

        assert config.agent.max_concurrency == 10
        assert config.probes[0].http.url == "http://{{ host.ip_addresses.eth0 }}/health"
        assert config.probes[1].tcp.host == "{{ host.name }}"

    def test_load_config_missing_file(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            load_config(temp_dir / "missing.toml")

    def test_load_config_malformed_file(self, temp_dir):
        config_path = temp_dir / "broken.toml"
        config_path.write_text("api_key = \n[agent\n")

        with pytest.raises(tomllib.TOMLDecodeError):
            load_config(config_path)


@pytest.mark.unit
class TestConfigEquivalence:
    """Test cases for the reload equality check."""

    def test_same_file_loads_equivalent(self, write_config, sample_config_data):
        config_path = write_config(sample_config_data)

        assert load_config(config_path).is_equivalent(load_config(config_path))

    def test_changed_probe_is_not_equivalent(self, sample_config_data):
        original = build_app_config(sample_config_data, environ={})
        sample_config_data["probes"][0]["ping"]["count"] = 5
        changed = build_app_config(sample_config_data, environ={})

        assert not original.is_equivalent(changed)
        assert original.restart_required_sections(changed) == []

    def test_changed_api_key_is_not_equivalent(self, sample_config_data):
        original = build_app_config(sample_config_data, environ={})
        sample_config_data["api_key"] = "rotated"
        changed = build_app_config(sample_config_data, environ={})

        assert not original.is_equivalent(changed)
        assert original.restart_required_sections(changed) == []

    def test_restart_required_sections(self, sample_config_data):
        original = build_app_config(sample_config_data, environ={})
        sample_config_data["agent"]["batch_size"] = 50
        sample_config_data["probe_only"] = True
        changed = build_app_config(sample_config_data, environ={})

        assert original.restart_required_sections(changed) == ["probe_only", "agent"]

    def test_not_equivalent_to_other_types(self, sample_config_data):
        config = build_app_config(sample_config_data, environ={})

        assert not config.is_equivalent(None)
