"""
Unit tests for the host and metric sample models.
"""

import pytest

from fleetprobe.models import Host, MetricSample


@pytest.mark.unit
class TestMetricSample:
    """Test cases for MetricSample."""

    def test_to_wire(self):
        sample = MetricSample(host_id="abc", name="http.check.ok", value=1.0,
                              timestamp=1700000000.9)

        assert sample.to_wire() == {
            "hostId": "abc",
            "name": "http.check.ok",
            "time": 1700000000,
            "value": 1.0,
        }

    def test_timestamp_defaults_to_now(self):
        sample = MetricSample(host_id="abc", name="x", value=0.0)

        assert sample.timestamp > 1600000000

    @pytest.mark.parametrize("value, timestamp", [
        (float("nan"), 1700000000),
        (float("inf"), 1700000000),
        (1.0, float("-inf")),
    ])
    def test_non_finite_is_rejected(self, value, timestamp):
        with pytest.raises(ValueError, match="non-finite"):
            MetricSample(host_id="abc", name="x", value=value, timestamp=timestamp)


@pytest.mark.unit
class TestHost:
    """Test cases for Host."""

    def test_from_api(self):
        host = Host.from_api({
            "id": "3Ja8hWZ4Q9u",
            "name": "web1.example.com",
            "displayName": "web1",
            "status": "working",
            "roles": {"production": ["web", "app"]},
            "interfaces": [
                {"name": "eth0", "ipAddress": "10.0.0.1"},
                {"name": "eth1", "ipv6Addresses": ["fe80::1"]},
                {"name": "lo"},
            ],
            "meta": {"agent-version": "0.70.0"},
        })

        assert host.id == "3Ja8hWZ4Q9u"
        assert host.display_name == "web1"
        assert host.custom_identifier == ""
        assert host.roles == {"production": ["web", "app"]}
        assert host.ip_addresses == {"eth0": "10.0.0.1", "eth1": "fe80::1"}
        assert host.meta["agent-version"] == "0.70.0"

    def test_from_api_minimal(self):
        host = Host.from_api({"id": "x", "name": "db1"})

        assert host.ip_addresses == {}
        assert host.roles == {}

    def test_str(self):
        assert str(Host(id="x", name="db1")) == "id:x name:db1"
