"""
Pytest configuration and shared fixtures for the fleetprobe test suite.

This module provides common fixtures, fakes for the backend and probes, and
configuration helpers for all test modules.
"""

import shutil
import sys
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fleetprobe.backend import AbstractBackend, BackendError  # noqa: E402
from fleetprobe.models import Host, MetricSample  # noqa: E402
from fleetprobe.probes import AbstractProbe, ProbeError  # noqa: E402


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# ============================================================================
# Fakes
# ============================================================================


class FakeBackend(AbstractBackend):
    """
    In-memory backend.

    ``hosts`` maps a service name to the hosts it returns, or to an exception
    instance to raise. The first ``post_failures`` submissions fail.
    """

    def __init__(self, hosts: Optional[Dict[str, Any]] = None, post_failures: int = 0):
        self.hosts = hosts or {}
        self.post_failures = post_failures
        self.find_calls: List[tuple] = []
        self.post_calls: List[List[Dict[str, Any]]] = []
        self.posted: List[Dict[str, Any]] = []
        self.closed = False
        self._lock = threading.Lock()

    def find_hosts(self, service: str, roles: Sequence[str]) -> List[Host]:
        with self._lock:
            self.find_calls.append((service, tuple(roles)))
        result = self.hosts.get(service, [])
        if isinstance(result, Exception):
            raise result
        return list(result)

    def post_metrics(self, batch: List[Dict[str, Any]]) -> None:
        with self._lock:
            self.post_calls.append(list(batch))
            if self.post_failures > 0:
                self.post_failures -= 1
                raise BackendError("backend unavailable")
            self.posted.extend(batch)

    def close(self) -> None:
        self.closed = True


class StaticProbe(AbstractProbe):
    """Probe returning fixed values, or raising ``error`` when given."""

    def __init__(self, host: Host, values: Optional[Dict[str, float]] = None,
                 error: Optional[Exception] = None, delay: float = 0.0, label: str = "static"):
        super().__init__(host)
        self.values = values if values is not None else {"static.value": 1.0}
        self.error = error
        self.delay = delay
        self.label = label
        self.runs = 0

    def describe(self) -> str:
        return f"{self.label} probe"

    def run(self, cancel_event: threading.Event) -> List[MetricSample]:
        self.runs += 1
        if self.delay and cancel_event.wait(self.delay):
            raise ProbeError("cancelled")
        if self.error is not None:
            raise self.error
        return [self._sample(name, value, 1700000000) for name, value in self.values.items()]


def make_host(index: int, **kwargs) -> Host:
    defaults = {
        "id": f"host{index}",
        "name": f"web{index}.example.com",
        "roles": {"production": ["web"]},
        "ip_addresses": {"eth0": f"10.0.0.{index}"},
    }
    defaults.update(kwargs)
    return Host(**defaults)


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def hosts():
    """Three discovered hosts."""
    return [make_host(i) for i in range(1, 4)]


@pytest.fixture
def fake_backend(hosts):
    """Backend serving the ``hosts`` fixture for service "production"."""
    return FakeBackend(hosts={"production": hosts})


@pytest.fixture
def sample_config_data():
    """Sample configuration data for testing."""
    return {
        "api_key": "test-api-key",
        "probe_only": False,
        "agent": {
            "max_concurrency": 10,
            "buffer_multiplier": 10,
            "probe_interval": 60.0,
            "flush_interval": 10.0,
            "batch_size": 100,
            "retry_backoff": 10.0,
        },
        "backend": {
            "base_url": "https://api.example.com",
            "timeout": 5.0,
        },
        "probes": [
            {
                "service": "production",
                "roles": ["web"],
                "ping": {"address": "{{ host.ip_addresses.eth0 }}"},
                "http": {
                    "url": "http://{{ host.ip_addresses.eth0 }}/health",
                    "expect_pattern": "ok",
                },
            },
            {
                "service": "staging",
                "role": "db",
                "tcp": {"host": "{{ host.name }}", "port": 5432},
            },
        ],
    }


@pytest.fixture
def write_config(temp_dir):
    """Return a helper writing configuration data to a TOML file."""
    import toml

    config_path = temp_dir / "fleetprobe.toml"

    def _write(config_data: Dict[str, Any]) -> Path:
        with open(config_path, "w") as f:
            toml.dump(config_data, f)
        return config_path

    return _write
