from __future__ import annotations

import pytest
from prometheus_client.parser import text_string_to_metric_families

from httpmon.common.config import get_settings
from httpmon.observability.host import HostSamplingError, HostUsage
from httpmon.observability.registry import MetricRegistry


class FakeClock:
    """Monotonic clock advanced explicitly by the test."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeHostSampler:
    def __init__(self, usage: HostUsage | None = None):
        self.usage = usage or HostUsage(
            cpu_user=12.5, cpu_system=4.0, cpu_idle=83.5, mem_used=42.0, mem_cached=7.0
        )
        self.calls = 0

    def sample(self) -> HostUsage:
        self.calls += 1
        return self.usage


class FailingHostSampler:
    def __init__(self):
        self.calls = 0

    def sample(self) -> HostUsage:
        self.calls += 1
        raise HostSamplingError("host sampling failed: permission denied")


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    get_settings.cache_clear()  # type: ignore[attr-defined]
    yield
    get_settings.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture
def registry() -> MetricRegistry:
    return MetricRegistry()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def host_sampler() -> FakeHostSampler:
    return FakeHostSampler()


@pytest.fixture
def failing_sampler() -> FailingHostSampler:
    return FailingHostSampler()


@pytest.fixture
def scraped_value():
    """Read one sample from exposition text, independent of label order."""

    def lookup(text: str, name: str, **labels: str) -> float | None:
        for family in text_string_to_metric_families(text):
            for sample in family.samples:
                if sample.name == name and sample.labels == labels:
                    return sample.value
        return None

    return lookup
