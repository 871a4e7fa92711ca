from __future__ import annotations

from collections import namedtuple

import psutil
import pytest

from httpmon.observability.host import HostSamplingError, PsutilHostSampler

CpuTimes = namedtuple("CpuTimes", "user system idle")
Memory = namedtuple("Memory", "total used cached")
MemoryNoCache = namedtuple("MemoryNoCache", "total used")


def test_sample_reports_percentages(monkeypatch):
    monkeypatch.setattr(psutil, "cpu_times", lambda: CpuTimes(30.0, 10.0, 60.0))
    monkeypatch.setattr(psutil, "virtual_memory", lambda: Memory(2000, 500, 100))

    usage = PsutilHostSampler().sample()

    assert usage.cpu_user == pytest.approx(30.0)
    assert usage.cpu_system == pytest.approx(10.0)
    assert usage.cpu_idle == pytest.approx(60.0)
    assert usage.mem_used == pytest.approx(25.0)
    assert usage.mem_cached == pytest.approx(5.0)


def test_missing_cached_field_reports_zero(monkeypatch):
    monkeypatch.setattr(psutil, "cpu_times", lambda: CpuTimes(1.0, 1.0, 2.0))
    monkeypatch.setattr(psutil, "virtual_memory", lambda: MemoryNoCache(1000, 250))

    usage = PsutilHostSampler().sample()

    assert usage.mem_cached == 0.0
    assert usage.mem_used == pytest.approx(25.0)


def test_psutil_errors_are_wrapped(monkeypatch):
    def denied():
        raise psutil.AccessDenied()

    monkeypatch.setattr(psutil, "cpu_times", denied)

    with pytest.raises(HostSamplingError):
        PsutilHostSampler().sample()


def test_os_errors_are_wrapped(monkeypatch):
    def unreadable():
        raise OSError("/proc/meminfo unreadable")

    monkeypatch.setattr(psutil, "virtual_memory", unreadable)

    with pytest.raises(HostSamplingError):
        PsutilHostSampler().sample()


def test_real_host_sample_is_in_range():
    usage = PsutilHostSampler().sample()
    for value in (usage.cpu_user, usage.cpu_system, usage.cpu_idle, usage.mem_used):
        assert 0.0 <= value <= 100.0


def test_guest_time_is_not_counted_twice(monkeypatch):
    LinuxCpuTimes = namedtuple(
        "LinuxCpuTimes", "user nice system idle iowait guest guest_nice"
    )
    # guest (10) is included in user, guest_nice (5) in nice
    times = LinuxCpuTimes(
        user=40.0, nice=10.0, system=20.0, idle=30.0, iowait=0.0, guest=10.0, guest_nice=5.0
    )
    monkeypatch.setattr(psutil, "cpu_times", lambda: times)
    monkeypatch.setattr(psutil, "virtual_memory", lambda: Memory(1000, 100, 0))

    usage = PsutilHostSampler().sample()

    assert usage.cpu_user == pytest.approx(40.0)
    assert usage.cpu_system == pytest.approx(20.0)
    assert usage.cpu_idle == pytest.approx(30.0)
