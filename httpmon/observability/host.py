"""Host CPU and memory sampling."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import psutil


class HostSamplingError(RuntimeError):
    """Raised when the operating system cannot be sampled."""


@dataclass(frozen=True, slots=True)
class HostUsage:
    """CPU and memory usage, all values in percent."""

    cpu_user: float
    cpu_system: float
    cpu_idle: float
    mem_used: float
    mem_cached: float


class HostSampler(Protocol):
    def sample(self) -> HostUsage:
        """Return the current host usage or raise HostSamplingError."""


def _percent(part: float, total: float) -> float:
    if total <= 0:
        return 0.0
    return part / total * 100


class PsutilHostSampler:
    """Samples cumulative CPU times and virtual memory through psutil."""

    def sample(self) -> HostUsage:
        try:
            cpu = psutil.cpu_times()
            memory = psutil.virtual_memory()
        except (psutil.Error, OSError) as exc:
            raise HostSamplingError(f"host sampling failed: {exc}") from exc

        # on Linux guest time is already part of user/nice
        cpu_total = (
            sum(cpu)
            - getattr(cpu, "guest", 0.0)
            - getattr(cpu, "guest_nice", 0.0)
        )
        return HostUsage(
            cpu_user=_percent(cpu.user, cpu_total),
            cpu_system=_percent(cpu.system, cpu_total),
            cpu_idle=_percent(cpu.idle, cpu_total),
            mem_used=_percent(memory.used, memory.total),
            # "cached" is only reported on Linux and BSD
            mem_cached=_percent(getattr(memory, "cached", 0), memory.total),
        )
