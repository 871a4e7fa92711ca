"""Catalogue of the built-in metrics recorded by the instrumentor.

Names and help strings are consumed by dashboards; do not change them.

The per-client unique visitor counter is exposed as
``request_uv_client_total{clientIP="..."}``, not ``request_uv``:
prometheus_client appends ``_total`` to every counter, so a counter named
``request_uv`` would be exposed under the same name as the global
``request_uv_total`` counter. Dashboards reading per-client visitors must
query ``request_uv_client_total`` (plus any configured prefix/suffix).
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from .metric import MetricKind

BUCKETS_CPU = "cpu"
BUCKETS_MEM = "mem"
BUCKETS_DURATION = "duration"


@dataclass(frozen=True, slots=True)
class BuiltinMetric:
    key: str
    kind: MetricKind
    description: str
    labels: tuple[str, ...] = ()
    bucket_group: str | None = None


CPU_USER_TOTAL = BuiltinMetric(
    "cpu_user_total",
    MetricKind.HISTOGRAM,
    "Total CPU time consumed by the user process.",
    bucket_group=BUCKETS_CPU,
)
CPU_SYSTEM_TOTAL = BuiltinMetric(
    "cpu_system_total",
    MetricKind.HISTOGRAM,
    "Total CPU time consumed by the system process.",
    bucket_group=BUCKETS_CPU,
)
CPU_IDLE_TOTAL = BuiltinMetric(
    "cpu_idle_total",
    MetricKind.HISTOGRAM,
    "Total CPU idle process.",
    bucket_group=BUCKETS_CPU,
)
MEM_USED_TOTAL = BuiltinMetric(
    "mem_used_total",
    MetricKind.HISTOGRAM,
    "Used memory",
    bucket_group=BUCKETS_MEM,
)
MEM_CACHED_TOTAL = BuiltinMetric(
    "mem_cached_total",
    MetricKind.HISTOGRAM,
    "Cached memory",
    bucket_group=BUCKETS_MEM,
)
REQUEST_TOTAL = BuiltinMetric(
    "request_total",
    MetricKind.COUNTER,
    "all the server received request num.",
)
# prometheus_client exposes a counter named "request_uv" as "request_uv_total",
# which is the global visitor counter below.
REQUEST_UV = BuiltinMetric(
    "request_uv_client",
    MetricKind.COUNTER,
    "all the server received ip num.",
    labels=("clientIP",),
)
REQUEST_UV_TOTAL = BuiltinMetric(
    "request_uv_total",
    MetricKind.COUNTER,
    "all the server received ip num.",
)
URI_REQUEST_TOTAL = BuiltinMetric(
    "uri_request_total",
    MetricKind.COUNTER,
    "all the server received request num with every uri.",
    labels=("uri", "method", "code"),
)
REQUEST_BODY_TOTAL = BuiltinMetric(
    "request_body_total",
    MetricKind.COUNTER,
    "the server received request body size, unit byte",
)
RESPONSE_BODY_TOTAL = BuiltinMetric(
    "response_body_total",
    MetricKind.COUNTER,
    "the server send response body size, unit byte",
)
REQUEST_DURATION = BuiltinMetric(
    "request_duration",
    MetricKind.HISTOGRAM,
    "the time server took to handle the request.",
    labels=("uri",),
    bucket_group=BUCKETS_DURATION,
)
SLOW_REQUEST_TOTAL = BuiltinMetric(
    "slow_request_total",
    MetricKind.COUNTER,
    "the server handled slow requests counter, t={slow_time}.",
    labels=("uri", "method", "code"),
)

HOST_METRICS: tuple[BuiltinMetric, ...] = (
    CPU_USER_TOTAL,
    CPU_SYSTEM_TOTAL,
    CPU_IDLE_TOTAL,
    MEM_USED_TOTAL,
    MEM_CACHED_TOTAL,
)

REQUEST_METRICS: tuple[BuiltinMetric, ...] = (
    REQUEST_TOTAL,
    REQUEST_UV,
    REQUEST_UV_TOTAL,
    URI_REQUEST_TOTAL,
    REQUEST_BODY_TOTAL,
    RESPONSE_BODY_TOTAL,
    REQUEST_DURATION,
    SLOW_REQUEST_TOTAL,
)

BUILTIN_METRICS: tuple[BuiltinMetric, ...] = HOST_METRICS + REQUEST_METRICS


class MetricNames:
    """Resolved exposition names of the built-in metrics."""

    __slots__ = ("_names",)

    def __init__(self, names: Mapping[str, str]):
        self._names = MappingProxyType(dict(names))

    @classmethod
    def build(cls, prefix: str = "", suffix: str = "") -> "MetricNames":
        return cls({m.key: f"{prefix}{m.key}{suffix}" for m in BUILTIN_METRICS})

    def __getitem__(self, metric: BuiltinMetric) -> str:
        return self._names[metric.key]

    def as_dict(self) -> dict[str, str]:
        return dict(self._names)
