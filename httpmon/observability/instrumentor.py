"""Per-request metric updates for the built-in HTTP metrics.

The instrumentor owns no metric state of its own: it registers the built-in
metrics in a :class:`MetricRegistry` once, and then turns each finished
request into a fixed sequence of facade calls. Errors raised by those calls
are logged and dropped so instrumentation never fails a request.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable, Mapping, Sequence

from httpmon.common.config import (
    DEFAULT_DURATION_BUCKETS,
    DEFAULT_USAGE_BUCKETS,
    Settings,
)

from .errors import MetricError, RegistrationError
from .host import HostSampler, HostSamplingError, PsutilHostSampler
from .labels import LabelTemplate
from .metric import MetricDefinition
from .names import (
    BUCKETS_CPU,
    BUCKETS_DURATION,
    BUCKETS_MEM,
    BUILTIN_METRICS,
    CPU_IDLE_TOTAL,
    CPU_SYSTEM_TOTAL,
    CPU_USER_TOTAL,
    MEM_CACHED_TOTAL,
    MEM_USED_TOTAL,
    REQUEST_BODY_TOTAL,
    REQUEST_DURATION,
    REQUEST_TOTAL,
    REQUEST_UV,
    REQUEST_UV_TOTAL,
    SLOW_REQUEST_TOTAL,
    URI_REQUEST_TOTAL,
    BuiltinMetric,
    MetricNames,
)
from .registry import MetricRegistry
from .visitors import ApproximateVisitorSet

if TYPE_CHECKING:
    from starlette.types import ASGIApp

startup_logger = logging.getLogger("httpmon.startup")
logger = logging.getLogger("httpmon.metrics")


def normalize_client_address(address: str) -> str:
    """Strip the port from ``host:port`` or ``[v6]:port``.

    Bare hosts and bare IPv6 addresses are returned unchanged.
    """
    address = address.strip()
    if address.startswith("["):
        end = address.find("]")
        if end != -1:
            return address[1:end]
        return address
    host, sep, port = address.rpartition(":")
    if sep and ":" not in host and port.isdigit():
        return host
    return address


@dataclass(frozen=True, slots=True)
class RequestContext:
    """What the instrumentor needs to know about one finished request."""

    uri: str
    method: str
    status_code: int
    elapsed: float
    client_address: str | None = None
    content_length: int | None = None


class RequestInstrumentor:
    def __init__(
        self,
        registry: MetricRegistry | None = None,
        *,
        visitors: ApproximateVisitorSet | None = None,
        host_sampler: HostSampler | None = None,
        metric_names: MetricNames | None = None,
        metadata: Mapping[str, str] | None = None,
        metrics_path: str = "/metrics",
        exclude_paths: Iterable[str] = (),
        slow_time: int = 5,
        duration_buckets: Sequence[float] = DEFAULT_DURATION_BUCKETS,
        cpu_buckets: Sequence[float] = DEFAULT_USAGE_BUCKETS,
        mem_buckets: Sequence[float] = DEFAULT_USAGE_BUCKETS,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.registry = registry if registry is not None else MetricRegistry()
        self.visitors = visitors if visitors is not None else ApproximateVisitorSet()
        self.host_sampler = host_sampler
        self.names = metric_names if metric_names is not None else MetricNames.build()
        self.metrics_path = metrics_path
        self.exclude_paths = frozenset(exclude_paths)
        self.slow_time = slow_time
        self.clock = clock
        self._buckets = {
            BUCKETS_DURATION: tuple(duration_buckets),
            BUCKETS_CPU: tuple(cpu_buckets),
            BUCKETS_MEM: tuple(mem_buckets),
        }
        self._labels = {
            metric.key: LabelTemplate(metric.labels, metadata)
            for metric in BUILTIN_METRICS
        }
        self._initialized = False
        self._init_lock = threading.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        registry: MetricRegistry | None = None,
        **overrides,
    ) -> "RequestInstrumentor":
        options = dict(
            visitors=ApproximateVisitorSet(
                settings.VISITOR_CAPACITY, settings.VISITOR_ERROR_RATE
            ),
            host_sampler=(
                PsutilHostSampler() if settings.ENABLE_HOST_METRICS else None
            ),
            metric_names=MetricNames.build(
                settings.METRIC_PREFIX, settings.METRIC_SUFFIX
            ),
            metadata=settings.METRIC_METADATA,
            metrics_path=settings.METRICS_PATH,
            exclude_paths=settings.EXCLUDE_PATHS,
            slow_time=settings.SLOW_TIME,
            duration_buckets=settings.REQUEST_DURATION_BUCKETS,
            cpu_buckets=settings.CPU_USAGE_BUCKETS,
            mem_buckets=settings.MEM_USAGE_BUCKETS,
        )
        options.update(overrides)
        return cls(registry, **options)

    def definition_for(self, metric: BuiltinMetric) -> MetricDefinition:
        description = metric.description
        if metric is SLOW_REQUEST_TOTAL:
            description = description.format(slow_time=self.slow_time)
        return MetricDefinition(
            name=self.names[metric],
            kind=metric.kind,
            description=description,
            label_names=self._labels[metric.key].label_names(),
            buckets=self._buckets.get(metric.bucket_group, ()),
        )

    def init_metrics(self) -> None:
        """Register the built-in metrics. Safe to call more than once."""
        with self._init_lock:
            if self._initialized:
                return
            for metric in BUILTIN_METRICS:
                definition = self.definition_for(metric)
                try:
                    self.registry.add_metric(definition)
                except RegistrationError as exc:
                    startup_logger.error(
                        "metric registration failed [event=metric_registration_failed]"
                        " (name=%s, kind=%s, error=%s)",
                        definition.name,
                        definition.kind.value,
                        exc,
                    )
                    raise
            self._initialized = True
            startup_logger.info(
                "registered %d built-in metrics [event=metrics_registered]"
                " (metrics_path=%s, slow_time=%s, visitor_capacity=%s)",
                len(BUILTIN_METRICS),
                self.metrics_path,
                self.slow_time,
                self.visitors.capacity,
            )

    def interceptor(self, app: "ASGIApp", **options) -> "ASGIApp":
        """Register the metrics and wrap ``app`` with the metrics middleware.

        ``options`` are passed to :class:`MetricsMiddleware`.
        """
        from .middleware import MetricsMiddleware

        self.init_metrics()
        return MetricsMiddleware(app, instrumentor=self, **options)

    def is_scrape_path(self, path: str) -> bool:
        return path == self.metrics_path

    def is_excluded(self, path: str) -> bool:
        return path in self.exclude_paths

    def refresh_host_metrics(self) -> None:
        if self.host_sampler is None:
            return
        try:
            usage = self.host_sampler.sample()
        except HostSamplingError as exc:
            logger.warning("host sampling skipped: %s", exc)
            return
        self._emit(CPU_USER_TOTAL, "observe", (), usage.cpu_user)
        self._emit(CPU_SYSTEM_TOTAL, "observe", (), usage.cpu_system)
        self._emit(CPU_IDLE_TOTAL, "observe", (), usage.cpu_idle)
        self._emit(MEM_USED_TOTAL, "observe", (), usage.mem_used)
        self._emit(MEM_CACHED_TOTAL, "observe", (), usage.mem_cached)

    def record(self, context: RequestContext) -> None:
        status = str(context.status_code)
        uri, method = context.uri, context.method

        self._emit(REQUEST_TOTAL, "inc", ())

        if context.client_address:
            client = normalize_client_address(context.client_address)
            if self.visitors.add_if_absent(client):
                self._emit(REQUEST_UV_TOTAL, "inc", ())
                self._emit(REQUEST_UV, "inc", (client,))

        self._emit(URI_REQUEST_TOTAL, "inc", (uri, method, status))

        if context.content_length is not None and context.content_length >= 0:
            self._emit(REQUEST_BODY_TOTAL, "add", (), float(context.content_length))

        if int(context.elapsed) > self.slow_time:
            self._emit(SLOW_REQUEST_TOTAL, "inc", (uri, method, status))

        self._emit(REQUEST_DURATION, "observe", (uri,), context.elapsed)

    def _emit(
        self,
        metric: BuiltinMetric,
        operation: str,
        label_values: tuple[str, ...],
        value: float | None = None,
    ) -> None:
        name = self.names[metric]
        try:
            values = self._labels[metric.key].values(*label_values)
            handle = self.registry.get_metric(name)
            if operation == "inc":
                handle.inc(values)
            elif operation == "add":
                handle.add(values, value)
            else:
                handle.observe(values, value)
        except MetricError as exc:
            logger.warning(
                "metric update dropped: %s",
                exc,
                extra={"extra": {"metric": name, "operation": operation}},
            )
