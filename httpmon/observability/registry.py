"""Name-keyed registry of metric definitions and their collectors."""

from __future__ import annotations

import re
import threading
from typing import Callable

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, Summary
from prometheus_client.metrics import MetricWrapperBase

from .errors import (
    DuplicateNameError,
    EmptyNameError,
    InvalidDefinitionError,
    MissingBucketsError,
    MissingObjectivesError,
    UnknownKindError,
)
from .metric import Metric, MetricDefinition, MetricKind

METRIC_NAME_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")
LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def _check_names(definition: MetricDefinition) -> None:
    # classic Prometheus names only, whatever the client library accepts
    if not METRIC_NAME_RE.fullmatch(definition.name):
        raise InvalidDefinitionError(f"invalid metric name '{definition.name}'")
    seen: set[str] = set()
    for label in definition.label_names:
        if not isinstance(label, str) or not LABEL_NAME_RE.fullmatch(label):
            raise InvalidDefinitionError(
                f"metric '{definition.name}' has invalid label name {label!r}"
            )
        if label.startswith("__"):
            raise InvalidDefinitionError(
                f"metric '{definition.name}' uses reserved label name {label!r}"
            )
        if label in seen:
            raise InvalidDefinitionError(
                f"metric '{definition.name}' declares label {label!r} twice"
            )
        seen.add(label)


def _build_counter(definition: MetricDefinition) -> MetricWrapperBase:
    return Counter(
        definition.name,
        definition.description,
        definition.label_names,
        registry=None,
    )


def _build_gauge(definition: MetricDefinition) -> MetricWrapperBase:
    return Gauge(
        definition.name,
        definition.description,
        definition.label_names,
        registry=None,
    )


def _build_histogram(definition: MetricDefinition) -> MetricWrapperBase:
    if not definition.buckets:
        raise MissingBucketsError(
            f"metric '{definition.name}' is a histogram and requires buckets"
        )
    return Histogram(
        definition.name,
        definition.description,
        definition.label_names,
        buckets=definition.buckets,
        registry=None,
    )


def _build_summary(definition: MetricDefinition) -> MetricWrapperBase:
    if not definition.objectives:
        raise MissingObjectivesError(
            f"metric '{definition.name}' is a summary and requires objectives"
        )
    for quantile, error in definition.objectives.items():
        if not 0 < quantile < 1 or error < 0:
            raise InvalidDefinitionError(
                f"metric '{definition.name}' has invalid objective "
                f"{quantile}: {error}; quantiles must be in (0, 1) and errors >= 0"
            )
    # prometheus_client summaries only track count and sum; the objectives
    # stay on the definition for the backend to evaluate.
    return Summary(
        definition.name,
        definition.description,
        definition.label_names,
        registry=None,
    )


COLLECTOR_BUILDERS: dict[MetricKind, Callable[[MetricDefinition], MetricWrapperBase]] = {
    MetricKind.COUNTER: _build_counter,
    MetricKind.GAUGE: _build_gauge,
    MetricKind.HISTOGRAM: _build_histogram,
    MetricKind.SUMMARY: _build_summary,
}


class MetricRegistry:
    """Owns metric definitions and registers their collectors for scraping.

    Each instance wraps its own :class:`CollectorRegistry` unless one is
    injected, so independent registries can coexist in one process.
    Registration is expected during startup; lookups are lock-free.
    """

    def __init__(self, collector_registry: CollectorRegistry | None = None):
        if collector_registry is None:
            collector_registry = CollectorRegistry()
        self._collector_registry = collector_registry
        self._metrics: dict[str, Metric] = {}
        self._lock = threading.Lock()

    @property
    def collector_registry(self) -> CollectorRegistry:
        return self._collector_registry

    def add_metric(self, definition: MetricDefinition) -> Metric:
        with self._lock:
            if definition.name in self._metrics:
                raise DuplicateNameError(
                    f"metric '{definition.name}' is already registered"
                )
            if not definition.name:
                raise EmptyNameError("metric name cannot be empty")
            builder = COLLECTOR_BUILDERS.get(definition.kind)
            if builder is None:
                raise UnknownKindError(
                    f"metric '{definition.name}' has unsupported kind "
                    f"{definition.kind!r}"
                )
            _check_names(definition)
            try:
                collector = builder(definition)
                self._collector_registry.register(collector)
            except ValueError as exc:
                raise InvalidDefinitionError(
                    f"metric '{definition.name}' rejected by backend: {exc}"
                ) from exc
            metric = Metric(definition, collector)
            self._metrics[definition.name] = metric
            return metric

    def get_metric(self, name: str) -> Metric:
        metric = self._metrics.get(name)
        if metric is None:
            return Metric.absent(name)
        return metric

    def names(self) -> list[str]:
        return list(self._metrics)

    def __contains__(self, name: object) -> bool:
        return name in self._metrics

    def __len__(self) -> int:
        return len(self._metrics)
