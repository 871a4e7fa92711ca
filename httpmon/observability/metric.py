"""Metric definitions and the kind-checked operation facade.

A :class:`Metric` wraps exactly one prometheus_client collector. Operations
are checked against the metric kind before they reach the collector, so a
mistyped or unknown metric raises a :class:`MetricOperationError` instead of
an ``AttributeError`` deep inside the backend.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Sequence

from prometheus_client.metrics import MetricWrapperBase

from .errors import (
    CardinalityMismatchError,
    InvalidValueError,
    MetricNotExistsError,
    WrongTypeError,
)


class MetricKind(str, Enum):
    NONE = "none"
    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"
    SUMMARY = "summary"


@dataclass(frozen=True, slots=True)
class MetricDefinition:
    """Identity and shape of one metric."""

    name: str
    kind: MetricKind
    description: str = ""
    label_names: Sequence[str] = ()
    buckets: Sequence[float] = ()
    objectives: Mapping[float, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.kind, MetricKind):
            # unknown values are left for the registry to reject
            try:
                object.__setattr__(self, "kind", MetricKind(self.kind))
            except ValueError:
                pass
        object.__setattr__(self, "label_names", tuple(self.label_names or ()))
        object.__setattr__(self, "buckets", tuple(self.buckets or ()))
        object.__setattr__(
            self, "objectives", MappingProxyType(dict(self.objectives or {}))
        )


class Metric:
    """Kind-checked view over one registered collector."""

    __slots__ = ("_definition", "_collector")

    def __init__(
        self, definition: MetricDefinition, collector: MetricWrapperBase | None
    ):
        self._definition = definition
        self._collector = collector

    @classmethod
    def absent(cls, name: str) -> "Metric":
        """Handle returned for names that were never registered."""
        return cls(MetricDefinition(name=name, kind=MetricKind.NONE), None)

    @property
    def definition(self) -> MetricDefinition:
        return self._definition

    @property
    def name(self) -> str:
        return self._definition.name

    @property
    def kind(self) -> MetricKind:
        return self._definition.kind

    @property
    def collector(self) -> MetricWrapperBase | None:
        return self._collector

    def set_gauge_value(self, label_values: Sequence[str], value: float) -> None:
        self._check(MetricKind.GAUGE)
        self._child(label_values).set(value)

    def inc(self, label_values: Sequence[str]) -> None:
        self._check(MetricKind.COUNTER, MetricKind.GAUGE)
        self._child(label_values).inc()

    def add(self, label_values: Sequence[str], value: float) -> None:
        self._check(MetricKind.COUNTER, MetricKind.GAUGE)
        child = self._child(label_values)
        try:
            child.inc(value)
        except ValueError as exc:
            raise InvalidValueError(f"metric '{self.name}': {exc}") from exc

    def observe(self, label_values: Sequence[str], value: float) -> None:
        self._check(MetricKind.HISTOGRAM, MetricKind.SUMMARY)
        self._child(label_values).observe(value)

    def _check(self, *allowed: MetricKind) -> None:
        if self.kind is MetricKind.NONE:
            raise MetricNotExistsError(f"metric '{self.name}' does not exist")
        if self.kind not in allowed:
            expected = " or ".join(kind.value for kind in allowed)
            raise WrongTypeError(
                f"metric '{self.name}' is a {self.kind.value}, not {expected}"
            )

    def _child(self, label_values: Sequence[str]):
        values = tuple(label_values or ())
        label_names = self._definition.label_names
        if len(values) != len(label_names):
            raise CardinalityMismatchError(
                f"metric '{self.name}' expects {len(label_names)} label values "
                f"{list(label_names)}, got {len(values)}"
            )
        # unlabelled collectors refuse .labels()
        if not label_names:
            return self._collector
        return self._collector.labels(*values)

    def __repr__(self) -> str:
        return f"Metric(name={self.name!r}, kind={self.kind.value})"
