"""Metric registry, request instrumentation and unique-visitor tracking."""

from .errors import (
    CardinalityMismatchError,
    DuplicateNameError,
    EmptyNameError,
    InvalidDefinitionError,
    InvalidValueError,
    MetricError,
    MetricNotExistsError,
    MetricOperationError,
    MissingBucketsError,
    MissingObjectivesError,
    RegistrationError,
    UnknownKindError,
    WrongTypeError,
)
from .host import HostSampler, HostSamplingError, HostUsage, PsutilHostSampler
from .instrumentor import RequestContext, RequestInstrumentor, normalize_client_address
from .labels import LabelTemplate
from .metric import Metric, MetricDefinition, MetricKind
from .middleware import MetricsMiddleware, metrics_endpoint
from .names import MetricNames
from .registry import MetricRegistry
from .visitors import ApproximateVisitorSet, optimal_parameters

__all__ = [
    "ApproximateVisitorSet",
    "CardinalityMismatchError",
    "DuplicateNameError",
    "EmptyNameError",
    "HostSampler",
    "HostSamplingError",
    "HostUsage",
    "InvalidDefinitionError",
    "InvalidValueError",
    "LabelTemplate",
    "Metric",
    "MetricDefinition",
    "MetricError",
    "MetricKind",
    "MetricNames",
    "MetricNotExistsError",
    "MetricOperationError",
    "MetricRegistry",
    "MetricsMiddleware",
    "MissingBucketsError",
    "MissingObjectivesError",
    "PsutilHostSampler",
    "RegistrationError",
    "RequestContext",
    "RequestInstrumentor",
    "UnknownKindError",
    "WrongTypeError",
    "metrics_endpoint",
    "normalize_client_address",
    "optimal_parameters",
]
