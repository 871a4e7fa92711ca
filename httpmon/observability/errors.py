from __future__ import annotations


class MetricError(Exception):
    """Base class for metric registration and operation failures."""


class RegistrationError(MetricError):
    """Raised when a metric definition cannot be registered."""


class DuplicateNameError(RegistrationError):
    """Raised when a metric with the same name is already registered."""


class EmptyNameError(RegistrationError):
    """Raised when a metric definition has no name."""


class MissingBucketsError(RegistrationError):
    """Raised when a histogram is declared without buckets."""


class MissingObjectivesError(RegistrationError):
    """Raised when a summary is declared without quantile objectives."""


class UnknownKindError(RegistrationError):
    """Raised when no collector can be built for the declared kind."""


class InvalidDefinitionError(RegistrationError):
    """Raised when the metrics backend rejects a definition."""


class MetricOperationError(MetricError):
    """Base class for failures while updating a registered metric."""


class MetricNotExistsError(MetricOperationError):
    """Raised for every operation on the absent metric handle."""


class WrongTypeError(MetricOperationError):
    """Raised when an operation is not valid for the metric kind."""


class CardinalityMismatchError(MetricOperationError):
    """Raised when label values do not match the declared label names."""


class InvalidValueError(MetricOperationError):
    """Raised when the metrics backend refuses a value."""
