"""HTTP request instrumentation on top of prometheus_client."""

__version__ = "0.1.0"
