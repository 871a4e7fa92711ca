from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

ENV_FILE = Path(".env")

DEFAULT_DURATION_BUCKETS: tuple[float, ...] = (0.1, 0.3, 1.2, 5, 10)
DEFAULT_USAGE_BUCKETS: tuple[float, ...] = (
    0.5, 1, 3, 5, 10, 20, 25, 30, 40, 50, 60, 70, 80, 90, 100,
)


def _load_env_file() -> None:
    if not ENV_FILE.exists():
        return
    for raw_line in ENV_FILE.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "y", "on"}


def _as_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _as_floats(value: str | None, default: tuple[float, ...]) -> list[float]:
    if value is None:
        return list(default)
    return [float(item) for item in _as_list(value)]


def _as_mapping(value: str | None) -> dict[str, str]:
    # "env=prod,region=eu" -> {"env": "prod", "region": "eu"}, order kept
    mapping: dict[str, str] = {}
    for item in _as_list(value):
        key, sep, val = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"METRIC_METADATA entry must be key=value, got {item!r}")
        mapping[key.strip()] = val.strip()
    return mapping


@dataclass
class Settings:
    ENABLE_METRICS: bool = True
    METRICS_PATH: str = "/metrics"
    SLOW_TIME: int = 5
    EXCLUDE_PATHS: list[str] = field(default_factory=list)
    REQUEST_DURATION_BUCKETS: list[float] = field(
        default_factory=lambda: list(DEFAULT_DURATION_BUCKETS)
    )
    CPU_USAGE_BUCKETS: list[float] = field(
        default_factory=lambda: list(DEFAULT_USAGE_BUCKETS)
    )
    MEM_USAGE_BUCKETS: list[float] = field(
        default_factory=lambda: list(DEFAULT_USAGE_BUCKETS)
    )
    METRIC_PREFIX: str = ""
    METRIC_SUFFIX: str = ""
    METRIC_METADATA: dict[str, str] = field(default_factory=dict)
    VISITOR_CAPACITY: int = 100_000
    VISITOR_ERROR_RATE: float = 0.01
    TRUST_FORWARDED_FOR: bool = False
    USE_ROUTE_TEMPLATE: bool = False
    ENABLE_HOST_METRICS: bool = True
    ACCESS_LOG: bool = True

    def __post_init__(self) -> None:
        if not self.METRICS_PATH.startswith("/"):
            raise ValueError("METRICS_PATH must start with '/'.")
        if self.SLOW_TIME < 0:
            raise ValueError("SLOW_TIME must be a non-negative number of seconds.")
        for name in (
            "REQUEST_DURATION_BUCKETS",
            "CPU_USAGE_BUCKETS",
            "MEM_USAGE_BUCKETS",
        ):
            buckets = getattr(self, name)
            if not buckets:
                raise ValueError(f"{name} cannot be empty.")
            if any(a >= b for a, b in zip(buckets, buckets[1:])):
                raise ValueError(f"{name} must be strictly ascending.")
        if self.VISITOR_CAPACITY <= 0:
            raise ValueError("VISITOR_CAPACITY must be positive.")
        if not 0 < self.VISITOR_ERROR_RATE < 1:
            raise ValueError("VISITOR_ERROR_RATE must be between 0 and 1.")

    @classmethod
    def from_environment(cls) -> "Settings":
        _load_env_file()
        return cls(
            ENABLE_METRICS=_as_bool(
                os.environ.get("ENABLE_METRICS"), cls.ENABLE_METRICS
            ),
            METRICS_PATH=os.environ.get("METRICS_PATH", cls.METRICS_PATH),
            SLOW_TIME=int(os.environ.get("SLOW_TIME", cls.SLOW_TIME)),
            EXCLUDE_PATHS=_as_list(os.environ.get("EXCLUDE_PATHS")),
            REQUEST_DURATION_BUCKETS=_as_floats(
                os.environ.get("REQUEST_DURATION_BUCKETS"), DEFAULT_DURATION_BUCKETS
            ),
            CPU_USAGE_BUCKETS=_as_floats(
                os.environ.get("CPU_USAGE_BUCKETS"), DEFAULT_USAGE_BUCKETS
            ),
            MEM_USAGE_BUCKETS=_as_floats(
                os.environ.get("MEM_USAGE_BUCKETS"), DEFAULT_USAGE_BUCKETS
            ),
            METRIC_PREFIX=os.environ.get("METRIC_PREFIX", cls.METRIC_PREFIX),
            METRIC_SUFFIX=os.environ.get("METRIC_SUFFIX", cls.METRIC_SUFFIX),
            METRIC_METADATA=_as_mapping(os.environ.get("METRIC_METADATA")),
            VISITOR_CAPACITY=int(
                os.environ.get("VISITOR_CAPACITY", cls.VISITOR_CAPACITY)
            ),
            VISITOR_ERROR_RATE=float(
                os.environ.get("VISITOR_ERROR_RATE", cls.VISITOR_ERROR_RATE)
            ),
            TRUST_FORWARDED_FOR=_as_bool(
                os.environ.get("TRUST_FORWARDED_FOR"), cls.TRUST_FORWARDED_FOR
            ),
            USE_ROUTE_TEMPLATE=_as_bool(
                os.environ.get("USE_ROUTE_TEMPLATE"), cls.USE_ROUTE_TEMPLATE
            ),
            ENABLE_HOST_METRICS=_as_bool(
                os.environ.get("ENABLE_HOST_METRICS"), cls.ENABLE_HOST_METRICS
            ),
            ACCESS_LOG=_as_bool(os.environ.get("ACCESS_LOG"), cls.ACCESS_LOG),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_environment()
