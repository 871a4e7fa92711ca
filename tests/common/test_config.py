from __future__ import annotations

import os

import pytest

from httpmon.common import config as config_module
from httpmon.common.config import Settings, get_settings

ENV_KEYS = (
    "ENABLE_METRICS",
    "METRICS_PATH",
    "SLOW_TIME",
    "EXCLUDE_PATHS",
    "REQUEST_DURATION_BUCKETS",
    "CPU_USAGE_BUCKETS",
    "MEM_USAGE_BUCKETS",
    "METRIC_PREFIX",
    "METRIC_SUFFIX",
    "METRIC_METADATA",
    "VISITOR_CAPACITY",
    "VISITOR_ERROR_RATE",
    "TRUST_FORWARDED_FOR",
    "USE_ROUTE_TEMPLATE",
    "ENABLE_HOST_METRICS",
    "ACCESS_LOG",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    # keep .env loading away from the real working directory
    monkeypatch.setattr(os, "environ", dict(os.environ))
    monkeypatch.setattr(config_module, "ENV_FILE", tmp_path / ".env")
    for key in ENV_KEYS:
        os.environ.pop(key, None)


def test_defaults():
    settings = Settings.from_environment()

    assert settings.ENABLE_METRICS is True
    assert settings.METRICS_PATH == "/metrics"
    assert settings.SLOW_TIME == 5
    assert settings.EXCLUDE_PATHS == []
    assert settings.REQUEST_DURATION_BUCKETS == [0.1, 0.3, 1.2, 5, 10]
    assert settings.CPU_USAGE_BUCKETS == [
        0.5, 1, 3, 5, 10, 20, 25, 30, 40, 50, 60, 70, 80, 90, 100,
    ]
    assert settings.MEM_USAGE_BUCKETS == settings.CPU_USAGE_BUCKETS
    assert settings.METRIC_METADATA == {}
    assert settings.VISITOR_CAPACITY == 100_000
    assert settings.VISITOR_ERROR_RATE == 0.01
    assert settings.TRUST_FORWARDED_FOR is False


def test_values_from_environment():
    os.environ.update(
        {
            "ENABLE_METRICS": "no",
            "METRICS_PATH": "/stats",
            "SLOW_TIME": "2",
            "EXCLUDE_PATHS": "/health, /ready",
            "REQUEST_DURATION_BUCKETS": "0.05,0.5,2",
            "METRIC_PREFIX": "shop_",
            "METRIC_SUFFIX": "_v2",
            "METRIC_METADATA": "service=checkout, region=eu-west",
            "VISITOR_CAPACITY": "5000",
            "VISITOR_ERROR_RATE": "0.001",
            "TRUST_FORWARDED_FOR": "true",
        }
    )
    settings = Settings.from_environment()

    assert settings.ENABLE_METRICS is False
    assert settings.METRICS_PATH == "/stats"
    assert settings.SLOW_TIME == 2
    assert settings.EXCLUDE_PATHS == ["/health", "/ready"]
    assert settings.REQUEST_DURATION_BUCKETS == [0.05, 0.5, 2.0]
    assert settings.METRIC_PREFIX == "shop_"
    assert settings.METRIC_SUFFIX == "_v2"
    assert list(settings.METRIC_METADATA.items()) == [
        ("service", "checkout"),
        ("region", "eu-west"),
    ]
    assert settings.VISITOR_CAPACITY == 5000
    assert settings.VISITOR_ERROR_RATE == 0.001
    assert settings.TRUST_FORWARDED_FOR is True


def test_env_file_is_loaded_without_overriding(tmp_path):
    (tmp_path / ".env").write_text(
        "# local overrides\nSLOW_TIME=9\nMETRICS_PATH='/from-file'\n", encoding="utf-8"
    )
    os.environ["METRICS_PATH"] = "/from-env"

    settings = Settings.from_environment()

    assert settings.SLOW_TIME == 9
    assert settings.METRICS_PATH == "/from-env"


@pytest.mark.parametrize(
    "overrides",
    [
        {"METRICS_PATH": "metrics"},
        {"SLOW_TIME": -1},
        {"REQUEST_DURATION_BUCKETS": []},
        {"CPU_USAGE_BUCKETS": [1, 1, 2]},
        {"MEM_USAGE_BUCKETS": [5, 1]},
        {"VISITOR_CAPACITY": 0},
        {"VISITOR_ERROR_RATE": 1.0},
    ],
)
def test_invalid_settings_are_rejected(overrides):
    with pytest.raises(ValueError):
        Settings(**overrides)


def test_malformed_metadata_is_rejected():
    os.environ["METRIC_METADATA"] = "service"
    with pytest.raises(ValueError):
        Settings.from_environment()


def test_get_settings_is_cached():
    first = get_settings()
    os.environ["SLOW_TIME"] = "42"
    assert get_settings() is first
    get_settings.cache_clear()  # type: ignore[attr-defined]
    assert get_settings().SLOW_TIME == 42
