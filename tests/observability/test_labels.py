from __future__ import annotations

import pytest

from httpmon.observability.errors import CardinalityMismatchError
from httpmon.observability.labels import LabelTemplate


def test_metadata_follows_metric_labels_in_order():
    template = LabelTemplate(("uri",), {"service": "api", "region": "eu"})

    assert template.label_names() == ("uri", "service", "region")
    assert template.values("/foo") == ("/foo", "api", "eu")


def test_metadata_only_template():
    template = LabelTemplate((), {"service": "api"})
    assert template.label_names() == ("service",)
    assert template.values() == ("api",)


def test_values_are_stringified():
    template = LabelTemplate(("code",))
    assert template.values(200) == ("200",)


def test_metadata_is_copied():
    metadata = {"service": "api"}
    template = LabelTemplate((), metadata)
    metadata["service"] = "changed"
    metadata["extra"] = "x"

    assert template.values() == ("api",)
    with pytest.raises(TypeError):
        template.metadata["service"] = "mutated"  # type: ignore[index]


def test_wrong_value_count_raises():
    template = LabelTemplate(("uri", "method", "code"))
    with pytest.raises(CardinalityMismatchError):
        template.values("/foo", "GET")
