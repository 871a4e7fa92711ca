from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from .errors import CardinalityMismatchError


class LabelTemplate:
    """Builds label names and values for one metric.

    Metric-specific labels come first, followed by the static metadata
    labels in mapping order. The same template produces the names declared
    at registration and the values passed on every update.
    """

    __slots__ = ("_names", "_metadata")

    def __init__(self, names: tuple[str, ...] = (), metadata: Mapping[str, str] | None = None):
        self._names = tuple(names)
        self._metadata = MappingProxyType(dict(metadata or {}))

    @property
    def metadata(self) -> Mapping[str, str]:
        return self._metadata

    def label_names(self) -> tuple[str, ...]:
        return self._names + tuple(self._metadata.keys())

    def values(self, *values: str) -> tuple[str, ...]:
        if len(values) != len(self._names):
            raise CardinalityMismatchError(
                f"expected {len(self._names)} values for labels "
                f"{list(self._names)}, got {len(values)}"
            )
        return tuple(str(v) for v in values) + tuple(self._metadata.values())
