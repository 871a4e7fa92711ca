"""Bounded-memory approximate set of client identifiers.

A Bloom filter: ``add`` sets ``k`` bits derived from the key, ``contains``
reports whether all of them are set. There are no false negatives; false
positives happen at roughly the configured rate once ``capacity`` distinct
keys have been added. The bit array never grows.
"""

from __future__ import annotations

import hashlib
import math
import threading

DEFAULT_CAPACITY = 100_000
DEFAULT_ERROR_RATE = 0.01


def optimal_parameters(capacity: int, error_rate: float) -> tuple[int, int]:
    """Return ``(bit_size, hash_count)`` for the target capacity and error rate."""
    if capacity <= 0:
        raise ValueError("capacity must be positive")
    if not 0 < error_rate < 1:
        raise ValueError("error_rate must be between 0 and 1")
    bit_size = math.ceil(-capacity * math.log(error_rate) / (math.log(2) ** 2))
    hash_count = max(1, round(bit_size / capacity * math.log(2)))
    return bit_size, hash_count


class ApproximateVisitorSet:
    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        error_rate: float = DEFAULT_ERROR_RATE,
    ):
        self._capacity = capacity
        self._error_rate = error_rate
        self._bit_size, self._hash_count = optimal_parameters(capacity, error_rate)
        self._bits = bytearray((self._bit_size + 7) // 8)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def error_rate(self) -> float:
        return self._error_rate

    @property
    def bit_size(self) -> int:
        return self._bit_size

    @property
    def hash_count(self) -> int:
        return self._hash_count

    def _positions(self, key: str) -> list[int]:
        digest = hashlib.blake2b(key.encode("utf-8"), digest_size=16).digest()
        h1 = int.from_bytes(digest[:8], "little")
        # non-zero probe step
        h2 = int.from_bytes(digest[8:], "little") | 1
        return [(h1 + i * h2) % self._bit_size for i in range(self._hash_count)]

    def _all_set(self, positions: list[int]) -> bool:
        bits = self._bits
        return all(bits[p >> 3] & (1 << (p & 7)) for p in positions)

    def _set_all(self, positions: list[int]) -> None:
        bits = self._bits
        for p in positions:
            bits[p >> 3] |= 1 << (p & 7)

    def add(self, key: str) -> None:
        positions = self._positions(key)
        with self._lock:
            self._set_all(positions)

    def contains(self, key: str) -> bool:
        return self._all_set(self._positions(key))

    __contains__ = contains

    def add_if_absent(self, key: str) -> bool:
        """Add ``key`` and return True unless it was (probably) present already."""
        positions = self._positions(key)
        with self._lock:
            if self._all_set(positions):
                return False
            self._set_all(positions)
            return True
