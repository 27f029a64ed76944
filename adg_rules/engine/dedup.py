"""Bloom filter deduplication shared by every ingestion worker."""

from __future__ import annotations

import hashlib
import math
from threading import Lock

DEFAULT_EXPECTED_INSERTIONS = 1_000_000
DEFAULT_FALSE_POSITIVE_RATE = 0.03


def optimal_bit_size(expected_insertions: int, false_positive_rate: float) -> int:
    return max(8, math.ceil(-expected_insertions * math.log(false_positive_rate) / (math.log(2) ** 2)))


def optimal_hash_count(expected_insertions: int, bit_size: int) -> int:
    return max(1, round(bit_size / expected_insertions * math.log(2)))


class DeduplicationFilter:
    """Fixed-size probabilistic set of seen rule lines.

    ``test_and_add`` checks and records a line as one step under a lock, so two
    workers racing on the same text cannot both be told it is new. A negative
    membership answer is exact; a positive one may be a false positive, which
    permanently drops that line.
    """

    def __init__(
        self,
        expected_insertions: int = DEFAULT_EXPECTED_INSERTIONS,
        false_positive_rate: float = DEFAULT_FALSE_POSITIVE_RATE,
    ) -> None:
        if expected_insertions <= 0:
            raise ValueError("expected_insertions must be > 0")
        if not 0.0 < false_positive_rate < 1.0:
            raise ValueError("false_positive_rate must be between 0 and 1 (exclusive)")
        self.expected_insertions = expected_insertions
        self.false_positive_rate = false_positive_rate
        self.bit_size = optimal_bit_size(expected_insertions, false_positive_rate)
        self.hash_count = optimal_hash_count(expected_insertions, self.bit_size)
        self._bits = bytearray((self.bit_size + 7) // 8)
        self._inserted = 0
        self._lock = Lock()

    def test_and_add(self, line: str) -> bool:
        """Return True and record ``line`` if it was not seen before."""

        positions = self._positions(line)
        with self._lock:
            novel = False
            for position in positions:
                byte, mask = position >> 3, 1 << (position & 7)
                if not self._bits[byte] & mask:
                    novel = True
                    self._bits[byte] |= mask
            if novel:
                self._inserted += 1
            return novel

    def might_contain(self, line: str) -> bool:
        positions = self._positions(line)
        with self._lock:
            return all(self._bits[p >> 3] & (1 << (p & 7)) for p in positions)

    @property
    def approximate_count(self) -> int:
        """Number of lines accepted so far."""

        return self._inserted

    def _positions(self, line: str) -> list[int]:
        digest = hashlib.blake2b(line.encode("utf-8"), digest_size=16).digest()
        h1 = int.from_bytes(digest[:8], "little")
        h2 = int.from_bytes(digest[8:], "little") | 1
        return [(h1 + i * h2) % self.bit_size for i in range(self.hash_count)]


__all__ = [
    "DEFAULT_EXPECTED_INSERTIONS",
    "DEFAULT_FALSE_POSITIVE_RATE",
    "DeduplicationFilter",
    "optimal_bit_size",
    "optimal_hash_count",
]
