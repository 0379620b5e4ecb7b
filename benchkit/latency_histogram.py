"""Log2-bucketed histogram of operation latencies in microseconds."""

from __future__ import annotations

import math
import threading
from typing import Any

__all__ = [
    "LatencyHistogram",
    "BUCKET_FRACTION",
    "MAX_LOG2_MICROSEC",
    "NUM_BUCKETS",
    "KEY_NUM_VALUES",
    "KEY_MICROSEC_TOTAL",
    "KEY_MIN_MICROSEC",
    "KEY_MAX_MICROSEC",
    "KEY_HISTO_LIST",
]

BUCKET_FRACTION = 4  # 1/4 log2 increments between buckets
MAX_LOG2_MICROSEC = 28
NUM_BUCKETS = MAX_LOG2_MICROSEC * BUCKET_FRACTION

_UINT64_MAX = 2**64 - 1

KEY_NUM_VALUES = "LatNumValues"
KEY_MICROSEC_TOTAL = "LatMicroSecTotal"
KEY_MIN_MICROSEC = "LatMinMicroSec"
KEY_MAX_MICROSEC = "LatMaxMicroSec"
KEY_HISTO_LIST = "LatHistoList"


def _bucket_upper_bound(index: int) -> float:
    return 2.0 ** ((index + 1) / BUCKET_FRACTION)


def _format_latency(value: float) -> str:
    return f"{value:.1f}" if value < 10 else f"{value:.0f}"


class LatencyHistogram:
    """Histogram of latencies in microsecond log2 buckets with 1/4 increments.

    Min, max and average are always valid. Histogram and percentile results
    are only meaningful if ``histogram_exceeded()`` is false.
    """

    def __init__(self) -> None:
        self.num_values = 0
        self.total_us = 0
        self.min_us = _UINT64_MAX
        self.max_us = 0
        self.buckets = [0] * NUM_BUCKETS
        self._live_lock = threading.Lock()
        self._live_values = 0
        self._live_total_us = 0

    def add_latency(self, latency_us: int) -> None:
        with self._live_lock:
            self._live_values += 1
            self._live_total_us += latency_us

        self.num_values += 1
        self.total_us += latency_us
        self.min_us = min(self.min_us, latency_us)
        self.max_us = max(self.max_us, latency_us)

        index = int(math.log2(latency_us) * BUCKET_FRACTION) if latency_us else 0
        self.buckets[min(index, NUM_BUCKETS - 1)] += 1

    def take_live(self) -> tuple[int, int]:
        """Return (count, total microseconds) since the last call and reset them."""
        with self._live_lock:
            result = (self._live_values, self._live_total_us)
            self._live_values = 0
            self._live_total_us = 0
        return result

    def average_us(self) -> int:
        return self.total_us // self.num_values if self.num_values else 0

    def reset(self) -> None:
        self.buckets = [0] * NUM_BUCKETS
        self.num_values = 0
        self.total_us = 0
        self.min_us = _UINT64_MAX
        self.max_us = 0

    def histogram_str(self) -> str:
        if self.histogram_exceeded():
            return "Histogram size exceeded"
        return ", ".join(
            f"{_format_latency(_bucket_upper_bound(index))}: {count}"
            for index, count in enumerate(self.buckets)
            if count
        )

    def percentile(self, percentage: float) -> float:
        """Upper latency bound in microseconds for the given percentage of values."""
        if not self.num_values:
            return 0.0
        so_far = 0
        for index, count in enumerate(self.buckets):
            so_far += count
            if so_far / self.num_values >= percentage / 100:
                return _bucket_upper_bound(index)
        return 0.0

    def percentile_str(self, percentage: float) -> str:
        return _format_latency(self.percentile(percentage))

    def histogram_exceeded(self) -> bool:
        return bool(self.buckets[-1])

    def __iadd__(self, other: LatencyHistogram) -> LatencyHistogram:
        self.buckets = [a + b for a, b in zip(self.buckets, other.buckets)]
        self.num_values += other.num_values
        self.total_us += other.total_us
        self.min_us = min(self.min_us, other.min_us)
        self.max_us = max(self.max_us, other.max_us)
        return self

    def to_dict(self, prefix: str = "") -> dict[str, Any]:
        return {
            prefix + KEY_NUM_VALUES: self.num_values,
            prefix + KEY_MICROSEC_TOTAL: self.total_us,
            prefix + KEY_MIN_MICROSEC: self.min_us,
            prefix + KEY_MAX_MICROSEC: self.max_us,
            prefix + KEY_HISTO_LIST: list(self.buckets),
        }

    def from_dict(self, tree: dict[str, Any], prefix: str = "") -> None:
        """Load values from a mapping; raises KeyError if a field is missing."""
        self.num_values = int(tree[prefix + KEY_NUM_VALUES])
        self.total_us = int(tree[prefix + KEY_MICROSEC_TOTAL])
        self.min_us = int(tree[prefix + KEY_MIN_MICROSEC])
        self.max_us = int(tree[prefix + KEY_MAX_MICROSEC])
        for index, count in enumerate(tree[prefix + KEY_HISTO_LIST]):
            self.buckets[index] = int(count)