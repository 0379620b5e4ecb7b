"""CPU utilization between two samples of the kernel's cpu time counters."""

from __future__ import annotations

from itertools import takewhile
from pathlib import Path

__all__ = ["CPUUtil"]

_IDX_CPU_IDLE = 3
_IDX_IO_WAIT = 4


class CPUUtil:
    """Measure CPU utilization for the interval between two ``update()`` calls.

    Utilization is everything in the cpu line of the stat file except idle and
    iowait time.
    """

    def __init__(self, stat_path: str | Path = "/proc/stat") -> None:
        self.stat_path = Path(stat_path)
        self._last_idle = 0
        self._last_total = 0
        self._current_idle = 0
        self._current_total = 0

    def _read_times(self) -> list[int]:
        try:
            text = self.stat_path.read_text()
        except OSError:
            return []
        tokens = text.split()[1:]  # skip the "cpu" label
        return [int(tok) for tok in takewhile(str.isdigit, tokens)]

    def update(self) -> None:
        """Take a new sample; call at the start and end of the interval.

        Raises RuntimeError if not enough values could be read.
        """
        times = self._read_times()

        self._last_idle = self._current_idle
        self._last_total = self._current_total

        if len(times) <= _IDX_CPU_IDLE:
            raise RuntimeError(
                f"Unable to read CPU usage values from file: {self.stat_path}"
            )

        idle = times[_IDX_CPU_IDLE]
        if len(times) > _IDX_IO_WAIT:
            idle += times[_IDX_IO_WAIT]

        self._current_idle = idle
        self._current_total = sum(times)

    def percent(self) -> float:
        """CPU utilization percent in the interval between the last two updates."""
        idle_delta = self._current_idle - self._last_idle
        total_delta = self._current_total - self._last_total
        if not total_delta:
            return 0.0
        return 100.0 * (1.0 - idle_delta / total_delta)