"""Offset generators for sequential, reverse, random and strided block IO."""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from collections.abc import Iterator

__all__ = [
    "FULL_COVERAGE_PRIME",
    "RandomRange",
    "OffsetGenerator",
    "SequentialOffsets",
    "ReverseSequentialOffsets",
    "RandomOffsets",
    "RandomAlignedOffsets",
    "FullCoverageOffsets",
    "StridedOffsets",
]

FULL_COVERAGE_PRIME = 2147483647


class RandomRange:
    """Uniform random integers in the inclusive range ``[low, high]``."""

    def __init__(self, low: int, high: int, rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self.reset(low, high)

    def reset(self, low: int, high: int) -> None:
        if high < low:
            raise ValueError(f"Invalid random range: low={low}, high={high}")
        self.low = low
        self.high = high

    def next(self) -> int:
        return self._rng.randint(self.low, self.high)


class OffsetGenerator(ABC):
    """Common interface of all offset generators.

    Iterating a generator yields ``(offset, size)`` pairs and marks each block
    as submitted, until no bytes are left.
    """

    def __init__(self, num_bytes_total: int, block_size: int) -> None:
        self.block_size = block_size
        self.num_bytes_total = num_bytes_total
        self.num_bytes_left = num_bytes_total

    @abstractmethod
    def reset(self, length: int | None = None, offset: int | None = None) -> None:
        """Reset for reuse; with ``length`` and ``offset`` also set a new range."""

    @abstractmethod
    def next_offset(self) -> int:
        """Offset of the next block to submit."""

    def next_block_size(self) -> int:
        """Size of the next block to submit."""
        return min(self.num_bytes_left, self.block_size)

    def add_bytes_submitted(self, num_bytes: int) -> None:
        self.num_bytes_left -= num_bytes

    def __iter__(self) -> Iterator[tuple[int, int]]:
        while self.num_bytes_left > 0:
            size = self.next_block_size()
            if size <= 0:
                return
            offset = self.next_offset()
            yield offset, size
            self.add_bytes_submitted(size)


class SequentialOffsets(OffsetGenerator):
    """Simple ascending sequential offsets."""

    def __init__(self, length: int, offset: int, block_size: int) -> None:
        super().__init__(length, block_size)
        self.start_offset = offset
        self.current_offset = offset

    def reset(self, length: int | None = None, offset: int | None = None) -> None:
        if length is not None and offset is not None:
            self.num_bytes_total = length
            self.start_offset = offset
        self.num_bytes_left = self.num_bytes_total
        self.current_offset = self.start_offset

    def next_offset(self) -> int:
        return self.current_offset

    def add_bytes_submitted(self, num_bytes: int) -> None:
        self.num_bytes_left -= num_bytes
        self.current_offset += num_bytes


class ReverseSequentialOffsets(OffsetGenerator):
    """Descending sequential offsets, starting with the (possibly partial) last block."""

    def __init__(self, length: int, offset: int, block_size: int) -> None:
        super().__init__(length, block_size)
        self.start_offset = offset
        self.current_offset = offset
        self.reset()

    def reset(self, length: int | None = None, offset: int | None = None) -> None:
        if length is not None and offset is not None:
            self.num_bytes_total = length
            self.start_offset = offset
            self.current_offset = offset

        self.num_bytes_left = self.num_bytes_total

        if not self.num_bytes_total:
            self.current_offset = 0
            return

        remainder = self.num_bytes_total % self.block_size
        last_block_len = remainder if remainder else self.block_size
        self.current_offset = self.start_offset + self.num_bytes_total - last_block_len

    def next_offset(self) -> int:
        return self.current_offset

    def next_block_size(self) -> int:
        end = self.start_offset + self.num_bytes_total
        return min(end - self.current_offset, self.block_size)

    def add_bytes_submitted(self, num_bytes: int) -> None:
        self.num_bytes_left -= num_bytes
        self.current_offset -= self.block_size


class RandomOffsets(OffsetGenerator):
    """Random unaligned offsets within ``[offset, offset + length)``."""

    def __init__(
        self,
        num_bytes_total: int,
        rng: random.Random | None,
        length: int,
        offset: int,
        block_size: int,
    ) -> None:
        super().__init__(num_bytes_total, block_size)
        # usually block_size, but custom tree slices can be smaller than a block
        span = min(block_size, length)
        self._range = RandomRange(offset, offset + length - span, rng)

    def reset(self, length: int | None = None, offset: int | None = None) -> None:
        if length is not None and offset is not None:
            span = min(self.block_size, length)
            self.num_bytes_total = length
            self._range.reset(offset, offset + length - span)
        self.num_bytes_left = self.num_bytes_total

    def next_offset(self) -> int:
        return self._range.next()


def _aligned_max_index(length: int, block_size: int) -> int:
    span = min(block_size, length)
    return (length - span) // span if span else 0


class RandomAlignedOffsets(OffsetGenerator):
    """Random offsets aligned to the block size within the given range.

    The last IO may be a partial block.
    """

    def __init__(
        self,
        num_bytes_total: int,
        rng: random.Random | None,
        length: int,
        offset: int,
        block_size: int,
    ) -> None:
        super().__init__(num_bytes_total, block_size)
        self.offset = offset
        self._range = RandomRange(0, _aligned_max_index(length, block_size), rng)

    def reset(self, length: int | None = None, offset: int | None = None) -> None:
        if length is not None and offset is not None:
            self.num_bytes_total = length
            self.offset = offset
            self._range.reset(0, _aligned_max_index(length, self.block_size))
        self.num_bytes_left = self.num_bytes_total

    def next_offset(self) -> int:
        return self.offset + self._range.next() * self.block_size


class FullCoverageOffsets(OffsetGenerator):
    """Pseudo-random block-aligned offsets that hit every full block in the range.

    Sequential virtual block indices are multiplied by a large prime modulo the
    number of blocks, which yields a permutation of all blocks.
    """

    def __init__(
        self, num_bytes_total: int, length: int, offset: int, block_size: int
    ) -> None:
        super().__init__(num_bytes_total, block_size)
        self.range_offset = offset
        self.range_len = length
        self._init_virtual_index()

    def _init_virtual_index(self) -> None:
        self._virtual_index = 0
        if not self.block_size:  # empty files
            self.num_blocks_in_range = 0
            return
        self.num_blocks_in_range = max(self.range_len // self.block_size, 1)

    def reset(self, length: int | None = None, offset: int | None = None) -> None:
        if length is not None and offset is not None:
            self.num_bytes_total = length
            self.range_offset = offset
            self.range_len = length
        self.num_bytes_left = self.num_bytes_total
        self._init_virtual_index()

    def next_offset(self) -> int:
        block_index = (
            self._virtual_index * FULL_COVERAGE_PRIME
        ) % self.num_blocks_in_range
        self._virtual_index += 1
        return self.range_offset + block_index * self.block_size


class StridedOffsets(OffsetGenerator):
    """Sequential offsets strided by the number of dataset threads."""

    def __init__(
        self, length: int, offset: int, block_size: int, num_threads: int
    ) -> None:
        super().__init__(length, block_size)
        self.start_offset = offset
        self.current_offset = offset
        self.num_threads = num_threads

    def reset(self, length: int | None = None, offset: int | None = None) -> None:
        if length is not None and offset is not None:
            self.num_bytes_total = length
            self.start_offset = offset
        self.num_bytes_left = self.num_bytes_total
        self.current_offset = self.start_offset

    def next_offset(self) -> int:
        return self.current_offset

    def add_bytes_submitted(self, num_bytes: int) -> None:
        self.num_bytes_left -= num_bytes
        self.current_offset += self.block_size * self.num_threads