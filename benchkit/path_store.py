"""Lists of directory and file paths loaded from tree files.

A tree file holds one entry per line: ``d <path>`` for a directory and
``f <size_in_bytes> <path>`` for a file. Other lines are ignored. If the
header comment contains ``# encoding=base64``, paths are base64 encoded.
"""

from __future__ import annotations

import base64
import random
import re
from dataclasses import dataclass, field, replace
from pathlib import Path

from benchkit.logger import LogLevel, log

__all__ = [
    "DIR_LINE_PREFIX",
    "FILE_LINE_PREFIX",
    "COMMENT_LINE_CHAR",
    "BASE64_ENCODING_HEADER",
    "PathStoreError",
    "PathStoreElem",
    "PathStore",
    "CustomTree",
    "generate_file_line",
    "has_base64_header",
]

DIR_LINE_PREFIX = "d"
FILE_LINE_PREFIX = "f"
COMMENT_LINE_CHAR = "#"
BASE64_ENCODING_HEADER = "# encoding=base64"

_ARG_TREEROUNDUP = "treeroundup"
_ARG_NODIRECTIOCHECK = "nodiocheck"
_UINT64_MAX = 2**64 - 1
_SIZE_AND_PATH = re.compile(r"\s*(\d+)(.*)", re.DOTALL)


class PathStoreError(Exception):
    """Raised on unreadable or malformed tree files and failed checks."""


@dataclass
class PathStoreElem:
    """A path with its total size and the byte range to read or write."""

    path: str
    total_len: int = 0
    range_start: int = 0
    range_len: int = 0


def generate_file_line(path: str, file_size: int) -> str:
    """Tree file line for a file, including the trailing newline."""
    return f"{FILE_LINE_PREFIX} {file_size} {path}\n"


def _open_tree_file(path: str | Path):
    try:
        return open(path, encoding="utf-8", errors="surrogateescape", newline="")
    except OSError as err:
        raise PathStoreError(f"Opening input file failed: {path}") from err


def _lines(path: str | Path):
    with _open_tree_file(path) as stream:
        for line in stream:
            yield line.rstrip("\n")


def has_base64_header(path: str | Path) -> bool:
    """Whether the header comment of the tree file selects base64 paths."""
    for line in _lines(path):
        if line == BASE64_ENCODING_HEADER:
            return True
        if line and not line.startswith(COMMENT_LINE_CHAR):
            break  # end of header
    return False


def _decode_path(encoded: str) -> str:
    return base64.b64decode(encoded).decode("utf-8", errors="surrogateescape")


def _split_prefix(line: str) -> tuple[str, str]:
    parts = line.split(None, 1)
    if not parts:
        return "", ""
    return parts[0], parts[1] if len(parts) > 1 else ""


def _num_blocks(size: int, block_size: int) -> int:
    if not block_size:
        return 0
    return -(-size // block_size)


class PathStore:
    """An ordered list of paths with block and byte totals.

    The block size must be set before any paths are added.
    """

    def __init__(self, block_size: int = 0) -> None:
        self._block_size = block_size
        self.num_blocks_total = 0
        self.num_bytes_total = 0
        self.paths: list[PathStoreElem] = []

    @property
    def block_size(self) -> int:
        return self._block_size

    @block_size.setter
    def block_size(self, value: int) -> None:
        if self.paths:
            raise PathStoreError("PathStore block size setter called on non-empty store.")
        self._block_size = value

    @property
    def num_paths(self) -> int:
        return len(self.paths)

    def __len__(self) -> int:
        return len(self.paths)

    def clear(self) -> None:
        self._block_size = 0
        self.num_blocks_total = 0
        self.num_bytes_total = 0
        self.paths.clear()

    def load_dirs_from_file(self, path: str | Path) -> None:
        """Add all directory lines of a tree file."""
        is_base64 = has_base64_header(path)

        for line_num, line in enumerate(_lines(path)):
            prefix, rest = _split_prefix(line)
            if prefix != DIR_LINE_PREFIX:
                continue

            dir_path = rest.strip()
            if is_base64:
                dir_path = _decode_path(dir_path)

            if not dir_path:
                raise PathStoreError(
                    "Encountered invalid directory line without path in input file. "
                    f"File: {path}; Line number: {line_num}"
                )

            self.paths.append(PathStoreElem(dir_path))

    def load_files_from_file(
        self,
        path: str | Path,
        min_file_size: int = 0,
        max_file_size: int = _UINT64_MAX,
        round_up_size: int = 0,
    ) -> None:
        """Add file lines of a tree file whose size lies within the given range.

        With a non-zero ``round_up_size``, sizes are rounded up to a multiple of it
        before the range check.
        """
        is_base64 = has_base64_header(path)

        for line_num, line in enumerate(_lines(path)):
            prefix, rest = _split_prefix(line)
            if prefix != FILE_LINE_PREFIX:
                continue

            match = _SIZE_AND_PATH.match(rest)
            if not match or int(match.group(1)) > _UINT64_MAX:
                raise PathStoreError(
                    "Encountered invalid file line without size in input file. "
                    f"File: {path}; Line number: {line_num}"
                )

            file_size = int(match.group(1))
            if round_up_size and file_size % round_up_size:
                file_size += round_up_size - file_size % round_up_size

            if file_size < min_file_size or file_size > max_file_size:
                continue

            file_path = match.group(2).strip()
            if is_base64:
                file_path = _decode_path(file_path)

            if not file_path:
                raise PathStoreError(
                    "Encountered invalid file line without path in input file. "
                    f"File: {path}; Line number: {line_num}"
                )

            self.paths.append(
                PathStoreElem(file_path, total_len=file_size, range_start=0, range_len=file_size)
            )
            self.num_blocks_total += _num_blocks(file_size, self._block_size)
            self.num_bytes_total += file_size

    def sort_by_path_len(self) -> None:
        """Sort by path length, then alphabetically, so parents precede subdirs."""
        self.paths.sort(key=lambda elem: (len(elem.path), elem.path))

    def sort_by_file_size(self) -> None:
        """Sort by file size, then alphabetically, for balance among workers."""
        self.paths.sort(key=lambda elem: (elem.total_len, elem.path))

    def random_shuffle(self) -> None:
        random.shuffle(self.paths)

    def _new_store(self) -> PathStore:
        return PathStore(self._block_size)

    def worker_sublist_non_shared(
        self, worker_rank: int, num_threads: int, throw_on_file_smaller_block: bool = False
    ) -> PathStore:
        """Every ``num_threads``-th whole path, starting at ``worker_rank``."""
        if num_threads < 1:
            raise ValueError(f"Invalid number of threads: {num_threads}")

        result = self._new_store()

        for elem in self.paths[worker_rank::num_threads]:
            file_size = elem.total_len

            if throw_on_file_smaller_block and file_size < self._block_size:
                raise PathStoreError(
                    "Found file that is smaller than block size. Consider using "
                    f'"--{_ARG_TREEROUNDUP}". '
                    f'("--{_ARG_NODIRECTIOCHECK}" disables this check.) '
                    f"File: {elem.path}; FileSize: {file_size}; "
                    f"BlockSize: {self._block_size}"
                )

            result.paths.append(replace(elem))
            result.num_blocks_total += _num_blocks(file_size, self._block_size)
            result.num_bytes_total += file_size

        return result

    def worker_sublist_shared(
        self, worker_rank: int, num_threads: int, throw_on_slice_smaller_block: bool = False
    ) -> PathStore:
        """This worker's contiguous share of all blocks, as file ranges.

        Assumes a global list where every range starts at zero, covers the whole
        file, and no file is empty. The last worker takes the remainder blocks.
        """
        result = self._new_store()
        if not self.paths:
            return result

        block_size = self._block_size
        standard_num_blocks = self.num_blocks_total // num_threads

        this_num_blocks = standard_num_blocks
        if worker_rank == num_threads - 1 and self.num_blocks_total % num_threads:
            this_num_blocks = self.num_blocks_total - standard_num_blocks * (num_threads - 1)

        start_block = worker_rank * standard_num_blocks
        end_block = start_block + this_num_blocks

        log(
            LogLevel.DEBUG,
            f"get sublist shared - workerRank: {worker_rank}; "
            f"dataSetThreads: {num_threads}; "
            f"blocksTotal: {self.num_blocks_total}; "
            f"standardWorkerNumBlocks: {standard_num_blocks}; "
            f"thisWorkerNumBlocks: {this_num_blocks}; "
            f"startBlock: {start_block}; endBlock: {end_block}; \n",
        )

        if not this_num_blocks:
            return result

        current_block = 0
        blocks_left = this_num_blocks

        for elem in self.paths:
            if current_block >= end_block:
                break

            file_size = elem.total_len
            num_file_blocks = -(-file_size // block_size)
            first_file_block = current_block
            last_file_block = first_file_block + num_file_blocks - 1

            if last_file_block < start_block:
                current_block += num_file_blocks
                continue

            if start_block <= first_file_block:
                range_start = 0
                remaining_blocks = num_file_blocks
            else:
                inner_offset = start_block - first_file_block
                range_start = inner_offset * block_size
                remaining_blocks = num_file_blocks - inner_offset

            if blocks_left < remaining_blocks:
                range_len = blocks_left * block_size
                blocks_left = 0
            else:
                range_len = file_size - range_start
                blocks_left -= remaining_blocks

            if throw_on_slice_smaller_block and range_len < block_size:
                raise PathStoreError(
                    "Found file slice that is smaller than block size. Consider using "
                    f'"--{_ARG_TREEROUNDUP}". '
                    f'("--{_ARG_NODIRECTIOCHECK}" disables this check.) '
                    f"File: {elem.path}; RangeStart: {range_start}; "
                    f"RangeLength: {range_len}; BlockSize: {block_size}"
                )

            result.paths.append(replace(elem, range_start=range_start, range_len=range_len))
            result.num_bytes_total += range_len

            current_block += num_file_blocks

        result.num_blocks_total += this_num_blocks
        return result


@dataclass
class CustomTree:
    """Directory and file paths for custom tree mode."""

    dirs: PathStore = field(default_factory=PathStore)
    files_non_shared: PathStore = field(default_factory=PathStore)
    files_shared: PathStore = field(default_factory=PathStore)