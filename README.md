# benchkit

Building blocks for storage benchmarking tools. The package has no dependencies beyond
the Python standard library (Python 3.10 or later).

## Modules

- `benchkit.logger`: level-filtered logging with a thread-safe error history.
  `LogLevel` has `NORMAL`, `VERBOSE` and `DEBUG`. `log(level, msg)` writes to stdout when
  the level passes the filter set by `set_filter_level()`; above `NORMAL` filtering, lines
  get a `HH:MM:SS.mmm` timestamp (see `timestamp()`). `log_error(msg, level, to_console,
  prefix)` adds a timestamped, `ERROR: `-prefixed message to the history and, optionally,
  to stderr. `get_err_history()`, `clear_err_history()` and `enable_err_history()` manage
  the history.
- `benchkit.cpu_util`: `CPUUtil(stat_path="/proc/stat")`. Each `update()` reads the `cpu`
  line of the stat file (raising `RuntimeError` if fewer than four values are found), and
  `percent()` gives the CPU utilization between the last two updates, counting idle and
  iowait time as idle.
- `benchkit.latency_histogram`: `LatencyHistogram` stores microsecond latencies in log2
  buckets with quarter steps (112 buckets). It tracks count, total, min and max, and gives
  `average_us()`, `percentile()`, `percentile_str()` and `histogram_str()`.
  `histogram_exceeded()` tells whether the last bucket was hit. `take_live()` returns and
  resets the count and total since the previous call. Histograms merge with `+=` and
  convert with `to_dict(prefix)` / `from_dict(tree, prefix)`.
- `benchkit.offset_generator`: block offset generators sharing the `OffsetGenerator`
  interface (`next_offset()`, `next_block_size()`, `add_bytes_submitted()`, `reset()`):
  `SequentialOffsets`, `ReverseSequentialOffsets`, `StridedOffsets`, `RandomOffsets`,
  `RandomAlignedOffsets` and `FullCoverageOffsets` (a prime-multiplier permutation that
  hits every full block of the range). Iterating a generator yields `(offset, size)` pairs
  until all bytes are submitted. `RandomRange` draws integers from an inclusive range with
  an optional `random.Random`.
- `benchkit.path_store`: `PathStore(block_size)` loads directories
  (`load_dirs_from_file`) and files (`load_files_from_file`, with size limits and optional
  rounding up) from tree files, sorts them by path length or file size, shuffles them, and
  splits them among worker threads, either as whole files
  (`worker_sublist_non_shared`) or as contiguous block ranges
  (`worker_sublist_shared`). Errors are raised as `PathStoreError`. `CustomTree` groups a
  directory store and shared and non-shared file stores.
- `benchkit.s3_upload_store`: `S3UploadStore` tracks multipart uploads that several
  workers share. `get_multipart_upload_id()` returns an existing upload ID or calls the
  given `create_upload(bucket, object_name)` once to get one (failures become
  `UploadError`). `add_completed_part()` returns all parts once the object's total size is
  reached, and `pop_unfinished_upload()` hands out leftover uploads to abort.

## Example

```python
from benchkit.latency_histogram import LatencyHistogram
from benchkit.offset_generator import SequentialOffsets

hist = LatencyHistogram()
for latency_us in (12, 40, 95, 300):
    hist.add_latency(latency_us)
print(hist.average_us(), hist.percentile_str(99))
print(hist.histogram_str())

for offset, size in SequentialOffsets(length=10_000, offset=0, block_size=4096):
    print(offset, size)
```

## Tree files

A tree file lists one entry per line; other lines are ignored:

```
d some/dir
f 4096 some/dir/file
```

If the header comments contain the line `# encoding=base64`, the paths are
base64-encoded (`has_base64_header(path)` checks this). `generate_file_line(path,
file_size)` writes a file line.

## What the package does not do

benchkit is a library of components only. It has no command-line benchmark tool, no
worker threads that perform IO, no HTTP service for remote coordination, and no S3
client: `S3UploadStore` only keeps upload state and leaves all server requests to the
caller's callable.

## Tests

```
pip install -e .[test]
pytest
```