"""Building blocks for storage benchmarks: logging, CPU utilization, latency
histograms, IO offset generators, tree-file path stores and shared multipart
upload tracking."""

__version__ = "3.0.25"