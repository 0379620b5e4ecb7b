[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "benchkit"
version = "3.0.25"
description = "Building blocks for storage benchmarks: logging, CPU utilization, latency histograms, IO offset generators, tree-file path stores and shared multipart upload tracking"
requires-python = ">=3.10"
dependencies = []
keywords = ["benchmark", "storage", "latency", "histogram", "io", "s3", "multipart"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Benchmark",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["benchkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
