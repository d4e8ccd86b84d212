"""Percentile benchmark tables and scoring."""

from .engine import BenchmarkEngine, bucket_for
from .tables import (
    BenchmarkTable,
    PositionBenchmark,
    StatBenchmark,
    compute_benchmarks,
    default_benchmarks,
    load_benchmarks,
    parse_benchmarks,
)

__all__ = [
    "BenchmarkEngine",
    "BenchmarkTable",
    "PositionBenchmark",
    "StatBenchmark",
    "bucket_for",
    "compute_benchmarks",
    "default_benchmarks",
    "load_benchmarks",
    "parse_benchmarks",
]
