r"""
Benchmark runner and harness.

Coordinates dataset injection, single timed queries, the depth x query
benchmark matrix and parity checks across the two backends.

    from socialgraph_bench.runner import BenchmarkHarness

    harness = BenchmarkHarness({"relational": duck, "graph": neo})
    run = harness.run_benchmark(user_id=1, product_id=5, depths=[1, 2, 3])
"""

from socialgraph_bench.runner.harness import (
    BenchmarkHarness,
    BenchmarkRun,
    ParityMismatch,
    ParityReport,
    query_call,
    resolve_targets,
)
from socialgraph_bench.runner.timing import Measurement, measure, sample_ms

__all__ = [
    "BenchmarkHarness",
    "BenchmarkRun",
    "ParityMismatch",
    "ParityReport",
    "Measurement",
    "measure",
    "query_call",
    "resolve_targets",
    "sample_ms",
]
