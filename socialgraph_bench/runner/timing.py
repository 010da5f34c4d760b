r"""
Wall-clock measurement of backend calls.

Both engines are timed the same way: one zero-argument operation, one
perf_counter_ns reading on each side of it, reported in milliseconds.

    from socialgraph_bench.runner.timing import measure

    timed = measure(lambda: backend.query_product_viral_count(5, depth=2))
    print(timed.result, timed.elapsed_ms)
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

__all__ = ["Measurement", "measure", "sample_ms"]

R = TypeVar("R")


@dataclass(frozen=True, slots=True)
class Measurement(Generic[R]):
    """What an operation returned and how long it took."""

    result: R
    elapsed_ms: float


def measure(operation: Callable[[], R]) -> Measurement[R]:
    """Call operation once and time it.

    A failing operation raises through; nothing is measured for it.
    """
    start = time.perf_counter_ns()
    result = operation()
    return Measurement(result=result, elapsed_ms=(time.perf_counter_ns() - start) / 1_000_000)


def sample_ms(operation: Callable[[], Any], iterations: int) -> list[float]:
    """Elapsed milliseconds of iterations back-to-back calls."""
    return [measure(operation).elapsed_ms for _ in range(iterations)]
