r"""
Benchmark harness coordinating both backends.

Loads one generated dataset into the relational and graph backends
(concurrently when both are targeted), runs single timed queries, the
depth x query benchmark matrix and a cross-backend parity check.

    from socialgraph_bench.runner import BenchmarkHarness

    harness = BenchmarkHarness({"relational": duck, "graph": neo})
    harness.inject(dataset, "both")
    run = harness.run_benchmark(user_id=1, product_id=5, depths=[1, 2, 3])
"""

import logging
import statistics
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from typing import Any

from socialgraph_bench.config import DEFAULT_DEPTHS
from socialgraph_bench.datasets import SocialCommerceGenerator
from socialgraph_bench.errors import ValidationError
from socialgraph_bench.protocols import DatasetGenerator, StorageBackend
from socialgraph_bench.runner.timing import measure, sample_ms
from socialgraph_bench.types import (
    BackendKind,
    BenchmarkCell,
    Dataset,
    FollowerQueryResult,
    GenerationConfig,
    InjectionReport,
    QueryId,
    QueryReport,
    ViralCountResult,
)

__all__ = [
    "BenchmarkHarness",
    "BenchmarkRun",
    "ParityMismatch",
    "ParityReport",
    "ProgressCallback",
    "query_call",
    "resolve_targets",
]

log = logging.getLogger(__name__)

BOTH = "both"

ProgressCallback = Callable[[str, str, str], None]
QueryResult = FollowerQueryResult | ViralCountResult


def resolve_targets(database: str | BackendKind | Iterable[str | BackendKind]) -> list[BackendKind]:
    """Resolve "relational", "graph", "both" or an iterable of keys."""
    if isinstance(database, str):
        if database == BOTH:
            return [BackendKind.RELATIONAL, BackendKind.GRAPH]
        return [BackendKind.parse(database)]
    targets: list[BackendKind] = []
    for key in database:
        kind = BackendKind.parse(key)
        if kind not in targets:
            targets.append(kind)
    if not targets:
        msg = "At least one database is required"
        raise ValidationError(msg)
    return targets


def query_call(
    backend: StorageBackend,
    query_id: int | QueryId,
    *,
    user_id: int | None = None,
    product_id: int | None = None,
    depth: float,
) -> Callable[[], QueryResult]:
    """Bind one query shape to a backend, checking its required arguments.

    Returns a zero-argument callable so that timing covers only the
    backend round-trip.

    Raises:
        ValidationError: If the query id is unknown or a required id is missing.
    """
    qid = QueryId.parse(query_id)
    if qid == QueryId.PRODUCTS_BY_FOLLOWERS:
        if user_id is None:
            msg = "userId is required for query 1"
            raise ValidationError(msg)
        return partial(backend.query_products_by_followers, user_id, depth=depth)
    if qid == QueryId.PRODUCT_BY_FOLLOWERS:
        if user_id is None or product_id is None:
            msg = "userId and productId are required for query 2"
            raise ValidationError(msg)
        return partial(backend.query_product_by_followers, user_id, product_id, depth=depth)
    if product_id is None:
        msg = "productId is required for query 3"
        raise ValidationError(msg)
    return partial(backend.query_product_viral_count, product_id, depth=depth)


@dataclass
class BenchmarkRun:
    """Results from one benchmark matrix run.

    Attributes:
        cells: One cell per (depth, query) pair, in execution order.
        started_at: Timestamp when run started.
        completed_at: Timestamp when run completed.
        user_id: Seed user for Q1/Q2.
        product_id: Product for Q2/Q3.
    """

    cells: list[BenchmarkCell] = field(default_factory=list)
    started_at: float = 0.0
    completed_at: float = 0.0
    user_id: int = 0
    product_id: int = 0

    @property
    def duration_seconds(self) -> float:
        """Total duration in seconds."""
        return self.completed_at - self.started_at

    @property
    def success_count(self) -> int:
        """Number of cells where both backends answered."""
        return sum(1 for c in self.cells if c.ok)

    @property
    def failure_count(self) -> int:
        """Number of cells with at least one failed backend call."""
        return sum(1 for c in self.cells if not c.ok)

    def to_dict(self) -> list[dict[str, Any]]:
        return [c.to_dict() for c in self.cells]


@dataclass(frozen=True, slots=True)
class ParityMismatch:
    """A query whose results differ between backends."""

    query_id: QueryId
    depth: int
    relational: Any
    graph: Any


@dataclass
class ParityReport:
    """Outcome of comparing both backends on the same parameters."""

    checked: int = 0
    mismatches: list[ParityMismatch] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.mismatches


class BenchmarkHarness:
    """Drives the relational and graph backends with identical inputs."""

    def __init__(
        self,
        backends: Mapping[str | BackendKind, StorageBackend],
        *,
        generator: DatasetGenerator | None = None,
        batch_size: int | None = None,
    ) -> None:
        self._backends = {BackendKind.parse(k): b for k, b in backends.items()}
        self._generator = generator or SocialCommerceGenerator()
        self._batch_size = batch_size
        self._progress_callback: ProgressCallback | None = None

    @property
    def backends(self) -> dict[BackendKind, StorageBackend]:
        return dict(self._backends)

    def set_progress_callback(self, callback: ProgressCallback) -> None:
        """Set callback for progress updates: (database, step, status)."""
        self._progress_callback = callback

    def _progress(self, database: str, step: str, status: str) -> None:
        if self._progress_callback:
            self._progress_callback(database, step, status)

    def backend(self, kind: str | BackendKind) -> StorageBackend:
        """Configured backend for a key.

        Raises:
            ValidationError: If the key is unknown or not configured.
        """
        key = BackendKind.parse(kind)
        if key not in self._backends:
            msg = f"Database '{key.value}' is not configured"
            raise ValidationError(msg)
        return self._backends[key]

    def inject(
        self,
        dataset: Dataset | GenerationConfig,
        database: str | BackendKind | Iterable[str | BackendKind] = BOTH,
    ) -> list[InjectionReport]:
        """Load one dataset into one or both backends.

        A GenerationConfig is turned into a single Dataset first, so every
        target receives the same rows.

        With two targets the loads run concurrently, each on its own
        worker thread; the dataset is only read. Both loads are allowed to
        finish before the first failure (if any) is re-raised.

        Returns:
            One report per target, in target order.
        """
        targets = resolve_targets(database)
        backends = [(kind, self.backend(kind)) for kind in targets]
        if isinstance(dataset, GenerationConfig):
            dataset = self._generator.generate(dataset)
        log.info("Injecting %s into %s", dataset.counts(), ", ".join(k.value for k in targets))

        reports: list[InjectionReport] = []
        errors: list[Exception] = []

        def load_all() -> None:
            with ThreadPoolExecutor(max_workers=len(backends)) as executor:
                futures = []
                for kind, backend in backends:
                    futures.append((kind, executor.submit(backend.load_dataset, dataset, batch_size=self._batch_size)))
                    self._progress(kind.value, "inject", "running")
                for kind, future in futures:
                    try:
                        reports.append(future.result())
                        self._progress(kind.value, "inject", "success")
                    except Exception as e:
                        log.error("Injection into %s failed: %s", kind.value, e)
                        self._progress(kind.value, "inject", "failed")
                        errors.append(e)

        timed = measure(load_all)
        log.info("Injection finished in %.2f ms", timed.elapsed_ms)
        if errors:
            raise errors[0]
        return reports

    def run_query(
        self,
        database: str | BackendKind,
        query_id: int | QueryId,
        *,
        user_id: int | None = None,
        product_id: int | None = None,
        depth: float,
    ) -> QueryReport:
        """Run one timed query against one backend."""
        backend = self.backend(database)
        call = query_call(backend, query_id, user_id=user_id, product_id=product_id, depth=depth)
        timed = measure(call)
        log.debug("%s q%s depth=%s took %.2f ms", backend.kind.value, query_id, depth, timed.elapsed_ms)
        return QueryReport(
            database=backend.kind,
            query_id=QueryId.parse(query_id),
            execution_time_ms=timed.elapsed_ms,
            result=timed.result,
        )

    def _measure_cell(
        self,
        backend: StorageBackend,
        call: Callable[[], QueryResult],
        *,
        label: str,
        iterations: int,
        warmup: int,
    ) -> tuple[float | None, str | None, list[float]]:
        """Time one backend for one cell; failures are returned, not raised."""
        try:
            for _ in range(warmup):
                call()
            samples = sample_ms(call, iterations)
        except Exception as e:
            log.warning("%s %s failed: %s", backend.kind.value, label, e)
            self._progress(backend.kind.value, label, "failed")
            return None, str(e) or e.__class__.__name__, []
        self._progress(backend.kind.value, label, "success")
        return statistics.mean(samples), None, samples

    def run_benchmark(
        self,
        user_id: int,
        product_id: int,
        depths: Sequence[int] = DEFAULT_DEPTHS,
        *,
        iterations: int = 1,
        warmup: int = 0,
    ) -> BenchmarkRun:
        """Time every query shape at every depth on both backends.

        Each backend call is measured on its own, back-to-back for the same
        cell. A failing call marks only its own (query, depth, backend)
        entry; the rest of the matrix still runs.

        Args:
            user_id: Seed user for Q1/Q2.
            product_id: Product for Q2/Q3.
            depths: Depths to benchmark.
            iterations: Timed calls per backend and cell; the cell keeps the mean.
            warmup: Untimed calls per backend and cell before measuring.
        """
        if iterations < 1:
            msg = f"iterations must be >= 1, got {iterations}"
            raise ValidationError(msg)
        if warmup < 0:
            msg = f"warmup must be >= 0, got {warmup}"
            raise ValidationError(msg)

        relational = self.backend(BackendKind.RELATIONAL)
        graph = self.backend(BackendKind.GRAPH)

        run = BenchmarkRun(user_id=user_id, product_id=product_id)
        run.started_at = time.time()

        for depth in depths:
            for query_id in QueryId:
                label = f"q{int(query_id)}@{depth}"
                rel_call = query_call(relational, query_id, user_id=user_id, product_id=product_id, depth=depth)
                graph_call = query_call(graph, query_id, user_id=user_id, product_id=product_id, depth=depth)

                rel_ms, rel_error, rel_samples = self._measure_cell(
                    relational, rel_call, label=label, iterations=iterations, warmup=warmup
                )
                graph_ms, graph_error, graph_samples = self._measure_cell(
                    graph, graph_call, label=label, iterations=iterations, warmup=warmup
                )

                run.cells.append(
                    BenchmarkCell(
                        query_id=query_id,
                        depth=depth,
                        relational_ms=rel_ms,
                        graph_ms=graph_ms,
                        relational_error=rel_error,
                        graph_error=graph_error,
                        samples={
                            BackendKind.RELATIONAL.value: rel_samples,
                            BackendKind.GRAPH.value: graph_samples,
                        },
                    )
                )

        run.completed_at = time.time()
        log.info(
            "Benchmark finished: %d cells, %d failed, %.2fs",
            len(run.cells),
            run.failure_count,
            run.duration_seconds,
        )
        return run

    def check_parity(
        self,
        user_id: int,
        product_id: int,
        depths: Sequence[int] = DEFAULT_DEPTHS,
    ) -> ParityReport:
        """Compare Q1/Q2/Q3 results of both backends for every depth.

        Backend errors propagate; parity is only meaningful when both
        engines answer.
        """
        relational = self.backend(BackendKind.RELATIONAL)
        graph = self.backend(BackendKind.GRAPH)
        report = ParityReport()

        for depth in depths:
            for query_id in QueryId:
                kwargs: dict[str, Any] = {"user_id": user_id, "product_id": product_id, "depth": depth}
                rel_result = query_call(relational, query_id, **kwargs)()
                graph_result = query_call(graph, query_id, **kwargs)()
                report.checked += 1
                if rel_result != graph_result:
                    log.warning("Parity mismatch for q%d at depth %d", query_id, depth)
                    report.mismatches.append(
                        ParityMismatch(
                            query_id=query_id,
                            depth=depth,
                            relational=rel_result.to_dict(),
                            graph=graph_result.to_dict(),
                        )
                    )
        return report

    def health(self) -> dict[str, str]:
        """Connectivity status per configured backend."""
        status: dict[str, str] = {}
        for kind, backend in self._backends.items():
            try:
                backend.ping()
                status[kind.value] = "connected"
            except Exception as e:
                log.debug("%s health check failed: %s", kind.value, e)
                status[kind.value] = "disconnected"
        return status
