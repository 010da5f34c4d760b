r"""
Request validation and response shaping.

Requests arrive as plain dicts with camelCase keys (as a JSON body would)
and are validated into frozen request objects before any backend is
touched. BenchmarkService turns them into harness calls and returns
JSON-ready dicts.

    from socialgraph_bench.service import BenchmarkService

    service = BenchmarkService(harness)
    service.inject({"database": "both", "userCount": 1000, "productCount": 200,
                    "maxFollowers": 10, "maxPurchases": 5})
    service.query({"database": "graph", "queryId": 1, "userId": 1, "depth": 2})
"""

import logging
import math
from dataclasses import dataclass
from typing import Any

from socialgraph_bench.config import DEFAULT_DEPTHS
from socialgraph_bench.errors import ValidationError
from socialgraph_bench.runner.harness import BOTH, BenchmarkHarness
from socialgraph_bench.types import BackendKind, GenerationConfig, QueryId

__all__ = [
    "BenchmarkRequest",
    "BenchmarkService",
    "InjectionRequest",
    "QueryRequest",
]

log = logging.getLogger(__name__)


def _get_int(data: dict[str, Any], key: str, *, minimum: int = 0, required: bool = True) -> int | None:
    value = data.get(key)
    if value is None:
        if required:
            msg = f"{key} is required"
            raise ValidationError(msg)
        return None
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"{key} must be an integer, got {value!r}"
        raise ValidationError(msg)
    if value < minimum:
        msg = f"{key} must be >= {minimum}, got {value}"
        raise ValidationError(msg)
    return value


def _get_depth(value: Any, key: str = "depth") -> float:
    if value is None:
        msg = f"{key} is required"
        raise ValidationError(msg)
    if isinstance(value, bool) or not isinstance(value, int | float):
        msg = f"{key} must be a number, got {value!r}"
        raise ValidationError(msg)
    if not math.isfinite(value):
        msg = f"{key} must be finite, got {value}"
        raise ValidationError(msg)
    if value < 0:
        msg = f"{key} must be >= 0, got {value}"
        raise ValidationError(msg)
    return value


@dataclass(frozen=True, slots=True)
class InjectionRequest:
    """Generate a dataset and load it into one or both backends."""

    database: str
    user_count: int
    product_count: int
    max_followers: int
    max_purchases: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InjectionRequest":
        database = data.get("database")
        if database is None:
            msg = "database is required"
            raise ValidationError(msg)
        if database != BOTH:
            database = BackendKind.parse(database).value
        return cls(
            database=database,
            user_count=_get_int(data, "userCount"),  # type: ignore[arg-type]
            product_count=_get_int(data, "productCount"),  # type: ignore[arg-type]
            max_followers=_get_int(data, "maxFollowers"),  # type: ignore[arg-type]
            max_purchases=_get_int(data, "maxPurchases"),  # type: ignore[arg-type]
        )

    def to_config(self) -> GenerationConfig:
        return GenerationConfig(
            name="custom",
            users=self.user_count,
            products=self.product_count,
            max_followers=self.max_followers,
            max_purchases=self.max_purchases,
        )


@dataclass(frozen=True, slots=True)
class QueryRequest:
    """A single timed query against one backend.

    Attributes:
        database: Backend to query.
        query_id: Query shape 1, 2 or 3.
        user_id: Seed user, required for queries 1 and 2.
        product_id: Product, required for queries 2 and 3.
        depth: Traversal depth, floored by the backends.
    """

    database: BackendKind
    query_id: QueryId
    depth: float
    user_id: int | None = None
    product_id: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QueryRequest":
        database = data.get("database")
        if database is None:
            msg = "database is required"
            raise ValidationError(msg)
        query_id = data.get("queryId")
        if query_id is None:
            msg = "queryId is required"
            raise ValidationError(msg)
        request = cls(
            database=BackendKind.parse(database),
            query_id=QueryId.parse(query_id),
            depth=_get_depth(data.get("depth")),
            user_id=_get_int(data, "userId", minimum=1, required=False),
            product_id=_get_int(data, "productId", minimum=1, required=False),
        )
        request.validate()
        return request

    def validate(self) -> None:
        """Check the ids the query shape needs are present."""
        if self.query_id in (QueryId.PRODUCTS_BY_FOLLOWERS, QueryId.PRODUCT_BY_FOLLOWERS) and self.user_id is None:
            msg = f"userId is required for query {int(self.query_id)}"
            raise ValidationError(msg)
        if self.query_id in (QueryId.PRODUCT_BY_FOLLOWERS, QueryId.PRODUCT_VIRAL_COUNT) and self.product_id is None:
            msg = f"productId is required for query {int(self.query_id)}"
            raise ValidationError(msg)


@dataclass(frozen=True, slots=True)
class BenchmarkRequest:
    """Depth x query matrix on both backends."""

    user_id: int
    product_id: int
    depths: tuple[int, ...] = DEFAULT_DEPTHS
    iterations: int = 1

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BenchmarkRequest":
        raw_depths = data.get("depths", list(DEFAULT_DEPTHS))
        if not isinstance(raw_depths, list | tuple) or not raw_depths:
            msg = f"depths must be a non-empty list, got {raw_depths!r}"
            raise ValidationError(msg)
        depths = []
        for value in raw_depths:
            if isinstance(value, bool) or not isinstance(value, int):
                msg = f"depths must contain integers, got {value!r}"
                raise ValidationError(msg)
            _get_depth(value, "depths")
            depths.append(value)
        return cls(
            user_id=_get_int(data, "userId", minimum=1),  # type: ignore[arg-type]
            product_id=_get_int(data, "productId", minimum=1),  # type: ignore[arg-type]
            depths=tuple(depths),
            iterations=_get_int(data, "iterations", minimum=1, required=False) or 1,
        )


class BenchmarkService:
    """Request-level facade over a BenchmarkHarness."""

    def __init__(self, harness: BenchmarkHarness) -> None:
        self._harness = harness

    @property
    def harness(self) -> BenchmarkHarness:
        return self._harness

    def inject(self, payload: dict[str, Any] | InjectionRequest) -> list[dict[str, Any]]:
        request = payload if isinstance(payload, InjectionRequest) else InjectionRequest.from_dict(payload)
        reports = self._harness.inject(request.to_config(), request.database)
        return [r.to_dict() for r in reports]

    def query(self, payload: dict[str, Any] | QueryRequest) -> dict[str, Any]:
        request = payload if isinstance(payload, QueryRequest) else QueryRequest.from_dict(payload)
        report = self._harness.run_query(
            request.database,
            request.query_id,
            user_id=request.user_id,
            product_id=request.product_id,
            depth=request.depth,
        )
        return report.to_dict()

    def benchmark(self, payload: dict[str, Any] | BenchmarkRequest) -> list[dict[str, Any]]:
        request = payload if isinstance(payload, BenchmarkRequest) else BenchmarkRequest.from_dict(payload)
        run = self._harness.run_benchmark(
            request.user_id,
            request.product_id,
            request.depths,
            iterations=request.iterations,
        )
        if run.failure_count:
            log.warning("%d of %d benchmark cells failed", run.failure_count, len(run.cells))
        return run.to_dict()

    def health(self) -> dict[str, str]:
        return self._harness.health()
