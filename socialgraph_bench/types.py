r"""
Core types for the social-commerce reachability benchmark.

    from socialgraph_bench.types import Dataset, FollowerQueryResult

    result = backend.query_products_by_followers(1, depth=2)
    for product in result.products:
        print(product.name, product.count)
"""

from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from typing import Any

from socialgraph_bench.errors import ValidationError

__all__ = [
    "BackendKind",
    "QueryId",
    "User",
    "Product",
    "Follow",
    "Purchase",
    "Dataset",
    "GenerationConfig",
    "ProductCount",
    "FollowerQueryResult",
    "ViralCountResult",
    "EntityCounts",
    "LoadTimings",
    "InjectionReport",
    "QueryReport",
    "BenchmarkCell",
]


class BackendKind(StrEnum):
    """The two storage engines under comparison."""

    RELATIONAL = "relational"
    GRAPH = "graph"

    @classmethod
    def parse(cls, value: "str | BackendKind") -> "BackendKind":
        """Resolve a backend key, raising ValidationError for unknown keys."""
        try:
            return cls(value)
        except ValueError:
            valid = ", ".join(k.value for k in cls)
            msg = f"Unknown database '{value}'. Valid databases: {valid}"
            raise ValidationError(msg) from None


class QueryId(IntEnum):
    """Analytical query shapes."""

    PRODUCTS_BY_FOLLOWERS = 1
    PRODUCT_BY_FOLLOWERS = 2
    PRODUCT_VIRAL_COUNT = 3

    @classmethod
    def parse(cls, value: int) -> "QueryId":
        try:
            return cls(value)
        except ValueError:
            msg = f"Unknown queryId: {value}"
            raise ValidationError(msg) from None


@dataclass(frozen=True, slots=True)
class User:
    id: int
    name: str


@dataclass(frozen=True, slots=True)
class Product:
    id: int
    name: str
    price: float


@dataclass(frozen=True, slots=True)
class Follow:
    """Directed edge: follower_id follows followed_id."""

    follower_id: int
    followed_id: int


@dataclass(frozen=True, slots=True)
class Purchase:
    user_id: int
    product_id: int


@dataclass(frozen=True, slots=True)
class Dataset:
    """One generated dataset, shared read-only by every backend load.

    Attributes:
        users: Users with ids 1..n.
        products: Products with ids 1..m.
        follows: Follow edges, no self-loops, unique per ordered pair.
        purchases: Purchase edges, unique per pair.
    """

    users: tuple[User, ...]
    products: tuple[Product, ...]
    follows: tuple[Follow, ...]
    purchases: tuple[Purchase, ...]

    def counts(self) -> "EntityCounts":
        """Number of rows per entity type."""
        return EntityCounts(
            users=len(self.users),
            products=len(self.products),
            follows=len(self.follows),
            purchases=len(self.purchases),
        )


@dataclass(frozen=True, slots=True)
class GenerationConfig:
    """Volume parameters for dataset generation.

    Attributes:
        name: Preset name (or "custom").
        users: Number of users.
        products: Number of products.
        max_followers: Upper bound on follow edges drawn per user.
        max_purchases: Upper bound on purchase edges drawn per user.
    """

    name: str
    users: int
    products: int
    max_followers: int
    max_purchases: int


@dataclass(frozen=True, slots=True)
class ProductCount:
    """A product reached through a follower circle.

    Attributes:
        count: Number of distinct circle members who bought the product.
    """

    id: int
    name: str
    price: float
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "price": self.price, "count": self.count}


@dataclass(frozen=True, slots=True)
class FollowerQueryResult:
    """Result of the follower-circle product queries (Q1, Q2)."""

    products: tuple[ProductCount, ...] = ()

    @property
    def total_count(self) -> int:
        """Sum of per-product buyer counts."""
        return sum(p.count for p in self.products)

    def to_dict(self) -> dict[str, Any]:
        return {
            "products": [p.to_dict() for p in self.products],
            "totalCount": self.total_count,
        }


@dataclass(frozen=True, slots=True)
class ViralCountResult:
    """Result of the viral spread query (Q3)."""

    product_id: int
    count: int
    depth: int

    def to_dict(self) -> dict[str, Any]:
        return {"productId": self.product_id, "count": self.count, "depth": self.depth}


@dataclass(frozen=True, slots=True)
class EntityCounts:
    users: int = 0
    products: int = 0
    follows: int = 0
    purchases: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "users": self.users,
            "products": self.products,
            "follows": self.follows,
            "purchases": self.purchases,
        }


@dataclass(frozen=True, slots=True)
class LoadTimings:
    """Per-entity bulk load durations in milliseconds."""

    users: float = 0.0
    products: float = 0.0
    follows: float = 0.0
    purchases: float = 0.0

    @property
    def total(self) -> float:
        return self.users + self.products + self.follows + self.purchases

    def to_dict(self) -> dict[str, float]:
        return {
            "users": round(self.users, 2),
            "products": round(self.products, 2),
            "follows": round(self.follows, 2),
            "purchases": round(self.purchases, 2),
            "total": round(self.total, 2),
        }


@dataclass(frozen=True, slots=True)
class InjectionReport:
    """Outcome of loading one dataset into one backend."""

    database: BackendKind
    timings: LoadTimings
    counts: EntityCounts

    def to_dict(self) -> dict[str, Any]:
        return {
            "database": self.database.value,
            "timings": self.timings.to_dict(),
            "counts": self.counts.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class QueryReport:
    """A single timed query against one backend."""

    database: BackendKind
    query_id: QueryId
    execution_time_ms: float
    result: FollowerQueryResult | ViralCountResult

    def to_dict(self) -> dict[str, Any]:
        return {
            "database": self.database.value,
            "queryId": int(self.query_id),
            "executionTimeMs": round(self.execution_time_ms, 2),
            "result": self.result.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class BenchmarkCell:
    """Latency of one query shape at one depth on both backends.

    A failed call leaves its time as None and records the error, so a
    failure is never confused with a 0.0 ms measurement.

    Attributes:
        query_id: Query shape.
        depth: Depth passed to both backends.
        relational_ms: Relational latency in ms, None if the call failed.
        graph_ms: Graph latency in ms, None if the call failed.
        relational_error: Error text for a failed relational call.
        graph_error: Error text for a failed graph call.
        samples: Raw per-backend samples in ms when iterating.
    """

    query_id: QueryId
    depth: int
    relational_ms: float | None
    graph_ms: float | None
    relational_error: str | None = None
    graph_error: str | None = None
    samples: dict[str, list[float]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """True if both backends answered."""
        return self.relational_error is None and self.graph_error is None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "queryId": int(self.query_id),
            "depth": self.depth,
            "relationalTimeMs": None if self.relational_ms is None else round(self.relational_ms, 2),
            "graphTimeMs": None if self.graph_ms is None else round(self.graph_ms, 2),
        }
        if self.relational_error:
            data["relationalError"] = self.relational_error
        if self.graph_error:
            data["graphError"] = self.graph_error
        return data
