r"""
Protocol definitions for storage backends and dataset generators.

Both backends (relational and graph) implement StorageBackend, so the
harness can drive them interchangeably.

    from socialgraph_bench.protocols import StorageBackend

    def load(backend: StorageBackend, dataset: Dataset) -> None:
        ...
"""

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from socialgraph_bench.types import (
    BackendKind,
    Dataset,
    EntityCounts,
    Follow,
    FollowerQueryResult,
    GenerationConfig,
    InjectionReport,
    Product,
    Purchase,
    User,
    ViralCountResult,
)

__all__ = ["StorageBackend", "DatasetGenerator"]


@runtime_checkable
class StorageBackend(Protocol):
    """Protocol for storage backends under comparison."""

    @property
    def kind(self) -> BackendKind:
        """Backend key (relational or graph)."""
        ...

    @property
    def name(self) -> str:
        """Human-readable engine name."""
        ...

    @property
    def version(self) -> str:
        """Engine version, "unknown" when it cannot be read."""
        ...

    @property
    def connected(self) -> bool:
        """Whether the backend holds an open connection."""
        ...

    def connect(self, *, uri: str | None = None, **kwargs: Any) -> None:
        """Establish the connection or session pool."""
        ...

    def disconnect(self) -> None:
        """Release the connection or session pool."""
        ...

    def ping(self) -> None:
        """Round-trip to the engine, raising BackendError when unreachable."""
        ...

    def init_schema(self) -> None:
        """Create constraints and indexes (idempotent)."""
        ...

    def clear_data(self) -> None:
        """Remove all entities and edges."""
        ...

    def insert_users(self, users: Sequence[User], *, batch_size: int | None = None) -> int:
        """Insert users if absent, return rows submitted."""
        ...

    def insert_products(self, products: Sequence[Product], *, batch_size: int | None = None) -> int:
        """Insert products if absent, return rows submitted."""
        ...

    def insert_follows(self, follows: Sequence[Follow], *, batch_size: int | None = None) -> int:
        """Insert follow edges if absent, return rows submitted."""
        ...

    def insert_purchases(self, purchases: Sequence[Purchase], *, batch_size: int | None = None) -> int:
        """Insert purchase edges if absent, return rows submitted."""
        ...

    def load_dataset(self, dataset: Dataset, *, batch_size: int | None = None) -> InjectionReport:
        """Clear, init schema and load a full dataset with per-entity timings."""
        ...

    def count_entities(self) -> EntityCounts:
        """Count stored users, products, follows and purchases."""
        ...

    def query_products_by_followers(self, user_id: int, *, depth: float) -> FollowerQueryResult:
        """Products bought by the user's depth-bounded follower circle."""
        ...

    def query_product_by_followers(self, user_id: int, product_id: int, *, depth: float) -> FollowerQueryResult:
        """Same as query_products_by_followers, restricted to one product."""
        ...

    def query_product_viral_count(self, product_id: int, *, depth: float) -> ViralCountResult:
        """Buyers of a product reachable from other buyers within depth hops."""
        ...


@runtime_checkable
class DatasetGenerator(Protocol):
    """Protocol for dataset generators."""

    @property
    def name(self) -> str:
        """Generator name."""
        ...

    def generate(self, config: GenerationConfig) -> Dataset:
        """Generate one immutable dataset."""
        ...
