r"""
Base backend implementation with common functionality.

Owns the pieces both engines must agree on: depth normalisation for the
reachability queries, batching of bulk loads, timed dataset loading and
wrapping of driver failures into BackendError.

    from socialgraph_bench.backends.base import BaseBackend

    class MyBackend(BaseBackend):
        def connect(self, *, uri: str | None = None, **kwargs) -> None:
            ...
"""

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator, Sequence
from functools import partial
from typing import Any, TypeVar

from socialgraph_bench.config import get_batch_size
from socialgraph_bench.errors import BackendError, SocialGraphBenchError, ValidationError
from socialgraph_bench.runner.timing import measure
from socialgraph_bench.types import (
    BackendKind,
    Dataset,
    EntityCounts,
    Follow,
    FollowerQueryResult,
    InjectionReport,
    LoadTimings,
    Product,
    Purchase,
    User,
    ViralCountResult,
)

__all__ = ["BaseBackend", "follower_depth", "viral_depth", "iter_batches"]

log = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def _floor_depth(depth: float) -> int:
    if not math.isfinite(depth):
        msg = f"depth must be finite, got {depth}"
        raise ValidationError(msg)
    return math.floor(depth)


def follower_depth(depth: float) -> int:
    """Effective depth for the follower-circle queries: floor, at least 1."""
    return max(1, _floor_depth(depth))


def viral_depth(depth: float) -> int:
    """Effective depth for the viral count query: floor, 0 is the baseline."""
    return max(0, _floor_depth(depth))


def iter_batches(rows: Sequence[T], batch_size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most batch_size rows."""
    if batch_size < 1:
        msg = f"batch_size must be positive, got {batch_size}"
        raise ValueError(msg)
    for i in range(0, len(rows), batch_size):
        yield rows[i : i + batch_size]


class BaseBackend(ABC):
    """Base class for storage backends.

    Subclasses implement connection handling, schema management, the
    per-batch writers and the three native queries. Depth normalisation
    and error wrapping happen here so both engines see identical inputs.
    """

    _connected: bool = False

    @property
    @abstractmethod
    def kind(self) -> BackendKind:
        """Backend key."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable engine name."""
        ...

    @property
    def version(self) -> str:
        """Engine version string."""
        return "unknown"

    @property
    def connected(self) -> bool:
        """Whether backend is currently connected."""
        return self._connected

    @abstractmethod
    def connect(self, *, uri: str | None = None, **kwargs: Any) -> None:
        """Establish connection to the engine."""
        ...

    @abstractmethod
    def disconnect(self) -> None:
        """Close connection to the engine."""
        ...

    @abstractmethod
    def init_schema(self) -> None:
        """Create uniqueness constraints and traversal indexes."""
        ...

    @abstractmethod
    def clear_data(self) -> None:
        """Remove all entities and edges."""
        ...

    @abstractmethod
    def count_entities(self) -> EntityCounts:
        """Count stored users, products, follows and purchases."""
        ...

    @abstractmethod
    def _write_users(self, batch: Sequence[User]) -> None: ...

    @abstractmethod
    def _write_products(self, batch: Sequence[Product]) -> None: ...

    @abstractmethod
    def _write_follows(self, batch: Sequence[Follow]) -> None: ...

    @abstractmethod
    def _write_purchases(self, batch: Sequence[Purchase]) -> None: ...

    @abstractmethod
    def _products_by_followers(self, user_id: int, depth: int) -> FollowerQueryResult: ...

    @abstractmethod
    def _product_by_followers(self, user_id: int, product_id: int, depth: int) -> FollowerQueryResult: ...

    @abstractmethod
    def _viral_count(self, product_id: int, depth: int) -> int: ...

    @abstractmethod
    def _ping(self) -> None: ...

    def _call(self, operation: str, func: Callable[[], R], **params: Any) -> R:
        """Run a driver call, wrapping foreign exceptions into BackendError."""
        if not self._connected:
            raise BackendError(self.kind.value, operation, "not connected", params=params)
        try:
            return func()
        except SocialGraphBenchError:
            raise
        except Exception as e:
            raise BackendError(self.kind.value, operation, str(e), params=params) from e

    def _insert(self, operation: str, rows: Sequence[T], writer: Callable[[Sequence[T]], None], batch_size: int | None) -> int:
        size = batch_size or get_batch_size()
        count = 0
        for batch in iter_batches(rows, size):
            self._call(operation, lambda: writer(batch), offset=count, batch=len(batch))
            count += len(batch)
            log.debug("%s %s: %d/%d rows", self.name, operation, count, len(rows))
        return count

    def insert_users(self, users: Sequence[User], *, batch_size: int | None = None) -> int:
        """Insert users (insert-if-absent) and return rows submitted."""
        return self._insert("insert_users", users, self._write_users, batch_size)

    def insert_products(self, products: Sequence[Product], *, batch_size: int | None = None) -> int:
        """Insert products (insert-if-absent) and return rows submitted."""
        return self._insert("insert_products", products, self._write_products, batch_size)

    def insert_follows(self, follows: Sequence[Follow], *, batch_size: int | None = None) -> int:
        """Insert follow edges (insert-if-absent) and return rows submitted."""
        return self._insert("insert_follows", follows, self._write_follows, batch_size)

    def insert_purchases(self, purchases: Sequence[Purchase], *, batch_size: int | None = None) -> int:
        """Insert purchase edges (insert-if-absent) and return rows submitted."""
        return self._insert("insert_purchases", purchases, self._write_purchases, batch_size)

    def ping(self) -> None:
        """Round-trip to the engine, raising BackendError when unreachable."""
        self._call("ping", self._ping)

    def load_dataset(self, dataset: Dataset, *, batch_size: int | None = None) -> InjectionReport:
        """Replace the stored dataset and time each entity load.

        Clears, re-creates the schema, then loads users, products, follows
        and purchases in that order. A failure part-way leaves a partial
        dataset behind; call this again to recover.
        """
        self.clear_data()
        self.init_schema()

        users = measure(partial(self.insert_users, dataset.users, batch_size=batch_size))
        products = measure(partial(self.insert_products, dataset.products, batch_size=batch_size))
        follows = measure(partial(self.insert_follows, dataset.follows, batch_size=batch_size))
        purchases = measure(partial(self.insert_purchases, dataset.purchases, batch_size=batch_size))

        timings = LoadTimings(
            users=users.elapsed_ms,
            products=products.elapsed_ms,
            follows=follows.elapsed_ms,
            purchases=purchases.elapsed_ms,
        )
        log.info("%s loaded dataset in %.2f ms", self.name, timings.total)
        return InjectionReport(database=self.kind, timings=timings, counts=dataset.counts())

    def query_products_by_followers(self, user_id: int, *, depth: float) -> FollowerQueryResult:
        """Products bought by users reachable within 1..depth FOLLOWS hops.

        Args:
            user_id: Seed user.
            depth: Hop bound, floored and clamped to at least 1.

        Returns:
            Products ordered by buyer count descending, then id.
        """
        d = follower_depth(depth)
        return self._call(
            "query_products_by_followers",
            lambda: self._products_by_followers(user_id, d),
            user_id=user_id,
            depth=d,
        )

    def query_product_by_followers(self, user_id: int, product_id: int, *, depth: float) -> FollowerQueryResult:
        """Like query_products_by_followers, restricted to product_id."""
        d = follower_depth(depth)
        return self._call(
            "query_product_by_followers",
            lambda: self._product_by_followers(user_id, product_id, d),
            user_id=user_id,
            product_id=product_id,
            depth=d,
        )

    def query_product_viral_count(self, product_id: int, *, depth: float) -> ViralCountResult:
        """Count buyers of product_id reachable from its buyers.

        Depth 0 is the baseline and counts every direct buyer without any
        traversal. Unlike the follower-circle queries, depth is not
        clamped to 1.
        """
        d = viral_depth(depth)
        count = self._call(
            "query_product_viral_count",
            lambda: self._viral_count(product_id, d),
            product_id=product_id,
            depth=d,
        )
        return ViralCountResult(product_id=product_id, count=count, depth=d)

    def __enter__(self) -> "BaseBackend":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit - disconnect."""
        if self._connected:
            self.disconnect()

    def __repr__(self) -> str:
        status = "connected" if self._connected else "disconnected"
        return f"{self.__class__.__name__}({self.name}, {status})"
