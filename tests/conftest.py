r"""
Shared pytest fixtures for socialgraph-bench tests.
"""

from collections import deque

import pytest

from socialgraph_bench.backends import DuckDBBackend
from socialgraph_bench.config import SCALES
from socialgraph_bench.datasets import SocialCommerceGenerator
from socialgraph_bench.types import Dataset, Follow, GenerationConfig, Product, Purchase, User


@pytest.fixture
def tiny_scale() -> GenerationConfig:
    """Tiny scale for fast unit tests."""
    return SCALES["tiny"]


@pytest.fixture
def scenario() -> Dataset:
    """Three users in a chain (1 -> 2 -> 3); users 2 and 3 bought product 10."""
    return Dataset(
        users=(User(1, "Alice Smith 1"), User(2, "Bob Brown 2"), User(3, "Charlie Davis 3")),
        products=(Product(10, "Premium Widget 10", 19.99), Product(11, "Eco Cable 11", 5.5)),
        follows=(Follow(1, 2), Follow(2, 3)),
        purchases=(Purchase(2, 10), Purchase(3, 10)),
    )


@pytest.fixture
def generated() -> Dataset:
    """Small reproducible random dataset."""
    config = GenerationConfig(name="test", users=60, products=12, max_followers=4, max_purchases=3)
    return SocialCommerceGenerator(seed=7).generate(config)


@pytest.fixture
def duckdb_backend():
    """Connected in-memory DuckDB backend."""
    backend = DuckDBBackend()
    backend.connect(uri=":memory:")
    yield backend
    backend.disconnect()


class ReferenceGraph:
    """Breadth-first reference answers for the three queries."""

    def __init__(self, dataset: Dataset) -> None:
        self.products = {p.id: p for p in dataset.products}
        self.following: dict[int, set[int]] = {}
        for f in dataset.follows:
            self.following.setdefault(f.follower_id, set()).add(f.followed_id)
        self.bought: dict[int, set[int]] = {}
        for p in dataset.purchases:
            self.bought.setdefault(p.user_id, set()).add(p.product_id)

    def circle(self, seeds: set[int], depth: int) -> set[int]:
        reached: set[int] = set()
        frontier = deque((s, 0) for s in seeds)
        visited_at: dict[int, int] = {}
        while frontier:
            user, level = frontier.popleft()
            if level == depth:
                continue
            for nxt in self.following.get(user, ()):
                if nxt in visited_at and visited_at[nxt] <= level + 1:
                    continue
                visited_at[nxt] = level + 1
                reached.add(nxt)
                frontier.append((nxt, level + 1))
        return reached

    def products_by_followers(self, user_id: int, depth: int) -> list[tuple[int, int]]:
        counts: dict[int, int] = {}
        for member in self.circle({user_id}, depth):
            for product_id in self.bought.get(member, ()):
                counts[product_id] = counts.get(product_id, 0) + 1
        return sorted(counts.items(), key=lambda item: (-item[1], item[0]))

    def viral_count(self, product_id: int, depth: int) -> int:
        buyers = {u for u, products in self.bought.items() if product_id in products}
        if depth == 0:
            return len(buyers)
        return sum(1 for member in self.circle(buyers, depth) if product_id in self.bought.get(member, ()))


@pytest.fixture
def reference():
    """Factory building a ReferenceGraph for a dataset."""
    return ReferenceGraph
