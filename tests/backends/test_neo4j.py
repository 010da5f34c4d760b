r"""Tests for the Neo4j graph backend.

Cypher generation and result parsing run against a recording fake
driver. The live tests need a server and only run when
SOCIALGRAPH_BENCH_NEO4J_URI is set.
"""

import os

import pytest

from socialgraph_bench.backends.duckdb import DuckDBBackend
from socialgraph_bench.backends.neo4j import Neo4jBackend
from socialgraph_bench.errors import BackendError
from socialgraph_bench.runner import BenchmarkHarness
from socialgraph_bench.types import EntityCounts, User


class FakeSession:
    def __init__(self, driver):
        self._driver = driver

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def run(self, query, **params):
        self._driver.calls.append((query, params))
        for marker, records in self._driver.responses.items():
            if marker in query:
                return list(records)
        return []


class FakeDriver:
    """Records every Cypher statement; answers from canned responses."""

    def __init__(self, *, responses=None, fail_connect=False):
        self.calls: list[tuple[str, dict]] = []
        self.responses = responses or {}
        self.fail_connect = fail_connect
        self.closed = False

    def verify_connectivity(self):
        if self.fail_connect:
            raise ConnectionError("connection refused")

    def session(self):
        return FakeSession(self)

    def close(self):
        self.closed = True


class FakeNeo4jBackend(Neo4jBackend):
    """Neo4jBackend bound to a FakeDriver instead of a Bolt connection."""

    def __init__(self, driver):
        super().__init__()
        self._fake = driver

    def connect(self, *, uri=None, **kwargs):
        self._driver = self._fake
        self._driver.verify_connectivity()
        self._connected = True


def make_backend(**driver_kwargs):
    driver = FakeDriver(**driver_kwargs)
    backend = FakeNeo4jBackend(driver)
    backend.connect()
    return backend, driver


class TestNeo4jBackend:
    def test_name(self):
        backend = Neo4jBackend()
        assert backend.name == "Neo4j"
        assert backend.kind == "graph"
        assert backend.connected is False

    def test_connect_failure(self, monkeypatch):
        driver = FakeDriver(fail_connect=True)
        monkeypatch.setattr("neo4j.GraphDatabase.driver", lambda uri, auth=None: driver)
        backend = Neo4jBackend()
        with pytest.raises(BackendError, match=r"\[graph\] connect failed: connection refused") as exc_info:
            backend.connect(uri="bolt://fake:7687")
        assert exc_info.value.operation == "connect"
        assert driver.closed
        assert backend.connected is False

    def test_connect_uses_env_credentials(self, monkeypatch):
        driver = FakeDriver()
        seen = {}

        def fake_driver(uri, auth=None):
            seen.update(uri=uri, auth=auth)
            return driver

        monkeypatch.setattr("neo4j.GraphDatabase.driver", fake_driver)
        monkeypatch.setenv("SOCIALGRAPH_BENCH_NEO4J_USER", "bench")
        monkeypatch.setenv("SOCIALGRAPH_BENCH_NEO4J_PASSWORD", "secret")
        backend = Neo4jBackend()
        backend.connect(uri="bolt://fake:7687")

        assert seen == {"uri": "bolt://fake:7687", "auth": ("bench", "secret")}
        assert backend.connected is True
        backend.disconnect()
        assert driver.closed

    def test_disconnect_closes_driver(self):
        backend, driver = make_backend()
        backend.disconnect()
        assert driver.closed
        assert backend.connected is False

    def test_init_schema(self):
        backend, driver = make_backend()
        backend.init_schema()
        statements = [q for q, _ in driver.calls]
        assert any("REQUIRE u.id IS UNIQUE" in s for s in statements)
        assert any("REQUIRE p.id IS UNIQUE" in s for s in statements)
        assert all("IF NOT EXISTS" in s for s in statements)

    def test_clear_data(self):
        backend, driver = make_backend()
        backend.clear_data()
        assert driver.calls == [("MATCH (n) DETACH DELETE n", {})]

    def test_insert_users_batches(self):
        backend, driver = make_backend()
        users = [User(i, f"User {i}") for i in range(1, 8)]

        assert backend.insert_users(users, batch_size=3) == 7
        batches = [params["batch"] for _, params in driver.calls]
        assert [len(b) for b in batches] == [3, 3, 1]
        assert batches[0][0] == {"id": 1, "name": "User 1"}
        assert all("MERGE (u:User {id: row.id})" in q for q, _ in driver.calls)

    def test_count_entities(self):
        backend, _ = make_backend(
            responses={
                "count(u)": [{"count": 3}],
                "count(p)": [{"count": 2}],
                "[r:FOLLOWS]": [{"count": 2}],
                "[r:PURCHASED]": [{"count": 1}],
            }
        )
        assert backend.count_entities() == EntityCounts(users=3, products=2, follows=2, purchases=1)


class TestNeo4jQueries:
    def test_q1_variable_length_path(self):
        backend, driver = make_backend()
        backend.query_products_by_followers(1, depth=3)

        query, params = driver.calls[-1]
        assert "[:FOLLOWS*1..3]" in query
        assert "WITH DISTINCT follower" in query
        assert params == {"userId": 1}

    @pytest.mark.parametrize(("depth", "expected"), [(0, 1), (-2, 1), (2.7, 2)])
    def test_q1_depth_normalised(self, depth, expected):
        backend, driver = make_backend()
        backend.query_products_by_followers(1, depth=depth)
        assert f"[:FOLLOWS*1..{expected}]" in driver.calls[-1][0]

    def test_q1_result_parsing(self):
        backend, _ = make_backend(
            responses={
                "buyer_count": [
                    {"id": 10, "name": "Premium Widget 10", "price": 19.989999, "buyer_count": 2},
                    {"id": 4, "name": "Eco Cable 4", "price": 3.0, "buyer_count": 1},
                ]
            }
        )
        result = backend.query_products_by_followers(1, depth=2)

        assert [(p.id, p.count) for p in result.products] == [(10, 2), (4, 1)]
        assert result.products[0].price == 19.99
        assert result.total_count == 3

    def test_q2_passes_product(self):
        backend, driver = make_backend()
        result = backend.query_product_by_followers(1, 5, depth=2)

        query, params = driver.calls[-1]
        assert "{id: $productId}" in query
        assert params == {"userId": 1, "productId": 5}
        assert result.products == ()

    def test_q3_baseline_skips_traversal(self):
        backend, driver = make_backend(responses={"count(DISTINCT buyer)": [{"count": 4}]})
        result = backend.query_product_viral_count(5, depth=0)

        query, _ = driver.calls[-1]
        assert "FOLLOWS" not in query
        assert result.count == 4
        assert result.depth == 0

    def test_q3_traversal(self):
        backend, driver = make_backend(responses={"count(follower)": [{"count": 2}]})
        result = backend.query_product_viral_count(5, depth=2)

        query, params = driver.calls[-1]
        assert "[:FOLLOWS*1..2]" in query
        assert params == {"productId": 5}
        assert result.count == 2

    def test_driver_error_wrapped(self):
        backend, driver = make_backend()

        def boom():
            raise RuntimeError("session expired")

        driver.session = boom
        with pytest.raises(BackendError, match="query_products_by_followers failed: session expired"):
            backend.query_products_by_followers(1, depth=1)


live = pytest.mark.skipif(
    not os.environ.get("SOCIALGRAPH_BENCH_NEO4J_URI"),
    reason="SOCIALGRAPH_BENCH_NEO4J_URI not set",
)


@live
class TestNeo4jLive:
    @pytest.fixture
    def backend(self):
        backend = Neo4jBackend()
        backend.connect()
        yield backend
        backend.clear_data()
        backend.disconnect()

    def test_scenario(self, backend, scenario):
        backend.load_dataset(scenario)

        assert backend.count_entities() == scenario.counts()
        assert backend.query_products_by_followers(1, depth=1).total_count == 1
        assert backend.query_products_by_followers(1, depth=2).total_count == 2
        assert backend.query_product_viral_count(10, depth=0).count == 2
        assert backend.query_product_viral_count(10, depth=1).count == 1

    def test_parity_with_relational(self, backend, generated):
        relational = DuckDBBackend()
        relational.connect(uri=":memory:")
        try:
            harness = BenchmarkHarness({"relational": relational, "graph": backend})
            harness.inject(generated, "both")
            report = harness.check_parity(user_id=1, product_id=1, depths=[0, 1, 2, 3])
        finally:
            relational.disconnect()

        assert report.checked == 12
        assert report.ok, report.mismatches
