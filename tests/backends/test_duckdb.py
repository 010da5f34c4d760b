r"""Tests for the DuckDB relational backend."""

import pytest

from socialgraph_bench.backends.duckdb import DuckDBBackend
from socialgraph_bench.errors import BackendError
from socialgraph_bench.types import EntityCounts, Follow, Product, Purchase, User


class TestDuckDBBackend:
    """Connection, schema and loading."""

    def test_name(self, duckdb_backend):
        assert duckdb_backend.name == "DuckDB"
        assert duckdb_backend.kind == "relational"

    def test_version(self, duckdb_backend):
        assert duckdb_backend.version != "unknown"

    def test_connected(self, duckdb_backend):
        assert duckdb_backend.connected is True
        assert "connected" in repr(duckdb_backend)

    def test_disconnect(self):
        backend = DuckDBBackend()
        backend.connect(uri=":memory:")
        backend.disconnect()
        assert backend.connected is False
        assert repr(backend) == "DuckDBBackend(DuckDB, disconnected)"

    def test_context_manager(self):
        with DuckDBBackend() as backend:
            backend.connect(uri=":memory:")
            backend.ping()
        assert backend.connected is False

    def test_query_before_connect(self):
        backend = DuckDBBackend()
        with pytest.raises(BackendError, match="not connected"):
            backend.query_products_by_followers(1, depth=1)

    def test_init_schema_idempotent(self, duckdb_backend):
        duckdb_backend.init_schema()
        duckdb_backend.init_schema()
        assert duckdb_backend.count_entities() == EntityCounts()

    def test_clear_on_empty_store(self, duckdb_backend):
        duckdb_backend.clear_data()
        duckdb_backend.clear_data()
        duckdb_backend.init_schema()
        assert duckdb_backend.count_entities() == EntityCounts()

    def test_load_dataset(self, duckdb_backend, scenario):
        report = duckdb_backend.load_dataset(scenario)

        assert report.database == "relational"
        assert report.counts == scenario.counts()
        assert report.timings.total >= 0
        assert duckdb_backend.count_entities() == scenario.counts()

    def test_reload_is_idempotent(self, duckdb_backend, generated):
        duckdb_backend.load_dataset(generated)
        first = duckdb_backend.query_products_by_followers(1, depth=3)
        duckdb_backend.load_dataset(generated)

        assert duckdb_backend.count_entities() == generated.counts()
        assert duckdb_backend.query_products_by_followers(1, depth=3) == first

    def test_duplicate_inserts_ignored(self, duckdb_backend):
        duckdb_backend.init_schema()
        users = [User(1, "Alice"), User(2, "Bob")]
        duckdb_backend.insert_users(users)
        duckdb_backend.insert_users([User(1, "Alice again")])
        duckdb_backend.insert_follows([Follow(1, 2)])
        submitted = duckdb_backend.insert_follows([Follow(1, 2)])

        counts = duckdb_backend.count_entities()
        assert submitted == 1
        assert counts.users == 2
        assert counts.follows == 1
        assert duckdb_backend.execute_query("SELECT name FROM users WHERE id = 1") == [{"name": "Alice"}]

    def test_batch_boundary(self, duckdb_backend):
        duckdb_backend.init_schema()
        users = [User(i, f"User {i}") for i in range(1, 5002)]

        assert duckdb_backend.insert_users(users) == 5001
        assert duckdb_backend.count_entities().users == 5001

    def test_small_batches(self, duckdb_backend):
        duckdb_backend.init_schema()
        products = [Product(i, f"Product {i}", 1.25) for i in range(1, 11)]

        assert duckdb_backend.insert_products(products, batch_size=3) == 10
        assert duckdb_backend.count_entities().products == 10

    def test_empty_insert(self, duckdb_backend):
        duckdb_backend.init_schema()
        assert duckdb_backend.insert_purchases([]) == 0

    def test_execute_query_with_params(self, duckdb_backend, scenario):
        duckdb_backend.load_dataset(scenario)
        rows = duckdb_backend.execute_query(
            "SELECT COUNT(*) AS n FROM purchases WHERE product_id = $pid", params={"pid": 10}
        )
        assert rows == [{"n": 2}]

    def test_bad_sql_wrapped(self, duckdb_backend):
        with pytest.raises(BackendError, match="execute_query failed") as exc_info:
            duckdb_backend.execute_query("SELECT * FROM missing_table")
        assert exc_info.value.__cause__ is not None


class TestDuckDBQueries:
    """The three reachability queries on known data."""

    @pytest.fixture
    def loaded(self, duckdb_backend, scenario):
        duckdb_backend.load_dataset(scenario)
        return duckdb_backend

    def test_q1_direct_followees(self, loaded):
        result = loaded.query_products_by_followers(1, depth=1)

        assert [(p.id, p.count) for p in result.products] == [(10, 1)]
        assert result.total_count == 1
        assert result.products[0].name == "Premium Widget 10"
        assert result.products[0].price == 19.99

    def test_q1_two_hops(self, loaded):
        result = loaded.query_products_by_followers(1, depth=2)
        assert [(p.id, p.count) for p in result.products] == [(10, 2)]
        assert result.total_count == 2

    def test_q1_depth_clamped_to_one(self, loaded):
        assert loaded.query_products_by_followers(1, depth=0) == loaded.query_products_by_followers(1, depth=1)
        assert loaded.query_products_by_followers(1, depth=1.9) == loaded.query_products_by_followers(1, depth=1)

    def test_q1_user_without_followees(self, loaded):
        assert loaded.query_products_by_followers(3, depth=5).products == ()

    def test_q1_unknown_user(self, loaded):
        assert loaded.query_products_by_followers(999, depth=2).total_count == 0

    def test_q2_restricted(self, loaded):
        result = loaded.query_product_by_followers(1, 10, depth=2)
        assert [(p.id, p.count) for p in result.products] == [(10, 2)]

    def test_q2_product_not_bought(self, loaded):
        assert loaded.query_product_by_followers(1, 11, depth=3).products == ()

    def test_q3_baseline(self, loaded):
        result = loaded.query_product_viral_count(10, depth=0)
        assert result.count == 2
        assert result.depth == 0

    def test_q3_one_hop(self, loaded):
        result = loaded.query_product_viral_count(10, depth=1)
        assert result.count == 1
        assert result.product_id == 10

    def test_q3_fractional_depth(self, loaded):
        assert loaded.query_product_viral_count(10, depth=0.5).depth == 0

    def test_q3_unknown_product(self, loaded):
        assert loaded.query_product_viral_count(999, depth=2).count == 0

    def test_cycle_reaches_seed(self, duckdb_backend):
        duckdb_backend.init_schema()
        duckdb_backend.insert_users([User(1, "A"), User(2, "B")])
        duckdb_backend.insert_products([Product(1, "P", 2.0)])
        duckdb_backend.insert_follows([Follow(1, 2), Follow(2, 1)])
        duckdb_backend.insert_purchases([Purchase(1, 1), Purchase(2, 1)])

        result = duckdb_backend.query_products_by_followers(1, depth=4)
        assert [(p.id, p.count) for p in result.products] == [(1, 2)]


class TestDuckDBAgainstReference:
    """Generated data checked against a breadth-first reference."""

    @pytest.fixture
    def loaded(self, duckdb_backend, generated):
        duckdb_backend.load_dataset(generated)
        return duckdb_backend

    @pytest.mark.parametrize("depth", [1, 2, 3])
    def test_q1_matches_reference(self, loaded, generated, reference, depth):
        graph = reference(generated)
        for user_id in range(1, 11):
            result = loaded.query_products_by_followers(user_id, depth=depth)
            assert [(p.id, p.count) for p in result.products] == graph.products_by_followers(user_id, depth)

    @pytest.mark.parametrize("depth", [0, 1, 2, 3])
    def test_q3_matches_reference(self, loaded, generated, reference, depth):
        graph = reference(generated)
        for product in generated.products:
            assert loaded.query_product_viral_count(product.id, depth=depth).count == graph.viral_count(
                product.id, depth
            )

    def test_q3_baseline_is_purchase_count(self, loaded, generated):
        for product in generated.products:
            expected = sum(1 for p in generated.purchases if p.product_id == product.id)
            assert loaded.query_product_viral_count(product.id, depth=0).count == expected

    def test_q1_monotonic_in_depth(self, loaded):
        for user_id in range(1, 11):
            totals = [loaded.query_products_by_followers(user_id, depth=d).total_count for d in range(1, 5)]
            assert totals == sorted(totals)

    def test_q2_is_q1_row(self, loaded):
        full = {p.id: p for p in loaded.query_products_by_followers(1, depth=2).products}
        for product_id in range(1, 13):
            restricted = loaded.query_product_by_followers(1, product_id, depth=2).products
            assert restricted == ((full[product_id],) if product_id in full else ())
