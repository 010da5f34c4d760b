r"""
Relational backend on DuckDB.

Follower circles are computed with a recursive CTE: the seed rows are the
direct followees (or, for the viral count, the buyers' followees), each
recursion step joins the previous frontier back onto follows until the
level bound, and UNION keeps set semantics. The circle is deduplicated
before the join against purchases so a user reachable through several
paths is counted once.

Requires: pip install duckdb

Environment variables:
    SOCIALGRAPH_BENCH_DUCKDB_PATH: Database path (default: socialgraph_bench.duckdb)

    from socialgraph_bench.backends.duckdb import DuckDBBackend

    backend = DuckDBBackend()
    backend.connect(uri=":memory:")
"""

import logging
from collections.abc import Sequence
from typing import Any

from socialgraph_bench.backends.base import BaseBackend
from socialgraph_bench.config import get_env
from socialgraph_bench.errors import BackendError
from socialgraph_bench.types import (
    BackendKind,
    EntityCounts,
    Follow,
    FollowerQueryResult,
    Product,
    ProductCount,
    Purchase,
    User,
)

__all__ = ["DuckDBBackend"]

log = logging.getLogger(__name__)

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY,
        name VARCHAR NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS products (
        id INTEGER PRIMARY KEY,
        name VARCHAR NOT NULL,
        price DECIMAL(10, 2) NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS follows (
        follower_id INTEGER NOT NULL,
        followed_id INTEGER NOT NULL,
        PRIMARY KEY (follower_id, followed_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS purchases (
        user_id INTEGER NOT NULL,
        product_id INTEGER NOT NULL,
        PRIMARY KEY (user_id, product_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_follows_follower ON follows(follower_id)",
    "CREATE INDEX IF NOT EXISTS idx_follows_followed ON follows(followed_id)",
    "CREATE INDEX IF NOT EXISTS idx_purchases_user ON purchases(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_purchases_product ON purchases(product_id)",
]

TABLES = ("purchases", "follows", "products", "users")

FOLLOWER_CIRCLE = """
    WITH RECURSIVE follower_circle(user_id, level) AS (
        SELECT followed_id, 1
        FROM follows
        WHERE follower_id = $user_id

        UNION

        SELECT f.followed_id, fc.level + 1
        FROM follows f
        INNER JOIN follower_circle fc ON f.follower_id = fc.user_id
        WHERE fc.level < $depth
    ),
    distinct_followers AS (
        SELECT DISTINCT user_id FROM follower_circle
    )
"""

PRODUCTS_BY_FOLLOWERS = FOLLOWER_CIRCLE + """
    SELECT p.id, p.name, p.price, COUNT(pu.user_id) AS buyer_count
    FROM distinct_followers df
    JOIN purchases pu ON pu.user_id = df.user_id
    JOIN products p ON p.id = pu.product_id
    GROUP BY p.id, p.name, p.price
    ORDER BY buyer_count DESC, p.id ASC
"""

PRODUCT_BY_FOLLOWERS = FOLLOWER_CIRCLE + """
    SELECT p.id, p.name, p.price, COUNT(pu.user_id) AS buyer_count
    FROM distinct_followers df
    JOIN purchases pu ON pu.user_id = df.user_id
    JOIN products p ON p.id = pu.product_id
    WHERE p.id = $product_id
    GROUP BY p.id, p.name, p.price
"""

DIRECT_BUYERS = "SELECT COUNT(*) FROM purchases WHERE product_id = $product_id"

VIRAL_COUNT = """
    WITH RECURSIVE buyers AS (
        SELECT user_id FROM purchases WHERE product_id = $product_id
    ),
    buyer_circle(user_id, level) AS (
        SELECT f.followed_id, 1
        FROM follows f
        INNER JOIN buyers b ON f.follower_id = b.user_id

        UNION

        SELECT f.followed_id, bc.level + 1
        FROM follows f
        INNER JOIN buyer_circle bc ON f.follower_id = bc.user_id
        WHERE bc.level < $depth
    ),
    circle_members AS (
        SELECT DISTINCT user_id FROM buyer_circle
    )
    SELECT COUNT(*)
    FROM circle_members cm
    JOIN purchases pu ON pu.user_id = cm.user_id AND pu.product_id = $product_id
"""


def _values_clause(rows: int, columns: int) -> str:
    row = "(" + ", ".join("?" for _ in range(columns)) + ")"
    return ", ".join(row for _ in range(rows))


class DuckDBBackend(BaseBackend):
    """DuckDB relational backend using recursive SQL."""

    def __init__(self) -> None:
        self._conn: Any = None
        self._connected = False
        self._path: str | None = None

    @property
    def kind(self) -> BackendKind:
        return BackendKind.RELATIONAL

    @property
    def name(self) -> str:
        return "DuckDB"

    @property
    def version(self) -> str:
        try:
            import duckdb

            return duckdb.__version__
        except Exception:
            return "unknown"

    def connect(self, *, uri: str | None = None, **kwargs: Any) -> None:
        try:
            import duckdb
        except ImportError as e:
            msg = "duckdb package not installed. Install with: pip install duckdb"
            raise ImportError(msg) from e

        path = uri or kwargs.get("path") or get_env("DUCKDB_PATH", default="socialgraph_bench.duckdb")
        try:
            self._conn = duckdb.connect(path)
        except Exception as e:
            raise BackendError(self.kind.value, "connect", str(e), params={"path": path}) from e
        self._path = path
        self._connected = True
        log.info("Connected to DuckDB at %s", path)

    def disconnect(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None
        self._connected = False

    def _ping(self) -> None:
        self._conn.execute("SELECT 1").fetchone()

    def init_schema(self) -> None:
        def create() -> None:
            for statement in SCHEMA:
                self._conn.execute(statement)

        self._call("init_schema", create)

    def clear_data(self) -> None:
        def drop() -> None:
            for table in TABLES:
                self._conn.execute(f"DROP TABLE IF EXISTS {table}")

        self._call("clear_data", drop)

    def _insert_rows(self, table: str, columns: tuple[str, ...], params: list[Any], rows: int) -> None:
        if rows == 0:
            return
        query = (
            f"INSERT OR IGNORE INTO {table} ({', '.join(columns)}) "
            f"VALUES {_values_clause(rows, len(columns))}"
        )
        self._conn.execute(query, params)

    def _write_users(self, batch: Sequence[User]) -> None:
        params: list[Any] = []
        for u in batch:
            params.extend((u.id, u.name))
        self._insert_rows("users", ("id", "name"), params, len(batch))

    def _write_products(self, batch: Sequence[Product]) -> None:
        params: list[Any] = []
        for p in batch:
            params.extend((p.id, p.name, p.price))
        self._insert_rows("products", ("id", "name", "price"), params, len(batch))

    def _write_follows(self, batch: Sequence[Follow]) -> None:
        params: list[Any] = []
        for f in batch:
            params.extend((f.follower_id, f.followed_id))
        self._insert_rows("follows", ("follower_id", "followed_id"), params, len(batch))

    def _write_purchases(self, batch: Sequence[Purchase]) -> None:
        params: list[Any] = []
        for p in batch:
            params.extend((p.user_id, p.product_id))
        self._insert_rows("purchases", ("user_id", "product_id"), params, len(batch))

    def count_entities(self) -> EntityCounts:
        def count() -> EntityCounts:
            counts = {}
            for table in TABLES:
                row = self._conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
                counts[table] = row[0] if row else 0
            return EntityCounts(**counts)

        return self._call("count_entities", count)

    @staticmethod
    def _to_result(rows: list[tuple[Any, ...]]) -> FollowerQueryResult:
        return FollowerQueryResult(
            products=tuple(
                ProductCount(id=int(r[0]), name=r[1], price=float(r[2]), count=int(r[3])) for r in rows
            )
        )

    def _products_by_followers(self, user_id: int, depth: int) -> FollowerQueryResult:
        rows = self._conn.execute(PRODUCTS_BY_FOLLOWERS, {"user_id": user_id, "depth": depth}).fetchall()
        return self._to_result(rows)

    def _product_by_followers(self, user_id: int, product_id: int, depth: int) -> FollowerQueryResult:
        rows = self._conn.execute(
            PRODUCT_BY_FOLLOWERS,
            {"user_id": user_id, "product_id": product_id, "depth": depth},
        ).fetchall()
        return self._to_result(rows)

    def _viral_count(self, product_id: int, depth: int) -> int:
        if depth == 0:
            row = self._conn.execute(DIRECT_BUYERS, {"product_id": product_id}).fetchone()
        else:
            row = self._conn.execute(VIRAL_COUNT, {"product_id": product_id, "depth": depth}).fetchone()
        return int(row[0]) if row else 0

    def execute_query(self, query: str, *, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Execute raw SQL and return rows as dictionaries."""

        def run() -> list[dict[str, Any]]:
            result = self._conn.execute(query, params) if params else self._conn.execute(query)
            columns = [desc[0] for desc in result.description] if result.description else []
            return [dict(zip(columns, row, strict=False)) for row in result.fetchall()]

        return self._call("execute_query", run, query=query)
