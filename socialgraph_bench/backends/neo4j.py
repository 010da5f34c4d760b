r"""
Graph-native backend on Neo4j.

Follower circles are variable-length FOLLOWS paths (1..d hops). A
traversal yields one row per path, so endpoints are made DISTINCT before
PURCHASED is matched and counted.

Requires: pip install neo4j

Environment variables:
    SOCIALGRAPH_BENCH_NEO4J_URI: Connection URI (default: bolt://localhost:7687)
    SOCIALGRAPH_BENCH_NEO4J_USER: Username (default: neo4j)
    SOCIALGRAPH_BENCH_NEO4J_PASSWORD: Password (default: benchmark)

    from socialgraph_bench.backends.neo4j import Neo4jBackend

    backend = Neo4jBackend()
    backend.connect(uri="bolt://localhost:7687", user="neo4j", password="password")
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

__all__ = ["Neo4jBackend"]

log = logging.getLogger(__name__)

SCHEMA = [
    "CREATE CONSTRAINT user_id IF NOT EXISTS FOR (u:User) REQUIRE u.id IS UNIQUE",
    "CREATE CONSTRAINT product_id IF NOT EXISTS FOR (p:Product) REQUIRE p.id IS UNIQUE",
    "CREATE INDEX user_name_idx IF NOT EXISTS FOR (u:User) ON (u.name)",
]

MERGE_USERS = """
UNWIND $batch AS row
MERGE (u:User {id: row.id})
ON CREATE SET u.name = row.name
"""

MERGE_PRODUCTS = """
UNWIND $batch AS row
MERGE (p:Product {id: row.id})
ON CREATE SET p.name = row.name, p.price = row.price
"""

MERGE_FOLLOWS = """
UNWIND $batch AS row
MATCH (a:User {id: row.follower_id})
MATCH (b:User {id: row.followed_id})
MERGE (a)-[:FOLLOWS]->(b)
"""

MERGE_PURCHASES = """
UNWIND $batch AS row
MATCH (u:User {id: row.user_id})
MATCH (p:Product {id: row.product_id})
MERGE (u)-[:PURCHASED]->(p)
"""

COUNTS = {
    "users": "MATCH (u:User) RETURN count(u) AS count",
    "products": "MATCH (p:Product) RETURN count(p) AS count",
    "follows": "MATCH (:User)-[r:FOLLOWS]->(:User) RETURN count(r) AS count",
    "purchases": "MATCH (:User)-[r:PURCHASED]->(:Product) RETURN count(r) AS count",
}


def products_by_followers_query(depth: int) -> str:
    # Variable-length bounds cannot be parameters; depth is an int here
    return f"""
    MATCH (u:User {{id: $userId}})-[:FOLLOWS*1..{depth}]->(follower:User)
    WITH DISTINCT follower
    MATCH (follower)-[:PURCHASED]->(p:Product)
    RETURN p.id AS id, p.name AS name, p.price AS price, count(follower) AS buyer_count
    ORDER BY buyer_count DESC, id ASC
    """


def product_by_followers_query(depth: int) -> str:
    return f"""
    MATCH (u:User {{id: $userId}})-[:FOLLOWS*1..{depth}]->(follower:User)
    WITH DISTINCT follower
    MATCH (follower)-[:PURCHASED]->(p:Product {{id: $productId}})
    RETURN p.id AS id, p.name AS name, p.price AS price, count(follower) AS buyer_count
    """


DIRECT_BUYERS = """
MATCH (buyer:User)-[:PURCHASED]->(:Product {id: $productId})
RETURN count(DISTINCT buyer) AS count
"""


def viral_count_query(depth: int) -> str:
    return f"""
    MATCH (buyer:User)-[:PURCHASED]->(p:Product {{id: $productId}})
    MATCH (buyer)-[:FOLLOWS*1..{depth}]->(follower:User)
    WITH DISTINCT follower, p
    MATCH (follower)-[:PURCHASED]->(p)
    RETURN count(follower) AS count
    """


class Neo4jBackend(BaseBackend):
    """Neo4j graph backend using Cypher path traversal."""

    def __init__(self) -> None:
        self._driver: Any = None
        self._connected = False

    @property
    def kind(self) -> BackendKind:
        return BackendKind.GRAPH

    @property
    def name(self) -> str:
        return "Neo4j"

    @property
    def version(self) -> str:
        if not self._connected or self._driver is None:
            return "unknown"
        try:
            with self._driver.session() as session:
                result = session.run("CALL dbms.components() YIELD versions RETURN versions[0] AS version")
                record = result.single()
                return record["version"] if record else "unknown"
        except Exception:
            return "unknown"

    def connect(self, *, uri: str | None = None, **kwargs: Any) -> None:
        try:
            from neo4j import GraphDatabase
        except ImportError as e:
            msg = "neo4j package not installed. Install with: pip install neo4j"
            raise ImportError(msg) from e

        uri = uri or get_env("NEO4J_URI", default="bolt://localhost:7687")
        user = kwargs.get("user") or get_env("NEO4J_USER", default="neo4j")
        password = kwargs.get("password") or get_env("NEO4J_PASSWORD", default="benchmark")

        auth = (user, password) if password else None
        try:
            self._driver = GraphDatabase.driver(uri, auth=auth)
            self._driver.verify_connectivity()
        except Exception as e:
            self.disconnect()
            raise BackendError(self.kind.value, "connect", str(e), params={"uri": uri}) from e
        self._connected = True
        log.info("Connected to Neo4j at %s", uri)

    def disconnect(self) -> None:
        if self._driver:
            self._driver.close()
            self._driver = None
        self._connected = False

    def _run(self, query: str, **params: Any) -> list[dict[str, Any]]:
        with self._driver.session() as session:
            result = session.run(query, **params)
            return [dict(record) for record in result]

    def _ping(self) -> None:
        self._driver.verify_connectivity()

    def init_schema(self) -> None:
        def create() -> None:
            for statement in SCHEMA:
                self._run(statement)

        self._call("init_schema", create)

    def clear_data(self) -> None:
        self._call("clear_data", lambda: self._run("MATCH (n) DETACH DELETE n"))

    def _write_users(self, batch: Sequence[User]) -> None:
        self._run(MERGE_USERS, batch=[{"id": u.id, "name": u.name} for u in batch])

    def _write_products(self, batch: Sequence[Product]) -> None:
        self._run(MERGE_PRODUCTS, batch=[{"id": p.id, "name": p.name, "price": p.price} for p in batch])

    def _write_follows(self, batch: Sequence[Follow]) -> None:
        self._run(
            MERGE_FOLLOWS,
            batch=[{"follower_id": f.follower_id, "followed_id": f.followed_id} for f in batch],
        )

    def _write_purchases(self, batch: Sequence[Purchase]) -> None:
        self._run(
            MERGE_PURCHASES,
            batch=[{"user_id": p.user_id, "product_id": p.product_id} for p in batch],
        )

    def count_entities(self) -> EntityCounts:
        def count() -> EntityCounts:
            counts = {}
            for entity, query in COUNTS.items():
                records = self._run(query)
                counts[entity] = records[0]["count"] if records else 0
            return EntityCounts(**counts)

        return self._call("count_entities", count)

    @staticmethod
    def _to_result(records: list[dict[str, Any]]) -> FollowerQueryResult:
        return FollowerQueryResult(
            products=tuple(
                ProductCount(
                    id=int(r["id"]),
                    name=r["name"],
                    price=round(float(r["price"]), 2),
                    count=int(r["buyer_count"]),
                )
                for r in records
            )
        )

    def _products_by_followers(self, user_id: int, depth: int) -> FollowerQueryResult:
        records = self._run(products_by_followers_query(depth), userId=user_id)
        return self._to_result(records)

    def _product_by_followers(self, user_id: int, product_id: int, depth: int) -> FollowerQueryResult:
        records = self._run(product_by_followers_query(depth), userId=user_id, productId=product_id)
        return self._to_result(records)

    def _viral_count(self, product_id: int, depth: int) -> int:
        query = DIRECT_BUYERS if depth == 0 else viral_count_query(depth)
        records = self._run(query, productId=product_id)
        return int(records[0]["count"]) if records else 0

    def execute_query(self, query: str, *, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Execute raw Cypher and return records as dictionaries."""
        return self._call("execute_query", lambda: self._run(query, **(params or {})), query=query)
