r"""
Storage backends for socialgraph-bench.

Exactly two engines are compared, selected by BackendKind:

    - relational: DuckDBBackend (recursive SQL)
    - graph: Neo4jBackend (Cypher path traversal)

    from socialgraph_bench.backends import create_backend

    backend = create_backend("relational")
    backend.connect(uri=":memory:")
"""

from socialgraph_bench.backends.base import BaseBackend, follower_depth, iter_batches, viral_depth
from socialgraph_bench.backends.duckdb import DuckDBBackend
from socialgraph_bench.backends.neo4j import Neo4jBackend
from socialgraph_bench.types import BackendKind

__all__ = [
    "BACKENDS",
    "BaseBackend",
    "DuckDBBackend",
    "Neo4jBackend",
    "create_backend",
    "follower_depth",
    "iter_batches",
    "viral_depth",
]

BACKENDS: dict[BackendKind, type[BaseBackend]] = {
    BackendKind.RELATIONAL: DuckDBBackend,
    BackendKind.GRAPH: Neo4jBackend,
}


def create_backend(kind: str | BackendKind) -> BaseBackend:
    """Create an unconnected backend by key.

    Raises:
        ValidationError: If kind is not relational or graph.
    """
    return BACKENDS[BackendKind.parse(kind)]()
