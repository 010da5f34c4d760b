r"""
socialgraph-bench: relational vs. graph reachability benchmark.

Generates a synthetic social-commerce dataset (users, products, follows,
purchases), loads it into DuckDB and Neo4j, and compares the latency of
three follower-circle queries at increasing traversal depths.

    from socialgraph_bench import get_scale
    from socialgraph_bench.datasets import SocialCommerceGenerator

    dataset = SocialCommerceGenerator(seed=42).generate(get_scale("small"))
"""

from socialgraph_bench.config import DEFAULT_SCALE, SCALES, get_scale
from socialgraph_bench.errors import BackendError, SocialGraphBenchError, ValidationError
from socialgraph_bench.types import BackendKind, Dataset, GenerationConfig, QueryId

__all__ = [
    "BackendError",
    "BackendKind",
    "DEFAULT_SCALE",
    "Dataset",
    "GenerationConfig",
    "QueryId",
    "SCALES",
    "SocialGraphBenchError",
    "ValidationError",
    "get_scale",
]

__version__ = "0.1.0"
