r"""
Dataset generation for socialgraph-bench.

One generation run produces one immutable Dataset that every backend
loads, so comparisons run on identical data.

    from socialgraph_bench.datasets import generate

    dataset = generate(1_000, 200, 10, 5)
    print(dataset.counts())
"""

from socialgraph_bench.datasets.generator import SocialCommerceGenerator, generate

__all__ = [
    "SocialCommerceGenerator",
    "generate",
]
