r"""
Command-line interface for socialgraph-bench.

    socialgraph-bench --help
"""

from socialgraph_bench.cli.main import app, main

__all__ = ["app", "main"]
