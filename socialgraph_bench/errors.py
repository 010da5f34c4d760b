r"""
Exception hierarchy for socialgraph-bench.

    from socialgraph_bench.errors import BackendError, ValidationError

    try:
        harness.run_query("graph", 1, depth=2)
    except ValidationError as e:
        print(f"Bad request: {e}")
"""

from typing import Any

__all__ = ["SocialGraphBenchError", "ValidationError", "BackendError"]


class SocialGraphBenchError(Exception):
    """Base class for all socialgraph-bench errors."""


class ValidationError(SocialGraphBenchError, ValueError):
    """Invalid request argument, raised before any backend call."""


class BackendError(SocialGraphBenchError, RuntimeError):
    """A storage backend call failed.

    Attributes:
        backend: Backend key (relational, graph).
        operation: Operation name (connect, insert_users, q1, ...).
        params: Parameters of the failing call.
    """

    def __init__(self, backend: str, operation: str, message: str, *, params: dict[str, Any] | None = None) -> None:
        self.backend = backend
        self.operation = operation
        self.params = params or {}
        detail = f"[{backend}] {operation} failed: {message}"
        if self.params:
            args = ", ".join(f"{k}={v!r}" for k, v in self.params.items())
            detail = f"{detail} ({args})"
        super().__init__(detail)
