r"""
Command-line interface for socialgraph-bench.

    socialgraph-bench inject -d both -s small
    socialgraph-bench query -d graph -q 1 --user-id 1 --depth 2
    socialgraph-bench benchmark --user-id 1 --product-id 5 --depths 1,2,3
"""

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Annotated

import typer

from socialgraph_bench.backends import BACKENDS, create_backend
from socialgraph_bench.config import DEFAULT_SCALE, get_scale
from socialgraph_bench.datasets import SocialCommerceGenerator
from socialgraph_bench.errors import SocialGraphBenchError, ValidationError
from socialgraph_bench.protocols import StorageBackend
from socialgraph_bench.runner import BenchmarkHarness, resolve_targets
from socialgraph_bench.service import BenchmarkRequest, BenchmarkService, QueryRequest
from socialgraph_bench.types import BackendKind, GenerationConfig

__all__ = ["app", "main"]

log = logging.getLogger(__name__)

app = typer.Typer(
    name="socialgraph-bench",
    help="Relational vs. graph reachability benchmark on a social-commerce dataset.",
    no_args_is_help=True,
)


@app.callback()
def configure(
    verbose: Annotated[bool, typer.Option("-v", "--verbose", help="Verbose output")] = False,
) -> None:
    """Configure logging for all commands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _parse_depths(depths: str) -> list[int]:
    try:
        values = [int(d) for d in depths.split(",") if d.strip()]
    except ValueError as e:
        msg = f"Invalid depths '{depths}': expected comma-separated integers"
        raise ValidationError(msg) from e
    if not values:
        msg = "At least one depth is required"
        raise ValidationError(msg)
    return values


def _fail(error: Exception) -> typer.Exit:
    typer.echo(f"Error: {error}", err=True)
    return typer.Exit(1)


@contextmanager
def _harness(kinds: list[BackendKind], *, batch_size: int | None = None) -> Iterator[BenchmarkHarness]:
    """Connect the requested backends, disconnecting them on exit."""
    backends: dict[BackendKind, StorageBackend] = {}
    try:
        for kind in kinds:
            backend = create_backend(kind)
            backend.connect()
            backends[kind] = backend
        yield BenchmarkHarness(backends, batch_size=batch_size)
    finally:
        for backend in backends.values():
            backend.disconnect()


@app.command()
def inject(
    database: Annotated[str, typer.Option("-d", "--database", help="relational, graph or both")] = "both",
    scale: Annotated[str, typer.Option("-s", "--scale", help="Scale: tiny, small, medium, large")] = DEFAULT_SCALE,
    users: Annotated[int | None, typer.Option("--users", help="Override user count")] = None,
    products: Annotated[int | None, typer.Option("--products", help="Override product count")] = None,
    max_followers: Annotated[int | None, typer.Option("--max-followers", help="Override follows drawn per user")] = None,
    max_purchases: Annotated[
        int | None, typer.Option("--max-purchases", help="Override purchases drawn per user")
    ] = None,
    seed: Annotated[int | None, typer.Option("--seed", help="Random seed")] = None,
    batch_size: Annotated[int | None, typer.Option("--batch-size", help="Rows per insert batch")] = None,
) -> None:
    """Generate one dataset and load it into one or both backends."""
    try:
        preset = get_scale(scale)
        config = GenerationConfig(
            name=preset.name if all(v is None for v in (users, products, max_followers, max_purchases)) else "custom",
            users=preset.users if users is None else users,
            products=preset.products if products is None else products,
            max_followers=preset.max_followers if max_followers is None else max_followers,
            max_purchases=preset.max_purchases if max_purchases is None else max_purchases,
        )
        dataset = SocialCommerceGenerator(seed=seed).generate(config)
        typer.echo(f"Generated dataset '{config.name}': {dataset.counts().to_dict()}")

        with _harness(resolve_targets(database), batch_size=batch_size) as harness:
            reports = harness.inject(dataset, database)
    except SocialGraphBenchError as e:
        raise _fail(e) from e

    for report in reports:
        t = report.timings
        typer.echo(
            f"  [{report.database.value}] users={t.users:.2f}ms products={t.products:.2f}ms "
            f"follows={t.follows:.2f}ms purchases={t.purchases:.2f}ms total={t.total:.2f}ms"
        )


@app.command()
def query(
    database: Annotated[str, typer.Option("-d", "--database", help="relational or graph")],
    query_id: Annotated[int, typer.Option("-q", "--query-id", help="Query: 1, 2 or 3")],
    depth: Annotated[float, typer.Option("--depth", help="Traversal depth")] = 1,
    user_id: Annotated[int | None, typer.Option("--user-id", help="Seed user (queries 1, 2)")] = None,
    product_id: Annotated[int | None, typer.Option("--product-id", help="Product (queries 2, 3)")] = None,
) -> None:
    """Run one timed query against one backend."""
    try:
        request = QueryRequest.from_dict(
            {"database": database, "queryId": query_id, "userId": user_id, "productId": product_id, "depth": depth}
        )
        with _harness([request.database]) as harness:
            response = BenchmarkService(harness).query(request)
    except SocialGraphBenchError as e:
        raise _fail(e) from e

    typer.echo(json.dumps(response, indent=2))


@app.command()
def benchmark(
    user_id: Annotated[int, typer.Option("--user-id", help="Seed user for queries 1, 2")],
    product_id: Annotated[int, typer.Option("--product-id", help="Product for queries 2, 3")],
    depths: Annotated[str, typer.Option("--depths", help="Comma-separated depths")] = "1,2,3",
    iterations: Annotated[int, typer.Option("-i", "--iterations", help="Timed calls per cell")] = 1,
    as_json: Annotated[bool, typer.Option("--json", help="Print cells as JSON")] = False,
) -> None:
    """Time every query at every depth on both backends."""
    try:
        request = BenchmarkRequest.from_dict(
            {
                "userId": user_id,
                "productId": product_id,
                "depths": _parse_depths(depths),
                "iterations": iterations,
            }
        )
        with _harness(list(BackendKind)) as harness:
            cells = BenchmarkService(harness).benchmark(request)
    except SocialGraphBenchError as e:
        raise _fail(e) from e

    if as_json:
        typer.echo(json.dumps(cells, indent=2))
        return

    typer.echo(f"{'query':>5} {'depth':>5} {'relational ms':>14} {'graph ms':>10}")
    for cell in cells:
        rel = "failed" if cell["relationalTimeMs"] is None else f"{cell['relationalTimeMs']:.2f}"
        graph = "failed" if cell["graphTimeMs"] is None else f"{cell['graphTimeMs']:.2f}"
        typer.echo(f"{cell['queryId']:>5} {cell['depth']:>5} {rel:>14} {graph:>10}")
    failed = sum(1 for c in cells if "relationalError" in c or "graphError" in c)
    typer.echo(f"\nCompleted: {len(cells) - failed} successful, {failed} failed")


@app.command()
def parity(
    user_id: Annotated[int, typer.Option("--user-id", help="Seed user for queries 1, 2")],
    product_id: Annotated[int, typer.Option("--product-id", help="Product for queries 2, 3")],
    depths: Annotated[str, typer.Option("--depths", help="Comma-separated depths")] = "1,2,3",
) -> None:
    """Check both backends return identical results."""
    try:
        depth_list = _parse_depths(depths)
        with _harness(list(BackendKind)) as harness:
            report = harness.check_parity(user_id, product_id, depth_list)
    except SocialGraphBenchError as e:
        raise _fail(e) from e

    for mismatch in report.mismatches:
        typer.echo(f"Mismatch q{int(mismatch.query_id)} depth={mismatch.depth}", err=True)
        typer.echo(f"  relational: {json.dumps(mismatch.relational)}", err=True)
        typer.echo(f"  graph:      {json.dumps(mismatch.graph)}", err=True)
    typer.echo(f"Checked {report.checked} queries, {len(report.mismatches)} mismatches")
    if not report.ok:
        raise typer.Exit(1)


@app.command()
def health() -> None:
    """Report connectivity of both backends."""
    status: dict[str, str] = {}
    for kind in BackendKind:
        backend = create_backend(kind)
        try:
            backend.connect()
        except (SocialGraphBenchError, ImportError) as e:
            log.debug("%s connect failed: %s", kind.value, e)
            status[kind.value] = "disconnected"
            continue
        try:
            status.update(BenchmarkHarness({kind: backend}).health())
        finally:
            backend.disconnect()
    typer.echo(json.dumps(status, indent=2))


@app.command()
def backends(
    action: Annotated[str, typer.Argument(help="Action: list, test")] = "list",
    name: Annotated[str | None, typer.Option("-n", "--name", help="Backend key")] = None,
    uri: Annotated[str | None, typer.Option("--uri", help="Connection URI")] = None,
) -> None:
    """List and test storage backends."""
    if action == "list":
        typer.echo("Available backends:")
        for kind, backend_class in BACKENDS.items():
            typer.echo(f"  - {kind.value}: {backend_class().name}")
    elif action == "test":
        if not name:
            typer.echo("Error: --name required for test", err=True)
            raise typer.Exit(1)

        try:
            backend = create_backend(name)
            backend.connect(uri=uri)
            typer.echo(f"Successfully connected to {backend.name} (version: {backend.version})")
            backend.disconnect()
        except SocialGraphBenchError as e:
            typer.echo(f"Failed to connect to {name}: {e}", err=True)
            raise typer.Exit(1) from e
    else:
        typer.echo(f"Unknown action: {action}", err=True)
        raise typer.Exit(1)


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
