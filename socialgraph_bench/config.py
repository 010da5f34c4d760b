r"""
Benchmark configuration and dataset scale presets.

Scales:
    - tiny: 100 users, 20 products (unit tests, quick checks)
    - small: 1K users, 200 products
    - medium: 10K users, 1K products (default)
    - large: 100K users, 10K products

Connection settings are read from environment variables prefixed with
SOCIALGRAPH_BENCH_ (a .env file in the working directory is honoured).

    from socialgraph_bench.config import get_scale

    scale = get_scale("small")
    print(f"Users: {scale.users}, Products: {scale.products}")
"""

import os
from pathlib import Path

from dotenv import load_dotenv

from socialgraph_bench.errors import ValidationError
from socialgraph_bench.types import GenerationConfig

# Look for .env in current dir, then next to the package
_env_file = Path(".env")
if not _env_file.exists():
    _env_file = Path(__file__).parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

__all__ = [
    "SCALES",
    "DEFAULT_SCALE",
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_DEPTHS",
    "ENV_PREFIX",
    "get_scale",
    "get_env",
    "get_batch_size",
]

ENV_PREFIX = "SOCIALGRAPH_BENCH_"

DEFAULT_BATCH_SIZE = 5000
DEFAULT_DEPTHS: tuple[int, ...] = (1, 2, 3)

SCALES: dict[str, GenerationConfig] = {
    "tiny": GenerationConfig(
        name="tiny",
        users=100,
        products=20,
        max_followers=5,
        max_purchases=3,
    ),
    "small": GenerationConfig(
        name="small",
        users=1_000,
        products=200,
        max_followers=10,
        max_purchases=5,
    ),
    "medium": GenerationConfig(
        name="medium",
        users=10_000,
        products=1_000,
        max_followers=20,
        max_purchases=5,
    ),
    # Follow circles grow quickly past depth 3 at this size
    "large": GenerationConfig(
        name="large",
        users=100_000,
        products=10_000,
        max_followers=20,
        max_purchases=5,
    ),
}

DEFAULT_SCALE = "medium"


def get_scale(name: str) -> GenerationConfig:
    """Get generation preset by name.

    Args:
        name: Scale name (tiny, small, medium, large).

    Returns:
        GenerationConfig for the requested scale.

    Raises:
        ValidationError: If scale name is not recognized.
    """
    if name not in SCALES:
        valid = ", ".join(SCALES.keys())
        msg = f"Unknown scale '{name}'. Valid scales: {valid}"
        raise ValidationError(msg)
    return SCALES[name]


def get_env(key: str, *, default: str | None = None) -> str | None:
    """Get environment variable with SOCIALGRAPH_BENCH_ prefix.

    Args:
        key: Variable name without prefix (e.g., "NEO4J_URI").
        default: Default value if not set.

    Returns:
        Environment variable value or default.
    """
    return os.environ.get(f"{ENV_PREFIX}{key}", default)


def get_batch_size() -> int:
    """Batch size for bulk loads, overridable with SOCIALGRAPH_BENCH_BATCH_SIZE."""
    raw = get_env("BATCH_SIZE")
    if raw is None:
        return DEFAULT_BATCH_SIZE
    try:
        size = int(raw)
    except ValueError as e:
        msg = f"{ENV_PREFIX}BATCH_SIZE must be an integer, got '{raw}'"
        raise ValidationError(msg) from e
    if size < 1:
        msg = f"{ENV_PREFIX}BATCH_SIZE must be positive, got {size}"
        raise ValidationError(msg)
    return size
