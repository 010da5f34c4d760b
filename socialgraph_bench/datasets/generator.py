r"""
Synthetic social-commerce dataset generator.

Generates User and Product nodes, FOLLOWS edges between users and
PURCHASED edges from users to products. Out-degrees are bounded per user;
self-follows and duplicate pairs are rejected, so the realised degree can
be lower than the number of draws.

    from socialgraph_bench.datasets.generator import SocialCommerceGenerator

    dataset = SocialCommerceGenerator().generate(get_scale("small"))
"""

import random

from socialgraph_bench.errors import ValidationError
from socialgraph_bench.types import Dataset, Follow, GenerationConfig, Product, Purchase, User

__all__ = ["SocialCommerceGenerator", "generate"]

FIRST_NAMES = [
    "Alice", "Bob", "Charlie", "Diana", "Eve", "Frank", "Grace", "Hank",
    "Iris", "Jack", "Karen", "Leo", "Mia", "Noah", "Olivia", "Paul",
    "Quinn", "Rita", "Sam", "Tina", "Uma", "Victor", "Wendy", "Xander",
]

LAST_NAMES = [
    "Smith", "Johnson", "Brown", "Davis", "Wilson", "Moore", "Taylor",
    "Anderson", "Thomas", "Jackson", "White", "Harris", "Martin", "Garcia",
]

PRODUCT_ADJECTIVES = ["Premium", "Classic", "Ultra", "Eco", "Pro", "Smart", "Mega", "Mini"]

PRODUCT_NOUNS = [
    "Widget", "Gadget", "Device", "Tool", "Kit", "Pack", "Box", "Set",
    "Module", "Unit", "System", "Component", "Adapter", "Cable", "Screen",
]

MIN_PRICE = 1.0
MAX_PRICE = 501.0


class SocialCommerceGenerator:
    """Random users, products, follows and purchases."""

    def __init__(self, *, seed: int | None = None) -> None:
        """Initialize generator.

        Args:
            seed: Random seed for reproducibility. None draws a fresh dataset
                on every call.
        """
        self._seed = seed

    @property
    def name(self) -> str:
        return "social_commerce"

    def generate(self, config: GenerationConfig) -> Dataset:
        """Generate one dataset.

        Args:
            config: Volume parameters.

        Returns:
            Immutable dataset whose edges only reference generated ids.

        Raises:
            ValidationError: If any volume parameter is negative.
        """
        for field_name in ("users", "products", "max_followers", "max_purchases"):
            value = getattr(config, field_name)
            if value < 0:
                msg = f"{field_name} must be >= 0, got {value}"
                raise ValidationError(msg)

        rng = random.Random(self._seed)

        users = tuple(
            User(id=i, name=f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)} {i}")
            for i in range(1, config.users + 1)
        )
        products = tuple(
            Product(
                id=i,
                name=f"{rng.choice(PRODUCT_ADJECTIVES)} {rng.choice(PRODUCT_NOUNS)} {i}",
                price=round(rng.uniform(MIN_PRICE, MAX_PRICE), 2),
            )
            for i in range(1, config.products + 1)
        )

        return Dataset(
            users=users,
            products=products,
            follows=self._generate_follows(rng, config.users, config.max_followers),
            purchases=self._generate_purchases(rng, config.users, config.products, config.max_purchases),
        )

    def _generate_follows(self, rng: random.Random, user_count: int, max_followers: int) -> tuple[Follow, ...]:
        """Generate FOLLOWS edges, skipping self-loops and repeats."""
        follows: list[Follow] = []
        seen: set[tuple[int, int]] = set()

        for follower in range(1, user_count + 1):
            for _ in range(rng.randint(0, max_followers)):
                followed = rng.randint(1, user_count)
                if followed == follower or (follower, followed) in seen:
                    continue
                seen.add((follower, followed))
                follows.append(Follow(follower_id=follower, followed_id=followed))

        return tuple(follows)

    def _generate_purchases(
        self, rng: random.Random, user_count: int, product_count: int, max_purchases: int
    ) -> tuple[Purchase, ...]:
        """Generate PURCHASED edges, skipping repeats."""
        if product_count == 0:
            return ()

        purchases: list[Purchase] = []
        seen: set[tuple[int, int]] = set()

        for user in range(1, user_count + 1):
            for _ in range(rng.randint(0, max_purchases)):
                product = rng.randint(1, product_count)
                if (user, product) in seen:
                    continue
                seen.add((user, product))
                purchases.append(Purchase(user_id=user, product_id=product))

        return tuple(purchases)


def generate(
    user_count: int,
    product_count: int,
    max_followers_per_user: int,
    max_purchases_per_user: int,
    *,
    seed: int | None = None,
) -> Dataset:
    """Generate a dataset from raw volume parameters."""
    config = GenerationConfig(
        name="custom",
        users=user_count,
        products=product_count,
        max_followers=max_followers_per_user,
        max_purchases=max_purchases_per_user,
    )
    return SocialCommerceGenerator(seed=seed).generate(config)
