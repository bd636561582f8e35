"""Seeded multipliers for permuting counter values within a tier.

Multiplying residues modulo a tier's capacity by a value coprime to that
capacity permutes them, which turns a sequential counter into
non-sequential looking identifiers without a lookup table.
"""

import hashlib
import logging
from functools import lru_cache
from math import gcd

# Configure logging
logger = logging.getLogger(__name__)


class NoCoprimeGeneratorFound(Exception):
    """Raised when no multiplier coprime to a capacity can be derived."""

    pass


def hash_seed(seed: str) -> int:
    """Return the first 32 bits of the SHA-256 digest of a seed."""
    digest = hashlib.sha256(seed.encode("utf-8")).hexdigest()
    return int(digest[:8], 16)


@lru_cache(maxsize=128)
def create_generator(capacity: int, seed: str) -> int:
    """Derive a multiplier coprime to capacity from a seed.

    The search starts at the hashed seed reduced modulo 80% of the
    capacity and walks upwards until a coprime value is found.

    Args:
        capacity: Size of the tier being permuted
        seed: Allocation namespace seed

    Returns:
        Integer generator with gcd(generator, capacity) == 1

    Raises:
        NoCoprimeGeneratorFound: If the walk reaches capacity without a coprime value
    """
    start_range = capacity * 4 // 5
    if start_range < 1:
        raise NoCoprimeGeneratorFound(
            f"Capacity {capacity} is too small to derive a generator"
        )

    generator = hash_seed(seed) % start_range
    while gcd(generator, capacity) != 1 and generator < capacity:
        generator += 1

    if gcd(generator, capacity) != 1:
        logger.error(f"No coprime generator for capacity {capacity}")
        raise NoCoprimeGeneratorFound(
            f"Could not find a generator that is relatively prime to the "
            f"capacity ({capacity})"
        )

    logger.debug(f"Generator for capacity {capacity}: {generator}")
    return generator
