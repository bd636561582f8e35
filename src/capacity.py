"""Identifier length planning.

Maps a counter value to the tier of identifier values reserved for its
length: how many base62 digits are needed, how many values shorter tiers
already consume, and how many values remain at this length.
"""

import logging
from dataclasses import dataclass

from src.base62 import BASE

# Configure logging
logger = logging.getLogger(__name__)


class CapacityComputationError(Exception):
    """Raised when a tier cannot be computed for a counter value."""

    pass


@dataclass(frozen=True)
class Tier:
    """Numeric range reserved for identifiers of one length.

    Attributes:
        required_digits: Number of base62 digits for this tier
        unavailable: Count of values consumed by shorter tiers (tier offset)
        capacity: Number of distinct values available in this tier
    """

    required_digits: int
    unavailable: int
    capacity: int

    def contains(self, iteration: int) -> bool:
        """Check whether a counter value falls inside this tier."""
        return self.unavailable <= iteration < self.unavailable + self.capacity


def plan_capacity(iteration: int) -> Tier:
    """Compute the tier for a counter value.

    The digit count is ceil(log62(iteration + 1)), floored at one digit,
    computed with integer arithmetic so that exact powers of 62 land in
    the right tier.

    Args:
        iteration: Non-negative counter value

    Returns:
        Tier for the counter value

    Raises:
        CapacityComputationError: If iteration is invalid or the arithmetic fails
    """
    if not isinstance(iteration, int) or isinstance(iteration, bool):
        raise CapacityComputationError(
            f"Iteration must be an integer, got {type(iteration).__name__}"
        )
    if iteration < 0:
        raise CapacityComputationError(
            f"Iteration must be non-negative, got {iteration}"
        )

    try:
        required_digits = 1
        while BASE**required_digits < iteration + 1:
            required_digits += 1

        unavailable = BASE ** (required_digits - 1)
        if unavailable == 1:
            unavailable = 0

        capacity = max(BASE, BASE**required_digits - unavailable)
    except (ArithmeticError, MemoryError) as e:
        logger.error(f"Failed to compute capacity for iteration {iteration}: {e}")
        raise CapacityComputationError(
            f"Failed to compute capacity for iteration {iteration}: {e}"
        )

    return Tier(
        required_digits=required_digits,
        unavailable=unavailable,
        capacity=capacity,
    )
