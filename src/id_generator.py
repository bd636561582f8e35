"""Short link ID generation.

This module turns counter values into the shortest available base62 IDs.
Within each length tier the counter is permuted by a seeded multiplier so
consecutive links do not receive consecutive IDs, and every counter value
maps to a distinct ID. IDGenerator wraps the mapping with counter fetching
and collision detection.
"""

import logging
import secrets
import time
from dataclasses import dataclass
from typing import Callable, Protocol

from src.base62 import encode
from src.capacity import plan_capacity
from src.permutation import create_generator

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_SEED = "lytnit"
MAX_ATTEMPTS = 10


class CounterSource(Protocol):
    """Anything that hands out the next counter value for a seed."""

    def next(self, seed: str) -> int: ...


class ExhaustedAttempts(Exception):
    """Raised when every allocation attempt collided with an existing ID."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"Unable to generate unique ID after maximum attempts ({attempts})"
        )


@dataclass
class AllocationResult:
    """Outcome of a successful allocation.

    Attributes:
        identifier: Accepted base62 ID
        iteration: Counter value the ID was derived from
        attempts: Number of collisions before the ID was accepted
        degraded: True if any counter fetch fell back to a time-derived value
    """

    identifier: str
    iteration: int
    attempts: int
    degraded: bool = False


def generate_id(iteration: int, seed: str) -> str:
    """Map a counter value to its base62 ID.

    Args:
        iteration: Non-negative counter value
        seed: Allocation namespace seed

    Returns:
        Base62 ID, deterministic for a given (iteration, seed)

    Raises:
        CapacityComputationError: If the tier cannot be computed
        NoCoprimeGeneratorFound: If no multiplier exists for the tier
    """
    tier = plan_capacity(iteration)
    generator = create_generator(tier.capacity, seed)

    value = ((iteration - tier.unavailable) * generator) % tier.capacity
    return encode(value + tier.unavailable)


def fallback_iteration(clock: Callable[[], float] = time.time) -> int:
    """Derive a pseudo-iteration from wall-clock time.

    Only used when the counter source is unreachable. Values from this
    path are not guaranteed to be unused.
    """
    return secrets.randbelow(1000) + int(clock() * 1000) % 10000


class IDGenerator:
    """Allocates unique short link IDs from a counter source.

    Each attempt consumes one counter value. Candidates that already exist
    are discarded and a fresh counter value is fetched, up to max_attempts
    collisions.
    """

    def __init__(
        self,
        counter_source: CounterSource,
        seed: str = DEFAULT_SEED,
        max_attempts: int = MAX_ATTEMPTS,
        conflict_on_check_error: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize ID generator.

        Args:
            counter_source: Source of per-seed counter values
            seed: Allocation namespace seed
            max_attempts: Collisions tolerated before giving up
            conflict_on_check_error: Treat a failed existence check as a
                collision instead of accepting the candidate
            clock: Time source for the degraded-mode fallback iteration
        """
        self.counter_source = counter_source
        self.seed = seed
        self.max_attempts = max_attempts
        self.conflict_on_check_error = conflict_on_check_error
        self.clock = clock

    def generate(self, exists_check: Callable[[str], bool]) -> AllocationResult:
        """Generate a unique ID with collision detection.

        Args:
            exists_check: Function that returns True if an ID already exists

        Returns:
            AllocationResult for the accepted ID

        Raises:
            ExhaustedAttempts: If max_attempts consecutive candidates collided
            CapacityComputationError: If a counter value cannot be planned
            NoCoprimeGeneratorFound: If no multiplier exists for a tier
        """
        attempts = 0
        degraded = False

        while True:
            iteration, fell_back = self._next_iteration()
            degraded = degraded or fell_back

            candidate = generate_id(iteration, self.seed)
            logger.debug(
                f"Generated candidate {candidate} from iteration {iteration}"
            )

            if not self._has_conflict(candidate, exists_check):
                logger.info(
                    f"Allocated ID {candidate} after {attempts} conflicts"
                    + (" (degraded counter)" if degraded else "")
                )
                return AllocationResult(
                    identifier=candidate,
                    iteration=iteration,
                    attempts=attempts,
                    degraded=degraded,
                )

            attempts += 1
            logger.info(
                f"Conflict: {candidate} already exists "
                f"({attempts}/{self.max_attempts})"
            )

            if attempts >= self.max_attempts:
                logger.error(
                    f"Unable to generate unique ID after {self.max_attempts} attempts"
                )
                raise ExhaustedAttempts(attempts)

    def _next_iteration(self) -> tuple[int, bool]:
        """Fetch the next counter value, falling back to a time-derived one.

        Returns:
            Tuple of (iteration, degraded)
        """
        try:
            return self.counter_source.next(self.seed), False
        except Exception as e:
            iteration = fallback_iteration(self.clock)
            logger.warning(
                f"Counter source unavailable for seed {self.seed!r}: {e}. "
                f"Using fallback iteration {iteration}; uniqueness is not guaranteed"
            )
            return iteration, True

    def _has_conflict(
        self, candidate: str, exists_check: Callable[[str], bool]
    ) -> bool:
        try:
            return exists_check(candidate)
        except Exception as e:
            outcome = "conflict" if self.conflict_on_check_error else "no conflict"
            logger.warning(
                f"Existence check failed for {candidate}: {e}. Treating as {outcome}"
            )
            return self.conflict_on_check_error
