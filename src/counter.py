"""SQLite-backed allocation counters.

Each seed owns one monotonically increasing counter. The next value is
produced by reading the current value and then writing the increment (or
creating the counter on first use), which is not atomic across concurrent
callers; duplicate values are caught later by the allocator's existence
check.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Optional

# Configure logging
logger = logging.getLogger(__name__)


class CounterSourceUnavailable(Exception):
    """Raised when a counter cannot be read or written."""

    pass


class CounterAlreadyExists(CounterSourceUnavailable):
    """Raised when creating a counter that another caller has just created."""

    pass


class CounterStore:
    """SQLite storage for per-seed allocation counters.

    Schema:
    CREATE TABLE counters (
        seed TEXT PRIMARY KEY,
        iteration INTEGER NOT NULL
    )
    """

    def __init__(self, database_path: str):
        """Initialize counter store with database path.

        Args:
            database_path: Path to SQLite database file

        Raises:
            CounterSourceUnavailable: If database initialization fails
        """
        self.database_path = Path(database_path)

        try:
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create counter database directory: {e}")
            raise CounterSourceUnavailable(
                f"Failed to create counter database directory: {e}"
            )

        self.initialize()

    def initialize(self) -> None:
        """Create the counters table if it does not exist."""
        try:
            conn = sqlite3.connect(str(self.database_path))
            conn.execute("""
                CREATE TABLE IF NOT EXISTS counters (
                    seed TEXT PRIMARY KEY,
                    iteration INTEGER NOT NULL
                )
            """)
            conn.commit()
            conn.close()
            logger.debug("Counter schema initialized successfully")
        except sqlite3.Error as e:
            logger.error(f"Failed to initialize counter schema: {e}")
            raise CounterSourceUnavailable(f"Failed to initialize counter schema: {e}")

    def get(self, seed: str) -> Optional[int]:
        """Read the current counter value for a seed.

        Returns:
            Current value, or None if the seed has no counter yet
        """
        try:
            conn = sqlite3.connect(str(self.database_path))
            row = conn.execute(
                "SELECT iteration FROM counters WHERE seed = ?", (seed,)
            ).fetchone()
            conn.close()
        except sqlite3.Error as e:
            logger.error(f"Failed to read counter for seed {seed!r}: {e}")
            raise CounterSourceUnavailable(f"Failed to read counter: {e}")

        return None if row is None else row[0]

    def create(self, seed: str, initial_value: int) -> int:
        """Create the counter for a seed.

        Raises:
            CounterAlreadyExists: If the counter already exists
            CounterSourceUnavailable: If the write fails
        """
        try:
            conn = sqlite3.connect(str(self.database_path))
            conn.execute(
                "INSERT INTO counters (seed, iteration) VALUES (?, ?)",
                (seed, initial_value),
            )
            conn.commit()
            conn.close()
        except sqlite3.IntegrityError as e:
            logger.warning(f"Counter for seed {seed!r} already exists")
            raise CounterAlreadyExists(f"Counter already exists: {e}")
        except sqlite3.Error as e:
            logger.error(f"Failed to create counter for seed {seed!r}: {e}")
            raise CounterSourceUnavailable(f"Failed to create counter: {e}")

        logger.info(f"Created counter for seed {seed!r} at {initial_value}")
        return initial_value

    def update(self, seed: str, new_value: int) -> int:
        """Overwrite the counter value for a seed.

        Raises:
            CounterSourceUnavailable: If the counter is missing or the write fails
        """
        try:
            conn = sqlite3.connect(str(self.database_path))
            cursor = conn.execute(
                "UPDATE counters SET iteration = ? WHERE seed = ?",
                (new_value, seed),
            )
            conn.commit()
            updated = cursor.rowcount
            conn.close()
        except sqlite3.Error as e:
            logger.error(f"Failed to update counter for seed {seed!r}: {e}")
            raise CounterSourceUnavailable(f"Failed to update counter: {e}")

        if updated == 0:
            raise CounterSourceUnavailable(f"No counter exists for seed {seed!r}")

        return new_value

    def next(self, seed: str) -> int:
        """Return the next counter value for a seed, creating it at 1 if absent.

        If another caller creates the counter between the read and the
        create, the fresh value is re-read and incremented instead.
        """
        current = self.get(seed)
        if current is None:
            try:
                return self.create(seed, 1)
            except CounterAlreadyExists:
                logger.info(f"Counter for seed {seed!r} created concurrently")
                current = self.get(seed)
                if current is None:
                    raise
        return self.update(seed, current + 1)
