"""HTTP client for a remotely hosted allocation counter.

The counter service exposes one resource per seed:

    GET  {base_url}/counters/{seed}      -> {"seed": ..., "iteration": n} or 404
    POST {base_url}/counters             <- {"seed": ..., "iteration": n}
    PUT  {base_url}/counters/{seed}      <- {"iteration": n}

Creating a counter that already exists answers 409.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from src.counter import CounterAlreadyExists, CounterSourceUnavailable

# Configure logging
logger = logging.getLogger(__name__)


class RemoteCounterSource:
    """Counter source backed by a remote HTTP counter service."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 5,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Base URL of the counter service
            timeout: Per-request timeout in seconds
            session: Optional requests session (a new one is created if omitted)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def get(self, seed: str) -> Optional[int]:
        """Fetch the current counter value, or None if the seed has no counter."""
        response = self._request("GET", self._counter_url(seed), allow_missing=True)
        if response is None:
            return None
        return self._parse_iteration(response)

    def create(self, seed: str, initial_value: int) -> int:
        """Create the counter for a seed.

        Raises:
            CounterAlreadyExists: If the service reports a conflict (409)
            CounterSourceUnavailable: On any other failure
        """
        response = self._request(
            "POST",
            f"{self.base_url}/counters",
            json={"seed": seed, "iteration": initial_value},
        )
        iteration = self._parse_iteration(response)
        logger.info(f"Created remote counter for seed {seed!r} at {iteration}")
        return iteration

    def update(self, seed: str, new_value: int) -> int:
        """Overwrite the counter value for a seed."""
        response = self._request(
            "PUT", self._counter_url(seed), json={"iteration": new_value}
        )
        return self._parse_iteration(response)

    def next(self, seed: str) -> int:
        """Return the next counter value for a seed, creating it at 1 if absent."""
        current = self.get(seed)
        if current is None:
            try:
                return self.create(seed, 1)
            except CounterAlreadyExists:
                logger.info(f"Remote counter for seed {seed!r} created concurrently")
                current = self.get(seed)
                if current is None:
                    raise
        return self.update(seed, current + 1)

    def _counter_url(self, seed: str) -> str:
        return f"{self.base_url}/counters/{quote(seed, safe='')}"

    def _request(
        self,
        method: str,
        url: str,
        json: Optional[Dict[str, Any]] = None,
        allow_missing: bool = False,
    ) -> Optional[Dict[str, Any]]:
        """Send a request and return the decoded JSON body.

        Raises:
            CounterSourceUnavailable: On transport errors, error statuses or bad JSON
        """
        logger.debug(f"Counter request: {method} {url}")
        try:
            response = self.session.request(
                method, url, json=json, timeout=self.timeout
            )
            if allow_missing and response.status_code == 404:
                return None
            if response.status_code == 409:
                raise CounterAlreadyExists(f"Counter already exists: {url}")
            if response.status_code >= 400:
                logger.error(f"Response content: {response.text}")
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.error(f"Counter service request failed: {method} {url}: {e}")
            raise CounterSourceUnavailable(f"Counter service request failed: {e}")
        except ValueError as e:
            logger.error(f"Invalid counter service response from {url}: {e}")
            raise CounterSourceUnavailable(f"Invalid counter service response: {e}")

    @staticmethod
    def _parse_iteration(data: Optional[Dict[str, Any]]) -> int:
        try:
            iteration = data["iteration"]
        except (KeyError, TypeError):
            raise CounterSourceUnavailable(
                f"Counter service response missing iteration: {data!r}"
            )
        if not isinstance(iteration, int) or isinstance(iteration, bool):
            raise CounterSourceUnavailable(
                f"Counter service returned non-integer iteration: {iteration!r}"
            )
        return iteration
