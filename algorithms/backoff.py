"""
Randomized backoff for acquisition retries and staggered restarts.
"""

import random

from models.config import ConfigurationError


class BackoffGenerator:
    """Draws bounded random delays from the simulation's random source."""

    def __init__(self, backoff_range: int, rng: random.Random):
        if backoff_range <= 0:
            raise ConfigurationError(
                f"backoff_range must be positive to produce a delay (got {backoff_range})"
            )
        self.backoff_range = backoff_range
        self.rng = rng

    def next_delay(self) -> int:
        """Uniform integer in [0, backoff_range)."""
        return self.rng.randrange(self.backoff_range)
