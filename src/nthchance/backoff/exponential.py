r"""Exponential backoff strategy with additive jitter."""

from __future__ import annotations

__all__ = ["ExponentialBackoff"]

import math
import random

from nthchance.core.config import (
    DEFAULT_DELAY_MULTIPLIER,
    DEFAULT_MAX_DELAY,
    DEFAULT_MAX_DELAY_VARIATION,
)


class ExponentialBackoff:
    """Exponential backoff strategy.

    Calculates delay as:
    ``delay_multiplier * 2 ** (execution_count - 1) + floor(random() * max_delay_variation)``,
    capped at ``max_delay``. All values are in milliseconds.

    Args:
        delay_multiplier: The base delay that doubles after every
            failed attempt.
        max_delay: Maximum delay cap.
        max_delay_variation: Maximum random jitter added to the
            exponential delay. The jitter is drawn on every call.

    Example:
        ```pycon
        >>> from nthchance.backoff import ExponentialBackoff
        >>> backoff = ExponentialBackoff(delay_multiplier=200, max_delay=850)
        >>> backoff.calculate(1)  # After the first failed attempt
        200
        >>> backoff.calculate(2)
        400
        >>> backoff.calculate(3)
        800
        >>> backoff.calculate(4)  # Would be 1600, but capped
        850

        ```
    """

    def __init__(
        self,
        delay_multiplier: float = DEFAULT_DELAY_MULTIPLIER,
        max_delay: float = DEFAULT_MAX_DELAY,
        max_delay_variation: float = DEFAULT_MAX_DELAY_VARIATION,
    ) -> None:
        if delay_multiplier < 0:
            msg = f"delay_multiplier must be non-negative, got {delay_multiplier}"
            raise ValueError(msg)
        if max_delay < 0:
            msg = f"max_delay must be non-negative, got {max_delay}"
            raise ValueError(msg)
        if max_delay_variation < 0:
            msg = f"max_delay_variation must be non-negative, got {max_delay_variation}"
            raise ValueError(msg)

        self.delay_multiplier = delay_multiplier
        self.max_delay = max_delay
        self.max_delay_variation = max_delay_variation

    def calculate(self, execution_count: int) -> float:
        """Calculate the exponential backoff delay.

        Args:
            execution_count: Number of attempts made so far (1-indexed).
                The first failed attempt gives the base delay.

        Returns:
            The delay in milliseconds, capped at ``max_delay``.
        """
        jitter = math.floor(random.random() * self.max_delay_variation)  # noqa: S311
        if not self.delay_multiplier:
            return min(jitter, self.max_delay)
        try:
            delay = 2 ** (execution_count - 1) * self.delay_multiplier + jitter
        except OverflowError:
            # A float multiplier cannot hold the exponential part past 2 ** 1023
            return self.max_delay
        return min(delay, self.max_delay)
