r"""Delay calculation for the default decider.

This module provides the function that turns the run's elapsed
execution time and attempt count into the delay before the next
attempt, or signals that no further attempt is allowed.
"""

from __future__ import annotations

__all__ = ["get_delay"]

import logging
import math
from typing import TYPE_CHECKING

from nthchance.backoff.exponential import ExponentialBackoff

if TYPE_CHECKING:
    from nthchance.core.config import RetryOptions

logger: logging.Logger = logging.getLogger(__name__)


def get_delay(
    total_exec_time: float,
    execution_count: int,
    options: RetryOptions,
) -> float | None:
    """Calculate the delay before the next attempt.

    The remaining budget is ``total_timeout`` minus the time already
    spent minus the average attempt duration, so that an attempt that
    is unlikely to finish before the deadline is not started.

    The delay is calculated as follows:
    1. ``max_allowable_delay = floor(total_timeout - total_exec_time - total_exec_time / execution_count)``
    2. Stop if ``max_allowable_delay <= 0`` or ``execution_count > retries``.
    3. Otherwise return the exponential backoff delay (with jitter),
       capped at ``max_delay`` and ``max_allowable_delay``.

    Args:
        total_exec_time: Sum of all attempt durations so far in milliseconds.
        execution_count: Number of attempts made so far (1-indexed).
        options: The retry options.

    Returns:
        The delay in milliseconds, or ``None`` if no more attempts
        should be made.

    Example:
        ```pycon
        >>> from nthchance.core.config import RetryOptions
        >>> from nthchance.utils.delay import get_delay
        >>> options = RetryOptions(retries=3, delay_multiplier=200, max_delay=850)
        >>> get_delay(10, 1, options)
        200
        >>> get_delay(30, 3, options)
        800
        >>> get_delay(40, 4, options) is None  # Retries exhausted
        True
        >>> get_delay(20_000, 1, options) is None  # Budget exhausted
        True

        ```
    """
    max_allowable_delay = math.floor(
        options.total_timeout - total_exec_time - total_exec_time / execution_count
    )
    if max_allowable_delay <= 0 or execution_count > options.retries:
        logger.debug(
            f"No more attempts after {execution_count} execution(s) "
            f"(max_allowable_delay={max_allowable_delay}ms, retries={options.retries})"
        )
        return None

    backoff = ExponentialBackoff(
        delay_multiplier=options.delay_multiplier,
        max_delay=options.max_delay,
        max_delay_variation=options.max_delay_variation,
    )
    delay = min(backoff.calculate(execution_count), max_allowable_delay)
    logger.debug(f"Waiting {delay}ms before attempt {execution_count + 1}")
    return delay
