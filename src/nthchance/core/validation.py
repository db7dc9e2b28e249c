r"""Parameter validation utilities for retry options.

This module provides the validation applied to retry options before
they are used to build the default decider.
"""

from __future__ import annotations

__all__ = ["validate_retry_options"]


def validate_retry_options(
    retries: int,
    max_delay: float,
    delay_multiplier: float,
    max_delay_variation: float = 0,
    total_timeout: float | None = None,
) -> None:
    """Validate retry options.

    Args:
        retries: Maximum number of retries after the first attempt.
            Must be >= 0. A value of 0 means no retries (only the initial attempt).
        max_delay: Maximum delay between two attempts in milliseconds.
            Must be >= 0.
        delay_multiplier: Base delay in milliseconds that doubles after
            every failed attempt. Must be >= 0.
        max_delay_variation: Maximum random jitter in milliseconds added
            to each delay. Must be >= 0.
        total_timeout: Time budget in milliseconds for the whole run.
            Must be >= 0 if provided.

    Raises:
        ValueError: If any parameter is negative.

    Example:
        ```pycon
        >>> from nthchance.core.validation import validate_retry_options
        >>> validate_retry_options(retries=3, max_delay=5000, delay_multiplier=100)
        >>> validate_retry_options(retries=-1, max_delay=5000, delay_multiplier=100)  # doctest: +SKIP

        ```
    """
    if retries < 0:
        msg = f"retries must be >= 0, got {retries}"
        raise ValueError(msg)
    if max_delay < 0:
        msg = f"max_delay must be >= 0, got {max_delay}"
        raise ValueError(msg)
    if delay_multiplier < 0:
        msg = f"delay_multiplier must be >= 0, got {delay_multiplier}"
        raise ValueError(msg)
    if max_delay_variation < 0:
        msg = f"max_delay_variation must be >= 0, got {max_delay_variation}"
        raise ValueError(msg)
    if total_timeout is not None and total_timeout < 0:
        msg = f"total_timeout must be >= 0, got {total_timeout}"
        raise ValueError(msg)
