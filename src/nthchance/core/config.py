r"""Configuration dataclass and defaults for the default decider.

This module provides the default retry constants and the
``RetryOptions`` dataclass used to build the default exponential
backoff decider.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_DELAY_MULTIPLIER",
    "DEFAULT_MAX_DELAY",
    "DEFAULT_MAX_DELAY_VARIATION",
    "DEFAULT_RETRIES",
    "DEFAULT_TOTAL_TIMEOUT",
    "RetryOptions",
]

from dataclasses import dataclass, fields, replace
from typing import TYPE_CHECKING, Any

from nthchance.core.validation import validate_retry_options

if TYPE_CHECKING:
    from collections.abc import Mapping

    from nthchance.abort import AbortSignal


# Default maximum number of retries
# Total attempts = retries + 1 (initial attempt)
DEFAULT_RETRIES = 2

# Default maximum delay between two attempts in milliseconds
DEFAULT_MAX_DELAY = 10_000

# Default base delay in milliseconds
# Delay = delay_multiplier * (2 ** (execution_count - 1))
# With 1000: 1st retry waits 1s, 2nd waits 2s, 3rd waits 4s
DEFAULT_DELAY_MULTIPLIER = 1_000

# Default maximum random jitter in milliseconds (disabled)
DEFAULT_MAX_DELAY_VARIATION = 0

# Default time budget in milliseconds for a whole run
DEFAULT_TOTAL_TIMEOUT = 30_000


@dataclass
class RetryOptions:
    """Options used to build the default decider.

    All durations are expressed in milliseconds.

    Args:
        retries: Maximum number of retries after the first attempt. Must be >= 0.
        max_delay: Maximum delay between two attempts. Must be >= 0.
        delay_multiplier: Base delay that doubles after every failed
            attempt. For example, with 1000 the delays are 1000, 2000,
            4000, 8000. Must be >= 0.
        max_delay_variation: Maximum random jitter added to each delay.
            Must be >= 0.
        total_timeout: Time budget for the run, measured as the sum of
            the attempt durations. The last delay is shortened so the
            last attempt starts before the deadline. Must be >= 0.
        signal: Optional abort signal used to cancel the run.

    Example:
        ```pycon
        >>> from nthchance.core.config import RetryOptions
        >>> options = RetryOptions()  # Use defaults
        >>> options.retries
        2
        >>> options = RetryOptions(retries=5)
        >>> merged = options.merge(retries=10)
        >>> merged.retries
        10
        >>> options.retries  # Original unchanged
        5

        ```
    """

    retries: int = DEFAULT_RETRIES
    max_delay: float = DEFAULT_MAX_DELAY
    delay_multiplier: float = DEFAULT_DELAY_MULTIPLIER
    max_delay_variation: float = DEFAULT_MAX_DELAY_VARIATION
    total_timeout: float = DEFAULT_TOTAL_TIMEOUT
    signal: AbortSignal | None = None

    def __post_init__(self) -> None:
        """Validate options after initialization.

        Raises:
            ValueError: If any option fails validation.
        """
        validate_retry_options(
            retries=self.retries,
            max_delay=self.max_delay,
            delay_multiplier=self.delay_multiplier,
            max_delay_variation=self.max_delay_variation,
            total_timeout=self.total_timeout,
        )

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> RetryOptions:
        """Create options from a mapping, ignoring ``None`` values.

        Args:
            mapping: Option names and values.

        Returns:
            The options.

        Raises:
            TypeError: If the mapping contains an unknown option.

        Example:
            ```pycon
            >>> from nthchance.core.config import RetryOptions
            >>> RetryOptions.from_mapping({"retries": 4, "max_delay": None}).retries
            4

            ```
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(mapping) - known)
        if unknown:
            msg = f"Unknown retry options: {', '.join(unknown)}"
            raise TypeError(msg)
        return cls(**{k: v for k, v in mapping.items() if v is not None})

    def merge(self, **overrides: Any) -> RetryOptions:
        """Create new options with the specified values overridden.

        Only non-None override values are applied.

        Args:
            **overrides: Option values to override.

        Returns:
            A new ``RetryOptions`` instance with overrides applied.
        """
        filtered_overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **filtered_overrides)
