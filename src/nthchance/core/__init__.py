r"""Core configuration and validation for nthchance."""

from __future__ import annotations

__all__ = [
    "DEFAULT_DELAY_MULTIPLIER",
    "DEFAULT_MAX_DELAY",
    "DEFAULT_MAX_DELAY_VARIATION",
    "DEFAULT_RETRIES",
    "DEFAULT_TOTAL_TIMEOUT",
    "RetryOptions",
    "validate_retry_options",
]

from nthchance.core.config import (
    DEFAULT_DELAY_MULTIPLIER,
    DEFAULT_MAX_DELAY,
    DEFAULT_MAX_DELAY_VARIATION,
    DEFAULT_RETRIES,
    DEFAULT_TOTAL_TIMEOUT,
    RetryOptions,
)
from nthchance.core.validation import validate_retry_options
