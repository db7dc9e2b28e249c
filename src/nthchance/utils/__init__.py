r"""Utility functions for the retry engine.

This package provides helpers for delay calculation, awaitable
detection and structured logging.
"""

from __future__ import annotations

__all__ = [
    "continuation",
    "get_delay",
    "get_run_id",
    "is_awaitable",
    "log_structured",
]

from nthchance.utils.awaitable import continuation, is_awaitable
from nthchance.utils.delay import get_delay
from nthchance.utils.structured_logging import get_run_id, log_structured
