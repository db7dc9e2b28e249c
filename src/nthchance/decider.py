r"""Default decider built from retry options.

This module provides the ``DefaultDecider`` class that implements
exponential backoff bounded by a retry count and a time budget. It is
used when a retryable function is configured with options instead of a
custom decider.
"""

from __future__ import annotations

__all__ = ["DefaultDecider", "generate_decider_from_options"]

import logging
from typing import TYPE_CHECKING

from nthchance.decision import Return, Stop, TryAgain
from nthchance.history import NANOSECONDS_PER_MILLISECOND
from nthchance.utils.delay import get_delay

if TYPE_CHECKING:
    from nthchance.core.config import RetryOptions
    from nthchance.decision import Decision
    from nthchance.engine import RetryableFunction

logger: logging.Logger = logging.getLogger(__name__)


class DefaultDecider:
    """Decides whether to try again based on the last execution record.

    A successful attempt is always returned as is. A failed attempt is
    retried while ``get_delay`` allows it, using the total execution
    time of every attempt so far; otherwise the run stops with the last
    attempt's error.

    Args:
        options: The retry options.

    Example:
        ```pycon
        >>> from unittest.mock import Mock
        >>> from nthchance.core.config import RetryOptions
        >>> from nthchance.decider import DefaultDecider
        >>> from nthchance.history import ExecutionHistory, ExecutionRecord
        >>> decider = DefaultDecider(RetryOptions(retries=1, delay_multiplier=100))
        >>> history = ExecutionHistory()
        >>> history.append(
        ...     ExecutionRecord(args=(), start_time=0, finish_time=0, error=ValueError("boom"))
        ... )
        >>> decider(Mock(executions=history))
        TryAgain(delay=100, args=None)

        ```
    """

    def __init__(self, options: RetryOptions) -> None:
        self.options = options

    def __call__(self, fn: RetryableFunction) -> Decision:
        executions = fn.executions
        last = executions[-1]
        if last.succeeded:
            return Return(last.returned_value)

        total_exec_time_ns = sum(record.finish_time - record.start_time for record in executions)
        delay = get_delay(
            total_exec_time_ns // NANOSECONDS_PER_MILLISECOND, len(executions), self.options
        )
        if delay is not None:
            return TryAgain(delay=delay)
        logger.debug(
            f"Giving up after {len(executions)} attempt(s): "
            f"{type(last.error).__name__}: {last.error}"
        )
        return Stop(last.error)


def generate_decider_from_options(options: RetryOptions) -> DefaultDecider:
    """Create the default decider for the given options.

    Args:
        options: The retry options.

    Returns:
        The decider.
    """
    return DefaultDecider(options)
