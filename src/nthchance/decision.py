r"""Decisions returned by deciders.

A decider inspects the execution history after every attempt and
returns one of three decisions:

- ``TryAgain``: run the operation again after a delay
- ``Stop``: reject the run with an error
- ``Return``: resolve the run with a value
"""

from __future__ import annotations

__all__ = ["Decider", "Decision", "Return", "Stop", "TryAgain", "is_decision"]

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class TryAgain:
    """Decision to run the operation again.

    Attributes:
        delay: The delay before the next attempt in milliseconds.
        args: The positional arguments for the next attempt. ``None``
            reuses the arguments of the original invocation.
    """

    delay: float = 0
    args: tuple[Any, ...] | None = None


@dataclass(frozen=True)
class Stop:
    """Decision to stop and reject the run.

    Attributes:
        error: The exception raised to the caller.
    """

    error: BaseException


@dataclass(frozen=True)
class Return:
    """Decision to stop and resolve the run.

    Attributes:
        value: The value returned to the caller.
    """

    value: Any


Decision = Union[TryAgain, Stop, Return]

# Deciders receive the retryable function and read its executions.
Decider = Callable[[Any], Union[Decision, Awaitable[Decision]]]


def is_decision(value: Any) -> bool:
    """Indicate if a value is one of the decision variants.

    Example:
        ```pycon
        >>> from nthchance.decision import TryAgain, is_decision
        >>> is_decision(TryAgain(delay=100))
        True
        >>> is_decision({"retry": True})
        False

        ```
    """
    return isinstance(value, (TryAgain, Stop, Return))
