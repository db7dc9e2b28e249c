r"""nthchance - Retry engine for synchronous and asynchronous operations.

This package wraps an arbitrary operation and re-invokes it according
to a pluggable decider, recording every attempt's arguments, timing,
outcome and the decision made for it. Runs are bounded by a retry count
and/or a time budget and can be aborted cooperatively.

Key Features:
    - Works with plain functions, coroutine functions and any callable
      returning an awaitable
    - Default exponential backoff with jitter, capped by a maximum
      delay and a total time budget
    - Custom deciders, synchronous or asynchronous, that can change the
      arguments of the next attempt
    - Live execution history readable during and after a run
    - Cancellation through ``abort()`` or an external abort signal

Example:
    ```pycon
    >>> import asyncio
    >>> from nthchance import Return, TryAgain, wrap
    >>> def decider(fn):
    ...     last = fn.executions[-1]
    ...     if last.succeeded:
    ...         return Return(last.returned_value)
    ...     return TryAgain(delay=1, args=(last.args[0] + 1,))
    ...
    >>> def parse(index):
    ...     return int(["x", "y", "3"][index])
    ...
    >>> fn = wrap(parse).configure(decider)
    >>> async def main():
    ...     return await fn(0)
    ...
    >>> asyncio.run(main())
    3
    >>> [record.args for record in fn.executions]
    [(0,), (1,), (2,)]

    ```
"""

from __future__ import annotations

__all__ = [
    "AbortController",
    "AbortError",
    "AbortSignal",
    "Decider",
    "Decision",
    "DefaultDecider",
    "ExecutionHistory",
    "ExecutionRecord",
    "NthChance",
    "Return",
    "RetryOptions",
    "RetryableFunction",
    "Stop",
    "TryAgain",
    "__version__",
    "add_abort_listener",
    "generate_decider_from_options",
    "get_delay",
    "nthchance",
    "wrap",
]

from importlib.metadata import PackageNotFoundError, version

from nthchance.abort import AbortController, AbortSignal, add_abort_listener
from nthchance.core.config import RetryOptions
from nthchance.decider import DefaultDecider, generate_decider_from_options
from nthchance.decision import Decider, Decision, Return, Stop, TryAgain
from nthchance.engine import NthChance, RetryableFunction, wrap
from nthchance.exceptions import AbortError
from nthchance.history import ExecutionHistory, ExecutionRecord
from nthchance.utils.delay import get_delay

nthchance = wrap

try:
    __version__ = version(__name__)
except PackageNotFoundError:  # pragma: no cover
    # Package is not installed, fallback if needed
    __version__ = "0.0.0"
