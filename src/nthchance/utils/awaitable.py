r"""Awaitable detection for operation and decider results.

Operations and deciders may return plain values or awaitables. Any
object accepted by ``inspect.isawaitable`` is treated as asynchronous,
not only coroutines and asyncio futures.
"""

from __future__ import annotations

__all__ = ["continuation", "is_awaitable"]

import inspect
from collections.abc import Awaitable, Generator
from typing import Any


def is_awaitable(value: Any) -> bool:
    """Indicate if a value must be awaited.

    Example:
        ```pycon
        >>> from nthchance.utils.awaitable import is_awaitable
        >>> async def coro():
        ...     return 1
        ...
        >>> c = coro()
        >>> is_awaitable(c)
        True
        >>> c.close()
        >>> is_awaitable(1)
        False

        ```
    """
    return inspect.isawaitable(value)


class _Continuation:
    def __init__(self, iterator: Generator[Any, None, Any]) -> None:
        self._iterator = iterator

    def __await__(self) -> Generator[Any, None, Any]:
        return self._iterator


def continuation(value: Awaitable[Any]) -> Awaitable[Any]:
    """Bind to the continuation hook of an awaitable.

    The ``__await__`` hook is invoked eagerly so that an awaitable whose
    hook itself fails is reported here, separately from the outcome
    produced by awaiting it.

    Args:
        value: An awaitable.

    Returns:
        An awaitable producing the same outcome as ``value``.

    Raises:
        TypeError: If the hook does not return an iterator.
        Exception: Anything raised by the hook.
    """
    hook = getattr(type(value), "__await__", None)
    if hook is None:
        # Generator-based coroutines have no __await__ hook
        return value
    iterator = hook(value)
    if not hasattr(iterator, "__next__"):
        msg = f"__await__() returned non-iterator of type '{type(iterator).__name__}'"
        raise TypeError(msg)
    return _Continuation(iterator)
