r"""Abort signals used to cancel runs from outside.

This module provides a small abort controller/signal pair and the
default subscriber the engine uses to listen to a signal. A run only
relies on the subscriber contract:

    subscribe(signal, on_abort) -> unsubscribe

``on_abort`` is invoked at most once with the abort reason, and no
invocation happens after ``unsubscribe()`` returns.

Example:
    ```pycon
    >>> from nthchance.abort import AbortController, add_abort_listener
    >>> controller = AbortController()
    >>> reasons = []
    >>> unsubscribe = add_abort_listener(controller.signal, reasons.append)
    >>> controller.abort("user cancelled")
    >>> reasons
    ['user cancelled']
    >>> controller.signal.aborted
    True

    ```
"""

from __future__ import annotations

__all__ = [
    "AbortController",
    "AbortListener",
    "AbortSignal",
    "RemoveAbortListener",
    "Subscribe",
    "add_abort_listener",
]

import logging
from collections.abc import Callable
from typing import Any

from nthchance.exceptions import abort_error_from_reason

logger: logging.Logger = logging.getLogger(__name__)

AbortListener = Callable[[Any], None]
RemoveAbortListener = Callable[[], None]


class AbortSignal:
    """Signal that tells listeners an operation should be aborted.

    A signal is created by an ``AbortController`` and aborted through
    it. It moves to the aborted state once and notifies every listener
    registered at that point exactly once.

    Attributes:
        aborted: Whether the signal has been aborted.
        reason: The abort reason, ``None`` until aborted.
    """

    def __init__(self) -> None:
        self._aborted = False
        self._reason: Any = None
        self._listeners: list[AbortListener] = []

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(aborted={self._aborted}, reason={self._reason!r})"

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def reason(self) -> Any:
        return self._reason

    def add_listener(self, listener: AbortListener) -> None:
        """Register a listener called with the reason when the signal
        is aborted.

        Listeners added after the signal was aborted are never called.
        """
        if not self._aborted:
            self._listeners.append(listener)

    def remove_listener(self, listener: AbortListener) -> None:
        """Unregister a listener. Unknown listeners are ignored."""
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def throw_if_aborted(self) -> None:
        """Raise the normalized abort error if the signal is aborted.

        Raises:
            AbortError: If the signal was aborted with a string or no
                reason. An exception reason is raised as is.
        """
        if self._aborted:
            raise abort_error_from_reason(self._reason)

    def _abort(self, reason: Any) -> None:
        if self._aborted:
            return
        self._aborted = True
        self._reason = reason
        listeners, self._listeners = self._listeners, []
        logger.debug(f"Abort signal triggered ({len(listeners)} listener(s)): {reason!r}")
        for listener in listeners:
            try:
                listener(reason)
            except Exception:
                logger.exception(f"Abort listener {listener!r} failed")


class AbortController:
    """Owner of an ``AbortSignal``.

    Example:
        ```pycon
        >>> from nthchance.abort import AbortController
        >>> controller = AbortController()
        >>> controller.abort("done")
        >>> controller.signal.reason
        'done'
        >>> controller.abort("again")  # No-op, the first reason is kept
        >>> controller.signal.reason
        'done'

        ```
    """

    def __init__(self) -> None:
        self.signal = AbortSignal()

    def abort(self, reason: Any = None) -> None:
        """Abort the signal and notify its listeners.

        Args:
            reason: Optional abort reason passed to the listeners.
        """
        self.signal._abort(reason)


Subscribe = Callable[[AbortSignal, AbortListener], RemoveAbortListener]


def add_abort_listener(signal: AbortSignal, listener: AbortListener) -> RemoveAbortListener:
    """Subscribe a listener to an abort signal.

    This is the default subscriber used by retryable functions. Another
    subscriber with the same contract can be injected when the signal
    comes from a different source.

    Args:
        signal: The signal to listen to.
        listener: Callable invoked at most once with the abort reason.

    Returns:
        A function that removes the listener. After it returns the
        listener is never invoked.
    """

    def handler(reason: Any) -> None:
        listener(reason)

    signal.add_listener(handler)

    def remove() -> None:
        signal.remove_listener(handler)

    return remove
