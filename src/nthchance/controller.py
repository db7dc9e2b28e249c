r"""Cancellation controller for a single run.

This module provides the ``RunController`` class that owns the
settlement of a run's future and coordinates the two abort origins: the
retryable function's ``abort`` method and an optional external abort
signal.
"""

from __future__ import annotations

__all__ = ["RunController"]

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from nthchance.exceptions import abort_error_from_reason

if TYPE_CHECKING:
    from nthchance.abort import AbortSignal, RemoveAbortListener, Subscribe
    from nthchance.history import ExecutionRecord

logger: logging.Logger = logging.getLogger(__name__)


class RunController:
    """Per-run cancellation state.

    The controller guarantees that:

    - an abort takes effect at most once, and never after the run settled
    - an abort rejects the run's future immediately with a normalized error
    - an abort cancels the pending retry timer
    - the record waiting for its decision (or its timer) is marked aborted
    - the external signal listener is removed once the run settles,
      however it settles

    Cancelling the run's future from the outside has the same effect as
    an abort without reason.

    The controller is not thread-safe. To abort from another thread use
    ``loop.call_soon_threadsafe(fn.abort, reason)``.

    Args:
        future: The future settled by the run.

    Attributes:
        future: The future settled by the run.
        aborted: Whether the run was aborted.
        reason: The abort reason.
        pending: The latest record whose decision has not been fully
            processed yet, or ``None`` while an attempt is running.
    """

    def __init__(self, future: asyncio.Future) -> None:
        self.future = future
        self.aborted = False
        self.reason: Any = None
        self.pending: ExecutionRecord | None = None
        self._timer: asyncio.Future | None = None
        self._unsubscribe: RemoveAbortListener | None = None
        future.add_done_callback(self._on_done)

    @property
    def settled(self) -> bool:
        return self.future.done()

    def attach(self, signal: AbortSignal, subscribe: Subscribe) -> None:
        """Listen to an external abort signal for the lifetime of the
        run.

        If the signal is already aborted, the run is aborted at once.

        Args:
            signal: The external abort signal.
            subscribe: Function used to register the abort listener.
        """
        if signal.aborted:
            self.abort(signal.reason)
            return
        self._unsubscribe = subscribe(signal, self.abort)

    def abort(self, reason: Any = None) -> None:
        """Abort the run.

        This is a no-op if the run was already aborted or settled.

        Args:
            reason: Optional abort reason. A string reason rejects the
                run with ``AbortError("Aborted: <reason>")``, an
                exception reason rejects it with that exception.
        """
        if self.aborted or self.future.done():
            return
        logger.debug(f"Aborting run: {reason!r}")
        self._stop(reason)
        self.future.set_exception(abort_error_from_reason(reason))

    def mark(self, record: ExecutionRecord) -> None:
        """Flag a record with the abort state of the run."""
        record.mark_aborted(self.reason)

    def resolve(self, value: Any) -> None:
        if not self.future.done():
            self.future.set_result(value)

    def reject(self, error: BaseException) -> None:
        if not self.future.done():
            self.future.set_exception(error)

    async def sleep(self, delay: float) -> None:
        """Wait before the next attempt.

        The wait ends early, without raising, if the run is aborted.

        Args:
            delay: The delay in milliseconds.
        """
        self._timer = asyncio.ensure_future(asyncio.sleep(max(delay, 0) / 1000))
        try:
            await asyncio.wait([self._timer])
        finally:
            self._timer.cancel()
            self._timer = None

    def detach(self) -> None:
        """Remove the external signal listener, if any."""
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()

    def _stop(self, reason: Any) -> None:
        self.aborted = True
        self.reason = reason
        self.detach()
        if self._timer is not None:
            self._timer.cancel()
        if self.pending is not None:
            self.pending.mark_aborted(reason)

    def _on_done(self, future: asyncio.Future) -> None:
        self.detach()
        if future.cancelled() and not self.aborted:
            logger.debug("Run future cancelled, aborting run")
            self._stop(None)
