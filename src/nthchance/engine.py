r"""Execution engine for retryable functions.

This module provides the ``NthChance`` builder, the ``RetryableFunction``
handle it creates, and the state machine that drives one run of the
wrapped operation:

    Idle -> Running(args) -> Deciding -> Scheduled(delay) -> Running(next args)
                                      -> Rejected | Resolved

Every attempt is recorded in the run's execution history. After each
attempt the decider is consulted with the retryable function so it can
read the whole history, and its decision drives the next state.
"""

from __future__ import annotations

__all__ = ["NthChance", "RetryableFunction", "wrap"]

import asyncio
import logging
import time
import uuid
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from nthchance.abort import add_abort_listener
from nthchance.controller import RunController
from nthchance.core.config import RetryOptions
from nthchance.decider import DefaultDecider
from nthchance.decision import Stop, TryAgain, is_decision
from nthchance.history import ExecutionHistory, ExecutionRecord
from nthchance.utils.awaitable import continuation, is_awaitable
from nthchance.utils.structured_logging import log_structured, set_run_id

if TYPE_CHECKING:
    from collections.abc import Callable

    from nthchance.abort import AbortSignal, Subscribe
    from nthchance.decision import Decider, Decision

logger: logging.Logger = logging.getLogger(__name__)

# Strong references to the tasks driving in-flight runs
_running: set[asyncio.Task] = set()


class _Run:
    """State of one invocation of a retryable function.

    The run owns its execution history and its controller. The engine
    is the only writer of the history.
    """

    def __init__(
        self,
        fn: RetryableFunction,
        args: tuple[Any, ...],
        future: asyncio.Future,
    ) -> None:
        self.fn = fn
        self.args = args
        self.run_id = uuid.uuid4().hex[:12]
        self.history = ExecutionHistory()
        self.controller = RunController(future)
        self.task: asyncio.Task | None = None

    def start(self) -> None:
        if self.controller.aborted:
            return
        self.task = asyncio.ensure_future(self._drive())
        _running.add(self.task)
        self.task.add_done_callback(_running.discard)

    async def _drive(self) -> None:
        set_run_id(self.run_id)
        controller = self.controller
        args = self.args
        try:
            while not controller.aborted:
                record = await self._attempt(args)
                if record is None:
                    return

                decision = await self._decide(record)
                if decision is None:
                    return

                if isinstance(decision, TryAgain):
                    delay = decision.delay or 0
                    log_structured(
                        logger,
                        logging.DEBUG,
                        f"Attempt {len(self.history)} will be retried in {delay}ms",
                        attempt=len(self.history),
                        delay_ms=delay,
                    )
                    await controller.sleep(delay)
                    args = tuple(decision.args) if decision.args is not None else self.args
                elif isinstance(decision, Stop):
                    logger.debug(f"Run stopped after {len(self.history)} attempt(s)")
                    controller.reject(decision.error)
                    return
                else:
                    logger.debug(f"Run returned after {len(self.history)} attempt(s)")
                    controller.resolve(decision.value)
                    return
        except asyncio.CancelledError:
            controller.future.cancel()
            raise
        except BaseException as exc:
            controller.reject(exc)
            if isinstance(exc, (KeyboardInterrupt, SystemExit)):
                raise

    async def _attempt(self, args: tuple[Any, ...]) -> ExecutionRecord | None:
        """Run the operation once and record its outcome.

        Returns:
            The appended record, or ``None`` if the run ended.
        """
        controller = self.controller
        controller.pending = None
        attempt = len(self.history) + 1
        logger.debug(f"Starting attempt {attempt}")

        start_time = time.monotonic_ns()
        try:
            result = self.fn.operation(*args)
        except Exception as exc:
            record = ExecutionRecord(
                args=args, start_time=start_time, finish_time=time.monotonic_ns(), error=exc
            )
        else:
            if is_awaitable(result):
                try:
                    waiter = continuation(result)
                except Exception as exc:
                    logger.debug(f"Awaitable returned by attempt {attempt} is broken: {exc}")
                    controller.reject(exc)
                    return None
                try:
                    value = await waiter
                except Exception as exc:
                    record = ExecutionRecord(
                        args=args,
                        start_time=start_time,
                        finish_time=time.monotonic_ns(),
                        error=exc,
                    )
                else:
                    record = ExecutionRecord(
                        args=args,
                        start_time=start_time,
                        finish_time=time.monotonic_ns(),
                        returned_value=value,
                    )
            else:
                record = ExecutionRecord(
                    args=args,
                    start_time=start_time,
                    finish_time=time.monotonic_ns(),
                    returned_value=result,
                )

        if record.failed:
            logger.debug(
                f"Attempt {attempt} failed: {type(record.error).__name__}: {record.error}"
            )
        self.history.append(record)
        if controller.aborted:
            controller.mark(record)
            return None
        controller.pending = record
        return record

    async def _decide(self, record: ExecutionRecord) -> Decision | None:
        """Ask the decider what to do after the given record.

        Returns:
            The decision, or ``None`` if the run ended.
        """
        controller = self.controller
        try:
            decision = self.fn.decider(self.fn)
            if is_awaitable(decision):
                decision = await continuation(decision)
        except Exception as exc:
            logger.debug(f"Decider failed after attempt {len(self.history)}: {exc!r}")
            controller.reject(exc)
            return None

        if not is_decision(decision):
            msg = f"Decider returned {decision!r}, expected TryAgain, Stop or Return"
            controller.reject(TypeError(msg))
            return None

        record.decision = decision
        if controller.aborted:
            controller.mark(record)
            return None
        return decision


class RetryableFunction:
    """Callable that runs an operation with retries.

    Each call starts an independent run and returns an
    ``asyncio.Future`` for its outcome. The ``executions`` attribute and
    the ``abort`` method always refer to the latest run.

    Args:
        operation: The function to run. It may return a plain value or
            an awaitable.
        decider: Callable invoked with this object after each attempt.
            It returns (or resolves to) ``TryAgain``, ``Stop`` or ``Return``.
        signal: Optional external abort signal.
        subscribe: Function used to listen to ``signal``.

    Example:
        ```pycon
        >>> import asyncio
        >>> from nthchance import RetryOptions, wrap
        >>> calls = []
        >>> def flaky(value):
        ...     calls.append(value)
        ...     if len(calls) < 3:
        ...         raise ConnectionError("not yet")
        ...     return value * 2
        ...
        >>> fn = wrap(flaky).configure(RetryOptions(retries=3, delay_multiplier=1))
        >>> async def main():
        ...     return await fn(21)
        ...
        >>> asyncio.run(main())
        42
        >>> len(fn.executions)
        3

        ```
    """

    def __init__(
        self,
        operation: Callable[..., Any],
        decider: Decider,
        signal: AbortSignal | None = None,
        subscribe: Subscribe = add_abort_listener,
    ) -> None:
        self.operation = operation
        self.decider = decider
        self.signal = signal
        self.subscribe = subscribe
        self._run: _Run | None = None
        self._empty = ExecutionHistory()
        self._early_abort: tuple[Any] | None = None

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(operation={self.operation!r}, "
            f"decider={self.decider!r})"
        )

    @property
    def executions(self) -> ExecutionHistory:
        """The execution history of the latest run."""
        if self._run is None:
            return self._empty
        return self._run.history

    def __call__(self, *args: Any) -> asyncio.Future:
        """Start a run with the given arguments.

        Must be called with a running event loop.

        Args:
            *args: Positional arguments passed to the operation.

        Returns:
            A future resolved with the returned value, or rejected with
            the error chosen by the decider, a protocol failure, or an
            abort error.
        """
        loop = asyncio.get_running_loop()
        run = _Run(self, args, loop.create_future())
        self._run = run
        logger.debug(f"Starting run {run.run_id} of {self.operation!r}")
        if self._early_abort is not None:
            (reason,) = self._early_abort
            self._early_abort = None
            run.controller.abort(reason)
        if self.signal is not None:
            run.controller.attach(self.signal, self.subscribe)
        run.start()
        return run.controller.future

    def abort(self, reason: Any = None) -> None:
        """Abort the latest run.

        Before any invocation, the abort is kept and the next invocation
        fails immediately. After the latest run settled it is a no-op.

        Args:
            reason: Optional abort reason.
        """
        if self._run is None:
            self._early_abort = (reason,)
            return
        self._run.controller.abort(reason)


class NthChance:
    """Builder that captures an operation to retry.

    Args:
        operation: The function to run. It may return a plain value or
            an awaitable.

    Example:
        ```pycon
        >>> from nthchance import NthChance, RetryOptions
        >>> fn = NthChance(print).configure(RetryOptions(retries=5, max_delay_variation=100))
        >>> fn.decider.options.retries
        5

        ```
    """

    def __init__(self, operation: Callable[..., Any]) -> None:
        self.operation = operation

    def configure(
        self,
        options: RetryOptions | Mapping[str, Any] | Decider | None = None,
        signal: AbortSignal | None = None,
        *,
        subscribe: Subscribe = add_abort_listener,
        **kwargs: Any,
    ) -> RetryableFunction:
        """Configure the retry behaviour.

        Either pass retry options (a ``RetryOptions``, a mapping of
        option names, or keyword options), which build the default
        exponential backoff decider, or a custom decider.

        Args:
            options: Retry options or a custom decider.
            signal: Optional external abort signal. With options, the
                ``signal`` option is used when this is not given.
            subscribe: Function used to listen to the abort signal.
            **kwargs: Retry options when ``options`` is not given.

        Returns:
            A retryable function with the configured behaviour.

        Raises:
            TypeError: If a decider is combined with keyword options,
                or an unknown option is given.
            ValueError: If an option is invalid.
        """
        if callable(options) and not isinstance(options, RetryOptions):
            if kwargs:
                msg = f"Options cannot be combined with a decider: {', '.join(sorted(kwargs))}"
                raise TypeError(msg)
            return RetryableFunction(self.operation, options, signal=signal, subscribe=subscribe)

        if options is None:
            options = RetryOptions.from_mapping(kwargs)
        elif isinstance(options, Mapping):
            options = RetryOptions.from_mapping({**options, **kwargs})
        elif kwargs:
            options = options.merge(**kwargs)
        return RetryableFunction(
            self.operation,
            DefaultDecider(options),
            signal=signal if signal is not None else options.signal,
            subscribe=subscribe,
        )


def wrap(operation: Callable[..., Any]) -> NthChance:
    """Capture an operation to retry.

    Args:
        operation: The function to run.

    Returns:
        The builder used to configure the retry behaviour.

    Example:
        ```pycon
        >>> from nthchance import wrap
        >>> fn = wrap(len).configure(retries=0)
        >>> fn.executions
        ExecutionHistory([])

        ```
    """
    return NthChance(operation)
