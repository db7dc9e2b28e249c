r"""Unit tests for aborting runs."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import Mock

import pytest

from nthchance import AbortController, AbortError, RetryOptions, TryAgain, wrap


def always_fails(*args: Any) -> None:
    raise ConnectionError("down")


async def wait_for_decision(fn: Any, count: int = 1) -> None:
    """Let the run progress until ``count`` records carry a decision."""
    while len(fn.executions) < count or fn.executions[count - 1].decision is None:
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_abort_between_attempts() -> None:
    """Test that an abort during the retry delay prevents the next
    attempt."""
    operation = Mock(side_effect=always_fails)
    fn = wrap(operation).configure(RetryOptions(retries=5, delay_multiplier=60_000))
    future = fn("payload")

    await wait_for_decision(fn)
    assert isinstance(fn.executions[0].decision, TryAgain)
    fn.abort("User cancelled")

    with pytest.raises(AbortError, match=r"^Aborted: User cancelled$"):
        await future
    for _ in range(5):
        await asyncio.sleep(0)
    operation.assert_called_once_with("payload")
    assert len(fn.executions) == 1
    record = fn.executions[0]
    assert record.aborted
    assert record.abort_reason == "User cancelled"
    assert isinstance(record.decision, TryAgain)


@pytest.mark.asyncio
async def test_abort_without_reason() -> None:
    fn = wrap(always_fails).configure(RetryOptions(delay_multiplier=60_000))
    future = fn()
    await wait_for_decision(fn)
    fn.abort()

    with pytest.raises(AbortError, match=r"^Aborted$"):
        await future
    assert fn.executions[0].aborted
    assert fn.executions[0].abort_reason is None


@pytest.mark.asyncio
async def test_abort_with_exception_reason() -> None:
    reason = TimeoutError("deadline exceeded")
    fn = wrap(always_fails).configure(RetryOptions(delay_multiplier=60_000))
    future = fn()
    await wait_for_decision(fn)
    fn.abort(reason)

    with pytest.raises(TimeoutError) as exc_info:
        await future
    assert exc_info.value is reason
    assert fn.executions[0].abort_reason is reason


@pytest.mark.asyncio
async def test_abort_twice_keeps_first_reason() -> None:
    fn = wrap(always_fails).configure(RetryOptions(delay_multiplier=60_000))
    future = fn()
    await wait_for_decision(fn)
    fn.abort("first")
    fn.abort("second")

    with pytest.raises(AbortError, match=r"Aborted: first"):
        await future
    assert fn.executions[0].abort_reason == "first"


@pytest.mark.asyncio
async def test_abort_inside_decider_keeps_decision() -> None:
    """Test that an abort from the decider still attaches its
    decision."""

    def decider(fn: Any) -> TryAgain:
        fn.abort("from decider")
        return TryAgain(delay=1)

    operation = Mock(side_effect=always_fails)
    fn = wrap(operation).configure(decider)

    with pytest.raises(AbortError, match=r"Aborted: from decider"):
        await fn()
    await asyncio.sleep(0.01)
    operation.assert_called_once_with()
    record = fn.executions[0]
    assert record.decision == TryAgain(delay=1)
    assert record.aborted
    assert record.abort_reason == "from decider"


@pytest.mark.asyncio
async def test_abort_during_async_decider() -> None:
    """Test that the verdict of a pending async decider is attached
    after an abort."""
    gate = asyncio.Event()

    async def decider(fn: Any) -> TryAgain:
        await gate.wait()
        return TryAgain()

    operation = Mock(side_effect=always_fails)
    fn = wrap(operation).configure(decider)
    future = fn()
    while not fn.executions:
        await asyncio.sleep(0)

    fn.abort("while deciding")
    with pytest.raises(AbortError, match=r"Aborted: while deciding"):
        await future
    assert fn.executions[0].aborted
    assert fn.executions[0].decision is None

    gate.set()
    while fn.executions[0].decision is None:
        await asyncio.sleep(0)
    assert fn.executions[0].decision == TryAgain()
    assert fn.executions[0].abort_reason == "while deciding"
    operation.assert_called_once_with()


@pytest.mark.asyncio
async def test_abort_inside_operation() -> None:
    """Test that an abort from the operation skips the decider."""
    decider = Mock(return_value=TryAgain())

    def operation() -> str:
        fn.abort("from operation")
        return "value"

    fn = wrap(operation).configure(decider)
    with pytest.raises(AbortError, match=r"Aborted: from operation"):
        await fn()
    await asyncio.sleep(0)
    decider.assert_not_called()
    record = fn.executions[0]
    assert record.returned_value == "value"
    assert record.decision is None
    assert record.aborted
    assert record.abort_reason == "from operation"


@pytest.mark.asyncio
async def test_abort_during_async_operation() -> None:
    gate = asyncio.Event()
    started = asyncio.Event()
    decider = Mock(return_value=TryAgain())

    async def operation() -> None:
        started.set()
        await gate.wait()
        raise ConnectionError("late")

    fn = wrap(operation).configure(decider)
    future = fn()
    await started.wait()
    fn.abort("stop")
    with pytest.raises(AbortError, match=r"Aborted: stop"):
        await future
    assert len(fn.executions) == 0

    gate.set()
    while not fn.executions:
        await asyncio.sleep(0)
    decider.assert_not_called()
    assert fn.executions[0].aborted
    assert isinstance(fn.executions[0].error, ConnectionError)


@pytest.mark.asyncio
async def test_abort_before_first_invocation() -> None:
    operation = Mock(return_value="ok")
    fn = wrap(operation).configure()
    fn.abort("too early")

    with pytest.raises(AbortError, match=r"Aborted: too early"):
        await fn()
    operation.assert_not_called()
    assert len(fn.executions) == 0

    # Only the next invocation is affected
    assert await fn() == "ok"


@pytest.mark.asyncio
async def test_abort_after_completion_is_noop() -> None:
    fn = wrap(Mock(return_value="ok")).configure()
    future = fn()
    assert await future == "ok"

    fn.abort("late")
    assert future.result() == "ok"
    assert not fn.executions[0].aborted


@pytest.mark.asyncio
async def test_abort_targets_latest_run() -> None:
    fn = wrap(always_fails).configure(RetryOptions(delay_multiplier=60_000))
    first = fn()
    await wait_for_decision(fn)
    first_history = fn.executions
    second = fn()
    await wait_for_decision(fn)

    fn.abort("latest")
    with pytest.raises(AbortError, match=r"Aborted: latest"):
        await second
    assert not first.done()
    assert not first_history[0].aborted

    first.cancel()


@pytest.mark.asyncio
async def test_external_signal_abort_between_attempts() -> None:
    controller = AbortController()
    operation = Mock(side_effect=always_fails)
    fn = wrap(operation).configure(RetryOptions(delay_multiplier=60_000, signal=controller.signal))
    future = fn()

    await wait_for_decision(fn)
    controller.abort("X")
    with pytest.raises(AbortError, match=r"Aborted: X"):
        await future
    operation.assert_called_once_with()
    assert fn.executions[0].abort_reason == "X"


@pytest.mark.asyncio
async def test_external_signal_already_aborted() -> None:
    controller = AbortController()
    controller.abort("X")
    operation = Mock(return_value="ok")
    fn = wrap(operation).configure(RetryOptions(), controller.signal)

    future = fn()
    with pytest.raises(AbortError, match=r"Aborted: X"):
        await future
    await asyncio.sleep(0)
    operation.assert_not_called()
    assert len(fn.executions) == 0


@pytest.mark.asyncio
async def test_external_signal_listener_removed_after_success() -> None:
    unsubscribe = Mock()
    subscribe = Mock(return_value=unsubscribe)
    signal = AbortController().signal
    fn = wrap(Mock(return_value=1)).configure(RetryOptions(), signal, subscribe=subscribe)

    assert await fn() == 1
    await asyncio.sleep(0)
    subscribe.assert_called_once()
    assert subscribe.call_args.args[0] is signal
    unsubscribe.assert_called_once_with()


@pytest.mark.asyncio
async def test_external_signal_listener_removed_after_failure() -> None:
    controller = AbortController()
    fn = wrap(always_fails).configure(retries=0, signal=controller.signal)

    with pytest.raises(ConnectionError):
        await fn()
    await asyncio.sleep(0)
    assert controller.signal._listeners == []
    # Aborting the signal later has no effect on the settled run
    controller.abort("late")
    assert not fn.executions[0].aborted


@pytest.mark.asyncio
async def test_external_signal_subscribed_per_invocation() -> None:
    subscribe = Mock(return_value=Mock())
    fn = wrap(Mock(return_value=1)).configure(
        RetryOptions(), AbortController().signal, subscribe=subscribe
    )
    await fn()
    await fn()
    assert subscribe.call_count == 2


@pytest.mark.asyncio
async def test_cancel_future_aborts_run() -> None:
    operation = Mock(side_effect=always_fails)
    fn = wrap(operation).configure(RetryOptions(delay_multiplier=60_000))
    future = fn()
    await wait_for_decision(fn)

    future.cancel()
    for _ in range(5):
        await asyncio.sleep(0)
    operation.assert_called_once_with()
    assert fn.executions[0].aborted
    assert fn.executions[0].abort_reason is None


@pytest.mark.asyncio
async def test_wait_for_timeout_aborts_run() -> None:
    """Test that an awaiting caller timing out cancels the retries."""
    operation = Mock(side_effect=always_fails)
    fn = wrap(operation).configure(RetryOptions(delay_multiplier=60_000))

    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(fn(), timeout=0.05)
    await asyncio.sleep(0)
    operation.assert_called_once_with()
    assert fn.executions[0].aborted


@pytest.mark.asyncio
async def test_external_signal_aborts_run_despite_failing_listener() -> None:
    controller = AbortController()
    controller.signal.add_listener(Mock(side_effect=RuntimeError("listener bug")))
    fn = wrap(always_fails).configure(RetryOptions(delay_multiplier=60_000), controller.signal)
    future = fn()

    await wait_for_decision(fn)
    controller.abort("X")
    with pytest.raises(AbortError, match=r"Aborted: X"):
        await future
    assert fn.executions[0].aborted
