r"""Execution records and the append-only execution history.

Every attempt made by a run produces one ``ExecutionRecord``. Records
are appended to the run's ``ExecutionHistory`` as soon as the attempt
settles and are never removed. The engine later attaches the decision
and, when the run is aborted, the abort flag and reason.
"""

from __future__ import annotations

__all__ = ["NANOSECONDS_PER_MILLISECOND", "ExecutionHistory", "ExecutionRecord"]

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, overload

if TYPE_CHECKING:
    from collections.abc import Iterator

    from nthchance.decision import Decision

NANOSECONDS_PER_MILLISECOND = 1_000_000


@dataclass
class ExecutionRecord:
    """Record of one attempt.

    Exactly one of ``error`` and ``returned_value`` describes the
    outcome: a record with an ``error`` is a failed attempt, any other
    record is a successful one (``returned_value`` may be ``None``).

    Attributes:
        args: The positional arguments used for the attempt.
        start_time: Monotonic timestamp in nanoseconds taken before
            calling the operation.
        finish_time: Monotonic timestamp in nanoseconds taken once the
            outcome is known, after awaiting an asynchronous result.
        error: The exception raised by the attempt, if it failed.
        returned_value: The value produced by the attempt, if it succeeded.
        decision: The decision made for this attempt. ``None`` while
            the decider has not answered.
        aborted: Whether the run was aborted while this record was
            the latest one.
        abort_reason: The abort reason, set together with ``aborted``.

    Example:
        ```pycon
        >>> from nthchance.history import ExecutionRecord
        >>> record = ExecutionRecord(args=(1,), start_time=0, finish_time=5_000_000, returned_value=2)
        >>> record.succeeded
        True
        >>> record.duration_ns
        5000000

        ```
    """

    args: tuple[Any, ...]
    start_time: int
    finish_time: int
    error: BaseException | None = None
    returned_value: Any = None
    decision: Decision | None = None
    aborted: bool = False
    abort_reason: Any = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def duration_ns(self) -> int:
        return self.finish_time - self.start_time

    def mark_aborted(self, reason: Any) -> None:
        """Flag the record as aborted.

        The first call wins so the abort fields are never rewritten.

        Args:
            reason: The abort reason.
        """
        if self.aborted:
            return
        self.aborted = True
        self.abort_reason = reason


class ExecutionHistory(Sequence):
    """Ordered, append-only sequence of execution records.

    The history is a live view: the caller may read it at any time,
    including while the run is in flight. Only the engine appends to it.

    Example:
        ```pycon
        >>> from nthchance.history import ExecutionHistory, ExecutionRecord
        >>> history = ExecutionHistory()
        >>> history.append(ExecutionRecord(args=(), start_time=0, finish_time=2_000_000))
        >>> history.append(ExecutionRecord(args=(), start_time=5_000_000, finish_time=8_000_000))
        >>> len(history)
        2
        >>> history.total_exec_time_ms()
        5

        ```
    """

    def __init__(self) -> None:
        self._records: list[ExecutionRecord] = []

    @overload
    def __getitem__(self, index: int) -> ExecutionRecord: ...

    @overload
    def __getitem__(self, index: slice) -> list[ExecutionRecord]: ...

    def __getitem__(self, index: int | slice) -> ExecutionRecord | list[ExecutionRecord]:
        return self._records[index]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ExecutionRecord]:
        return iter(self._records)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ExecutionHistory):
            return self._records == other._records
        if isinstance(other, list):
            return self._records == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}({self._records!r})"

    def append(self, record: ExecutionRecord) -> None:
        self._records.append(record)

    @property
    def last(self) -> ExecutionRecord | None:
        """The most recent record, or ``None`` if no attempt has
        settled yet."""
        return self._records[-1] if self._records else None

    def total_exec_time_ns(self) -> int:
        """Return the sum of all attempt durations in nanoseconds."""
        return sum(record.duration_ns for record in self._records)

    def total_exec_time_ms(self) -> int:
        """Return the sum of all attempt durations in whole
        milliseconds."""
        return self.total_exec_time_ns() // NANOSECONDS_PER_MILLISECOND
