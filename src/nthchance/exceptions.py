r"""Exceptions raised by nthchance runs."""

from __future__ import annotations

__all__ = ["AbortError", "abort_error_from_reason"]

from typing import Any


class AbortError(RuntimeError):
    """Exception raised when a run is aborted.

    Args:
        message: A descriptive error message.
        reason: The abort reason, if any.

    Example:
        ```pycon
        >>> from nthchance.exceptions import AbortError
        >>> raise AbortError("Aborted: user cancelled", reason="user cancelled")
        Traceback (most recent call last):
            ...
        nthchance.exceptions.AbortError: Aborted: user cancelled

        ```
    """

    def __init__(self, message: str = "Aborted", reason: Any = None) -> None:
        super().__init__(message)
        self.reason = reason


def abort_error_from_reason(reason: Any = None) -> BaseException:
    """Normalize an abort reason into the exception a run is rejected
    with.

    Args:
        reason: The abort reason. A string is wrapped as
            ``"Aborted: <reason>"``, an exception is returned as is,
            and an empty reason gives a generic ``"Aborted"`` error.

    Returns:
        The exception to set on the run's future.

    Example:
        ```pycon
        >>> from nthchance.exceptions import abort_error_from_reason
        >>> abort_error_from_reason("timeout")
        AbortError('Aborted: timeout')
        >>> abort_error_from_reason()
        AbortError('Aborted')
        >>> err = ValueError("boom")
        >>> abort_error_from_reason(err) is err
        True

        ```
    """
    if not reason:
        return AbortError("Aborted")
    if isinstance(reason, str):
        return AbortError(f"Aborted: {reason}", reason=reason)
    if isinstance(reason, BaseException):
        return reason
    return AbortError(f"Aborted: {reason!r}", reason=reason)
