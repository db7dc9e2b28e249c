r"""Unit tests for decisions."""

from __future__ import annotations

import dataclasses

import pytest

from nthchance.decision import Return, Stop, TryAgain, is_decision


def test_try_again_defaults() -> None:
    decision = TryAgain()
    assert decision.delay == 0
    assert decision.args is None


def test_try_again_with_args() -> None:
    decision = TryAgain(delay=250, args=("x", 2))
    assert decision.delay == 250
    assert decision.args == ("x", 2)


def test_stop_error() -> None:
    error = ValueError("boom")
    assert Stop(error).error is error


def test_return_value() -> None:
    assert Return(None).value is None
    assert Return({"k": 1}).value == {"k": 1}


def test_decisions_are_frozen() -> None:
    with pytest.raises(dataclasses.FrozenInstanceError):
        TryAgain(delay=1).delay = 2


def test_decisions_equality() -> None:
    assert TryAgain(delay=100) == TryAgain(delay=100)
    assert Return(1) != Return(2)
    assert Return(1) != TryAgain(delay=1)


@pytest.mark.parametrize("decision", [TryAgain(), Stop(ValueError()), Return(0)])
def test_is_decision_true(decision: object) -> None:
    assert is_decision(decision)


@pytest.mark.parametrize("value", [None, True, "retry", {"delay": 1}, TryAgain])
def test_is_decision_false(value: object) -> None:
    assert not is_decision(value)
