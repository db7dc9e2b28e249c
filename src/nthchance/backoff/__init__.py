r"""Backoff strategies for retry delays."""

from __future__ import annotations

__all__ = ["ExponentialBackoff"]

from nthchance.backoff.exponential import ExponentialBackoff
