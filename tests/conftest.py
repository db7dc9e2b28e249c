from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, Mock, patch

import pytest

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture
def mock_asleep() -> Generator[AsyncMock, None, None]:
    """Patch asyncio.sleep in the run controller to make retry delays
    instant."""
    with patch("nthchance.controller.asyncio.sleep", new_callable=AsyncMock) as mock:
        yield mock


@pytest.fixture
def mock_monotonic_ns() -> Generator[Mock, None, None]:
    """Patch time.monotonic_ns in the engine with a clock advancing by
    10ms on every reading."""
    clock = {"now": 0}

    def tick() -> int:
        now = clock["now"]
        clock["now"] += 10_000_000
        return now

    with patch("nthchance.engine.time.monotonic_ns", side_effect=tick) as mock:
        yield mock


@pytest.fixture
def mock_decider() -> Mock:
    """Create a mock decider for testing.

    Configure it with ``side_effect`` or ``return_value`` to return
    decisions.
    """
    return Mock()
