"""Shared fixtures for unit tests."""

import logging

import pytest

from httpengine.domain.log_context import clear_log_context


@pytest.fixture(autouse=True)
def enable_log_propagation():
    """Ensure logs propagate to root so caplog can catch them."""
    logger = logging.getLogger("http_engine")
    old_propagate = logger.propagate
    logger.propagate = True
    yield
    logger.propagate = old_propagate
    clear_log_context()


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(name="clock")
def fixture_clock() -> FakeClock:
    """Provide a controllable clock for connection bookkeeping."""
    return FakeClock()
