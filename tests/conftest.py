"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins APP_ENV to "testing" so no developer .env file leaks into the run.
"""

import os

# Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

import pytest


class FakeClock:
    """Deterministic millisecond clock used to test expiration logic."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, ms: float) -> None:
        self.current += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
