"""Shared fixtures for unit tests."""

from __future__ import annotations

import pytest
from fakes import FakeTerminal

from linefold.cli.console import reset_console


@pytest.fixture
def terminal() -> FakeTerminal:
    return FakeTerminal()


@pytest.fixture(autouse=True)
def _fresh_console():
    """Each test gets its own console singleton."""
    reset_console()
    yield
    reset_console()
