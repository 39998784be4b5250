"""Shared pytest fixtures for trackfx tests."""

import pytest

from trackfx import use_runtime


@pytest.fixture(autouse=True)
def runtime():
    """Give every test its own Runtime so no dependencies leak between tests."""
    with use_runtime() as rt:
        yield rt
