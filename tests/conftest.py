"""Pytest configuration and fixtures."""

import os
import tempfile
from pathlib import Path

import pytest
from sample_records import Person


@pytest.fixture(autouse=True)
def isolate_environment():
    """Isolate environment variables for each test.

    This prevents test pollution where one test's environment
    changes affect other tests.
    """
    original_env = os.environ.copy()

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def temp_dir():
    """Temporary directory for test data."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def people() -> list[Person]:
    """Three people with distinct identifiers."""
    return [
        Person(id=1, name="Ann", age=30),
        Person(id=2, name="Bo", age=41),
        Person(id=3, name="Cy", age=22),
    ]
