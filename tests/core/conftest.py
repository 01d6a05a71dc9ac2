"""Shared fixtures for core module tests."""

import pytest
from sample_records import Account, Event, Person

from recdao.core.introspection import RecordSchema


@pytest.fixture
def person_schema() -> RecordSchema:
    return RecordSchema.of(Person)


@pytest.fixture
def event_schema() -> RecordSchema:
    return RecordSchema.of(Event)


@pytest.fixture
def account_schema() -> RecordSchema:
    return RecordSchema.of(Account)
