"""Tests for the generic CRUD orchestration and the callback backend."""

import pytest
from sample_records import Blob, Person

from recdao.core.exceptions import (
    DuplicateRecord,
    IdentifierConflict,
    InvalidPropertyName,
    RecordAlreadyExists,
    TypeIntrospectionError,
)
from recdao.storage.backends.base import BaseDAO
from recdao.storage.backends.callback import CallbackDAO


class TestBaseDAO:
    """Test the abstract base."""

    def test_is_abstract(self):
        with pytest.raises(TypeError):
            BaseDAO(Person)

    def test_primitives_are_enough(self, people):
        """A subclass providing the three primitives gets every operation."""

        class ListDAO(BaseDAO):
            def __init__(self, factory, identifier=None):
                super().__init__(factory, identifier)
                self.items = []

            def get_all(self):
                return self._result(self.items)

            def add_all(self, records):
                batch = list(records)
                self.items.extend(batch)
                return len(batch)

            def delete_all(self, records):
                removed = 0
                for record in records:
                    if record in self.items:
                        self.items.remove(record)
                        removed += 1
                return removed

        dao = ListDAO(Person, identifier="id")
        dao.add_all(people)
        assert dao.get_by_id(2).name == "Bo"
        assert dao.update_property_by_id(2, "name", "Bob")
        assert [p.name for p in dao.get_all_order_by("name")] == ["Ann", "Bob", "Cy"]
        assert dao.delete_by_pattern("name", "B.*") == 1

    def test_schema_and_validator(self, callback_factory):
        dao = callback_factory(identifier="id")
        assert dao.schema.field_names == ("id", "name", "age")
        assert dao.validator.is_valid("age")
        assert dao.identifier == "id"

    def test_unusable_record_type(self, callback_factory):
        with pytest.raises(TypeIntrospectionError):
            callback_factory(record=Blob)

    def test_identifier_of(self, callback_factory):
        dao = callback_factory(identifier="name")
        assert dao.identifier_of(Person(name="Ann")) == "Ann"

    def test_identifier_of_without_identifier(self, callback_factory):
        with pytest.raises(InvalidPropertyName):
            callback_factory().identifier_of(Person())


class TestCallbackDAO:
    """Test behaviour specific to the callback backend."""

    def test_callbacks_receive_batches(self, callback_factory, store, people):
        dao = callback_factory(identifier="id")
        dao.add_all(people)
        assert store.persist_calls == 1
        assert store.items == people

    def test_empty_batch_skips_callback(self, callback_factory, store):
        dao = callback_factory()
        assert dao.add_all([None]) == 0
        assert dao.delete_all([]) == 0
        assert store.persist_calls == 0

    def test_checks_before_persisting(self, callback_factory, store):
        dao = callback_factory(identifier="id")
        dao.add(Person(id=1))
        with pytest.raises(IdentifierConflict):
            dao.add_all([Person(id=2), Person(id=1, name="other")])
        assert store.persist_calls == 1
        assert store.items == [Person(id=1)]

    def test_failed_set_keeps_earlier_replacements(self, callback_factory, store):
        """Each replacement reaches the callbacks as soon as it is made."""
        dao = callback_factory()
        dao.add_all([Person(id=1, name="A", age=1), Person(id=1, name="B", age=1)])

        with pytest.raises(RecordAlreadyExists):
            dao.set(["name"], ["Z"], lambda p: True)

        assert store.items == [
            Person(id=1, name="B", age=1),
            Person(id=1, name="Z", age=1),
        ]

    def test_duplicates_from_retriever(self, callback_factory, store):
        store.items = [Person(id=1), Person(id=1)]
        with pytest.raises(DuplicateRecord):
            callback_factory().get_all()

    def test_any_iterable_retriever(self):
        dao = CallbackDAO(
            Person,
            lambda: (Person(id=i) for i in range(3)),
            lambda batch: 0,
            lambda batch: 0,
            identifier="id",
        )
        assert dao.get_ids() == [0, 1, 2]
