"""Base data access object.

BaseDAO implements the whole CRUD contract on top of three primitives
that every backend must provide:

- ``get_all()``: every stored record, as a ResultSet
- ``add_all(records)``: store a batch, returning how many were written
- ``delete_all(records)``: remove a batch, returning how many were removed

Everything else (filtering, ordering, property updates, identifier
lookups, clone-then-replace updates) is composed here. Backends override
the operations they can run natively and inherit the rest.
"""

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Iterator, Sequence
from contextlib import contextmanager
from typing import Any, Generic, TypeVar

from recdao.core.exceptions import (
    ArityMismatch,
    DuplicateIdentifier,
    DuplicateRecord,
    IdentifierConflict,
    InvalidPropertyName,
    NoOpUpdate,
    RecordAlreadyExists,
    TooManyProperties,
)
from recdao.core.introspection import RecordSchema
from recdao.core.sorting import Sense, order_by
from recdao.core.validators import PropertyValidator

from ..results import ResultBuffer, ResultSet

logger = logging.getLogger(__name__)

R = TypeVar("R")

Predicate = Callable[[Any], bool]


class BaseDAO(ABC, Generic[R]):
    """Abstract base class for data access objects.

    A DAO is stateless: it holds the record schema and its backend handle,
    never records. Every call reads the backend afresh.
    """

    def __init__(self, factory: Callable[[], R], identifier: str | None = None):
        """Resolve the record schema and validate the identifier.

        Args:
            factory: Zero-argument callable returning a blank record.
            identifier: Name of the field acting as unique key, if any.

        Raises:
            TypeIntrospectionError: If the record type cannot be introspected.
            InvalidPropertyName: If ``identifier`` is not a declared field.
        """
        self.schema = RecordSchema.from_factory(factory)
        self.validator = PropertyValidator(self.schema)
        if identifier is not None:
            self.validator.validate(identifier)
        self.identifier = identifier

    # Primitives

    @abstractmethod
    def get_all(self) -> ResultSet[R]:
        """Every stored record, in storage order."""
        pass

    @abstractmethod
    def add_all(self, records: Iterable[R]) -> int:
        """Store a batch of records and return how many were written."""
        pass

    @abstractmethod
    def delete_all(self, records: Iterable[R]) -> int:
        """Remove a batch of records and return how many were removed."""
        pass

    @contextmanager
    def _batch(self) -> Iterator[None]:
        """Group the nested operations of one call.

        Backends override this so a multi-record operation commits or
        rewrites once, at the end, and leaves storage untouched on failure.
        """
        yield

    # Single records

    def add(self, record: R) -> bool:
        return record is not None and self.add_all([record]) == 1

    def delete(self, record: R) -> bool:
        return record is not None and self.delete_all([record]) == 1

    def find(self, record: R) -> bool:
        """Check whether a value-equal record is stored."""
        return record is not None and record in self.get_all()

    # Selection

    def get(self, predicate: Predicate) -> ResultSet[R]:
        """Records satisfying a predicate."""
        return self._result(record for record in self.get_all() if predicate(record))

    def get_by_property(self, property_name: str, value: Any) -> ResultSet[R]:
        """Records whose property equals ``value``."""
        self.validator.validate(property_name)
        return self.get(lambda record: self._has_value(record, property_name, value))

    def get_by_pattern(self, property_name: str, regex: str) -> ResultSet[R]:
        """Records whose property, as text, fully matches ``regex``."""
        self.validator.validate(property_name)
        pattern = re.compile(regex)
        return self.get(
            lambda record: pattern.fullmatch(self._text(record, property_name))
            is not None
        )

    def get_property(self, property_name: str) -> ResultSet[Any]:
        """Values of one property across all records (values may repeat)."""
        self.validator.validate(property_name)
        return ResultSet(
            self.schema.read(record, property_name) for record in self.get_all()
        )

    # Ordered selection

    def get_all_order_by(
        self, property_name: str, sense: Sense | str = Sense.ASC
    ) -> ResultSet[R]:
        self.validator.validate(property_name)
        return self._ordered(self.get_all(), property_name, sense)

    def get_by_property_order_by(
        self,
        property_name: str,
        value: Any,
        order_property: str,
        sense: Sense | str = Sense.ASC,
    ) -> ResultSet[R]:
        self.validator.validate(property_name, order_property)
        return self._ordered(
            self.get_by_property(property_name, value), order_property, sense
        )

    def get_by_pattern_order_by(
        self,
        property_name: str,
        regex: str,
        order_property: str,
        sense: Sense | str = Sense.ASC,
    ) -> ResultSet[R]:
        self.validator.validate(property_name, order_property)
        return self._ordered(
            self.get_by_pattern(property_name, regex), order_property, sense
        )

    # Deletion

    def delete_where(self, predicate: Predicate) -> int:
        """Remove every record satisfying a predicate."""
        with self._batch():
            return self.delete_all(self.get(predicate))

    def delete_by_property(self, property_name: str, value: Any) -> int:
        self.validator.validate(property_name)
        return self.delete_where(
            lambda record: self._has_value(record, property_name, value)
        )

    def delete_by_pattern(self, property_name: str, regex: str) -> int:
        self.validator.validate(property_name)
        pattern = re.compile(regex)
        return self.delete_where(
            lambda record: pattern.fullmatch(self._text(record, property_name))
            is not None
        )

    # Updates

    def update(self, old: R, new: R) -> bool:
        """Replace a stored record by another one.

        Returns:
            False if ``old`` is not stored, True once replaced.

        Raises:
            NoOpUpdate: If both records are equal.
            IdentifierConflict: If the identifier changes to one in use.
            RecordAlreadyExists: If ``new`` is already stored.
        """
        if old is None or new is None:
            return False
        if self.schema.equal(old, new):
            raise NoOpUpdate(new)

        with self._batch():
            self._check_identifier_change(old, new)

            data = self.get_all()
            if old not in data:
                return False
            if new in data:
                raise RecordAlreadyExists(new)

            return self.delete(old) and self.add(new)

    def set(
        self,
        property_names: Sequence[str],
        values: Sequence[Any],
        predicate: Predicate,
    ) -> int:
        """Overwrite some properties of every record matching a predicate.

        Records already holding the new values are left alone.

        Returns:
            Number of records replaced.

        Raises:
            TooManyProperties: If every declared property is targeted.
            ArityMismatch: If names and values differ in length.
            InvalidPropertyName: If a name is not a declared property.
        """
        property_names = list(property_names)
        values = list(values)

        if len(property_names) >= len(self.schema):
            raise TooManyProperties(len(property_names), len(self.schema))
        if len(property_names) != len(values):
            raise ArityMismatch(len(property_names), len(values))
        self.validator.validate(*property_names)

        changes = dict(zip(property_names, values))
        updated = 0
        with self._batch():
            for record in self.get(predicate):
                replacement = self.schema.replace(record, **changes)
                if self.schema.equal(record, replacement):
                    continue
                updated += 1 if self.update(record, replacement) else 0

        logger.debug(
            "set %s on %d %s record(s)", property_names, updated, self.schema.name
        )
        return updated

    def update_property(
        self, property_name: str, old_value: Any, new_value: Any
    ) -> int:
        """Replace ``old_value`` by ``new_value`` in one property of every record.

        Returns:
            Number of records updated.
        """
        self.validator.validate(property_name)
        if self.schema.values_equal(property_name, old_value, new_value):
            return 0

        updated = 0
        with self._batch():
            for record in self.get_by_property(property_name, old_value):
                replacement = self.schema.replace(record, **{property_name: new_value})
                updated += 1 if self.update(record, replacement) else 0
        return updated

    # Identifier operations

    def identifier_of(self, record: R) -> Any:
        return self.schema.read(record, self._require_identifier())

    def get_ids(self) -> ResultSet[Any]:
        """Identifiers of every record.

        Raises:
            DuplicateIdentifier: As soon as two records share an identifier.
        """
        name = self._require_identifier()
        buffer = self._id_buffer(0)
        for record in self.get_all():
            buffer.append(self.schema.read(record, name))
        return buffer.freeze()

    def get_by_id(self, identifier: Any) -> R | None:
        """Record holding ``identifier``, or None."""
        name = self._require_identifier()
        for record in self.get_all():
            if self._has_value(record, name, identifier):
                return record
        return None

    def delete_by_id(self, identifier: Any) -> bool:
        with self._batch():
            record = self.get_by_id(identifier)
            return record is not None and self.delete(record)

    def update_by_id(self, identifier: Any, record: R) -> bool:
        """Replace the record holding ``identifier``.

        Returns:
            False if no record holds ``identifier``.
        """
        self._require_identifier()
        with self._batch():
            old = self.get_by_id(identifier)
            if old is None:
                return False
            return self.update(old, record)

    def update_property_by_id(
        self, identifier: Any, property_name: str, value: Any
    ) -> bool:
        """Overwrite one property of the record holding ``identifier``."""
        self._require_identifier()
        self.validator.validate(property_name)
        with self._batch():
            old = self.get_by_id(identifier)
            if old is None:
                return False
            return self.update(old, self.schema.replace(old, **{property_name: value}))

    # Helpers

    def _require_identifier(self) -> str:
        if self.identifier is None:
            raise InvalidPropertyName(
                None, f"no identifier configured for {self.schema.name}"
            )
        return self.identifier

    def _check_identifier_change(self, old: R, new: R) -> None:
        if self.identifier is None:
            return
        old_id = self.schema.read(old, self.identifier)
        new_id = self.schema.read(new, self.identifier)
        if self.schema.values_equal(self.identifier, old_id, new_id):
            return
        if self.get_by_id(new_id) is not None:
            raise IdentifierConflict(new_id)

    def _has_value(self, record: R, property_name: str, value: Any) -> bool:
        return self.schema.values_equal(
            property_name, self.schema.read(record, property_name), value
        )

    def _text(self, record: R, property_name: str) -> str:
        return self.schema.to_text(
            property_name, self.schema.read(record, property_name)
        )

    def _normalized(self, property_name: str, text: str) -> str:
        """Canonical form of stored text, so ``030`` compares as ``30``."""
        return self.schema.to_text(
            property_name, self.schema.from_text(property_name, text)
        )

    def _ordered(
        self, records: Iterable[R], property_name: str, sense: Sense | str
    ) -> ResultSet[R]:
        return self._result(order_by(self.schema, records, property_name, Sense(sense)))

    def _result(self, records: Iterable[R]) -> ResultSet[R]:
        return ResultSet(records, self.schema.equal)

    def _record_buffer(self, size: int) -> ResultBuffer[R]:
        """Buffer for a read that must not yield two equal records."""
        return ResultBuffer(size, self.schema.equal, DuplicateRecord)

    def _id_buffer(self, size: int) -> ResultBuffer[Any]:
        """Buffer for a read that must not yield two equal identifiers."""
        name = self.identifier

        def same(first: Any, second: Any) -> bool:
            return self.schema.values_equal(name, first, second)

        return ResultBuffer(size, same, DuplicateIdentifier)
