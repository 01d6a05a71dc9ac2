"""SQLite storage backend.

One table per record type, named after the type, with one column per
field in declaration order. Every statement is built once, at
construction, from the field descriptors; values are always bound as
parameters. Dates are bound as ISO text by the DAO itself, so no sqlite3
adapter is registered for the process.

A filter value that the column type cannot hold, such as ``"abc"`` for
an integer field, matches no row.
"""

import logging
import sqlite3
from collections.abc import Callable, Iterable, Iterator, Sequence
from contextlib import closing, contextmanager
from datetime import date
from typing import Any

from recdao.core.exceptions import (
    IdentifierConflict,
    NoOpUpdate,
    RecordAlreadyExists,
)
from recdao.core.fields import FieldDescriptor, FieldKind

from ..results import ResultSet
from .base import BaseDAO, R

logger = logging.getLogger(__name__)

# Filter value no column can hold
_UNMATCHABLE = object()

_COLUMN_TYPES = {
    FieldKind.INTEGER: "INTEGER",
    FieldKind.FLOAT: "REAL",
    FieldKind.BOOLEAN: "INTEGER",
    FieldKind.STRING: "TEXT",
    FieldKind.DATE: "TEXT",
}


def quote(name: str) -> str:
    """Quote an SQL identifier."""
    return '"' + name.replace('"', '""') + '"'


def bind(field: FieldDescriptor, value: Any) -> Any:
    """Parameter value of one field.

    Raises:
        ValueError: If the value cannot represent the field kind.
    """
    value = field.coerce(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


class Statements:
    """SQL templates of one record type."""

    def __init__(self, table: str, columns: Sequence[str], identifier: str | None):
        self.table = quote(table)
        self.columns = [quote(c) for c in columns]
        column_list = ", ".join(self.columns)
        # IS matches NULL against NULL
        match = " AND ".join(f"{c} IS ?" for c in self.columns)
        assign = ", ".join(f"{c} = ?" for c in self.columns)

        self.insert = (
            f"INSERT INTO {self.table} ({column_list}) "
            f"VALUES ({', '.join('?' for _ in self.columns)})"
        )
        self.delete = f"DELETE FROM {self.table} WHERE {match}"
        self.find = f"SELECT COUNT(*) FROM {self.table} WHERE {match}"
        self.update = f"UPDATE {self.table} SET {assign} WHERE {match}"
        self.select_all = f"SELECT {column_list} FROM {self.table}"
        self.count_all = f"SELECT COUNT(*) FROM {self.table}"

        self.select_by = {
            name: f"{self.select_all} WHERE {quote(name)} IS ?" for name in columns
        }
        self.count_by = {
            name: f"{self.count_all} WHERE {quote(name)} IS ?" for name in columns
        }
        self.delete_by = {
            name: f"DELETE FROM {self.table} WHERE {quote(name)} IS ?"
            for name in columns
        }
        self.project = {
            name: f"SELECT {quote(name)} FROM {self.table}" for name in columns
        }

        self.update_by_id = (
            f"UPDATE {self.table} SET {assign} WHERE {quote(identifier)} IS ?"
            if identifier is not None
            else None
        )

    def create(self, kinds: Sequence[FieldKind]) -> str:
        definitions = ", ".join(
            f"{column} {_COLUMN_TYPES[kind]}"
            for column, kind in zip(self.columns, kinds)
        )
        return f"CREATE TABLE IF NOT EXISTS {self.table} ({definitions})"


class SQLiteDAO(BaseDAO[R]):
    """DAO over one table of an SQLite database.

    The connection belongs to the caller and may be shared by several
    DAOs. Each mutating call runs in one transaction: it commits on
    success and rolls back on error.
    """

    def __init__(
        self,
        factory: Callable[[], R],
        connection: sqlite3.Connection,
        identifier: str | None = None,
        create: bool = False,
    ):
        """Initialize the DAO.

        Args:
            factory: Zero-argument callable returning a blank record.
            connection: Open SQLite connection.
            identifier: Name of the identifier column, if any.
            create: Create the table when it does not exist.
        """
        super().__init__(factory, identifier)
        self.connection = connection
        self.statements = Statements(
            self.schema.name, self.schema.field_names, self.identifier
        )
        self._depth = 0
        logger.debug("Prepared statements for table %s", self.statements.table)

        if create:
            self.create_table()

    def create_table(self) -> None:
        """Create the record table when missing."""
        sql = self.statements.create([field.kind for field in self.schema.fields])
        with self._batch():
            self.connection.execute(sql)

    @contextmanager
    def _batch(self) -> Iterator[None]:
        self._depth += 1
        try:
            if self._depth > 1:
                yield
            else:
                with self.connection:
                    yield
        finally:
            self._depth -= 1

    # Primitives

    def get_all(self) -> ResultSet[R]:
        return self._select(self.statements.count_all, self.statements.select_all)

    def add_all(self, records: Iterable[R]) -> int:
        written = 0
        with self._batch(), closing(self.connection.cursor()) as cursor:
            for record in records:
                if record is None:
                    continue
                params = self._params(record)
                if self._count(cursor, self.statements.find, params):
                    raise RecordAlreadyExists(record)
                if self.identifier is not None:
                    identifier = self.schema.read(record, self.identifier)
                    if self._count(
                        cursor,
                        self.statements.count_by[self.identifier],
                        (self._param(self.identifier, identifier),),
                    ):
                        raise IdentifierConflict(identifier)
                cursor.execute(self.statements.insert, params)
                written += cursor.rowcount

        logger.debug("Inserted %d row(s) into %s", written, self.statements.table)
        return written

    def delete_all(self, records: Iterable[R]) -> int:
        removed = 0
        with self._batch(), closing(self.connection.cursor()) as cursor:
            for record in records:
                params = self._lookup_params(record)
                if params is None:
                    continue
                cursor.execute(self.statements.delete, params)
                removed += cursor.rowcount

        logger.debug("Deleted %d row(s) from %s", removed, self.statements.table)
        return removed

    # Native operations

    def find(self, record: R) -> bool:
        params = self._lookup_params(record)
        if params is None:
            return False
        with closing(self.connection.cursor()) as cursor:
            return self._count(cursor, self.statements.find, params) > 0

    def get_by_property(self, property_name: str, value: Any) -> ResultSet[R]:
        self.validator.validate(property_name)
        param = self._param(property_name, value)
        if param is _UNMATCHABLE:
            return self._result(())
        return self._select(
            self.statements.count_by[property_name],
            self.statements.select_by[property_name],
            (param,),
        )

    def get_property(self, property_name: str) -> ResultSet[Any]:
        self.validator.validate(property_name)
        with closing(self.connection.cursor()) as cursor:
            cursor.execute(self.statements.project[property_name])
            return ResultSet(
                self.schema.coerce(property_name, row[0]) for row in cursor
            )

    def delete_by_property(self, property_name: str, value: Any) -> int:
        self.validator.validate(property_name)
        param = self._param(property_name, value)
        if param is _UNMATCHABLE:
            return 0
        with self._batch(), closing(self.connection.cursor()) as cursor:
            cursor.execute(self.statements.delete_by[property_name], (param,))
            return cursor.rowcount

    def update(self, old: R, new: R) -> bool:
        if old is None or new is None:
            return False
        if self.schema.equal(old, new):
            raise NoOpUpdate(new)

        with self._batch(), closing(self.connection.cursor()) as cursor:
            self._check_identifier_change(old, new)
            old_params = self._lookup_params(old)
            if old_params is None or not self._count(
                cursor, self.statements.find, old_params
            ):
                return False
            new_params = self._params(new)
            if self._count(cursor, self.statements.find, new_params):
                raise RecordAlreadyExists(new)

            cursor.execute(self.statements.update, new_params + old_params)
            return cursor.rowcount > 0

    def get_by_id(self, identifier: Any) -> R | None:
        name = self._require_identifier()
        param = self._param(name, identifier)
        if param is _UNMATCHABLE:
            return None
        with closing(self.connection.cursor()) as cursor:
            cursor.execute(self.statements.select_by[name], (param,))
            row = cursor.fetchone()
        return None if row is None else self._record(row)

    def delete_by_id(self, identifier: Any) -> bool:
        name = self._require_identifier()
        param = self._param(name, identifier)
        if param is _UNMATCHABLE:
            return False
        with self._batch(), closing(self.connection.cursor()) as cursor:
            cursor.execute(self.statements.delete_by[name], (param,))
            return cursor.rowcount > 0

    def update_by_id(self, identifier: Any, record: R) -> bool:
        self._require_identifier()
        if record is None:
            return False

        with self._batch(), closing(self.connection.cursor()) as cursor:
            old = self.get_by_id(identifier)
            if old is None:
                return False
            if self.schema.equal(old, record):
                raise NoOpUpdate(record)
            self._check_identifier_change(old, record)
            params = self._params(record)
            if self._count(cursor, self.statements.find, params):
                raise RecordAlreadyExists(record)

            cursor.execute(
                self.statements.update_by_id,
                params + (self._param(self.identifier, identifier),),
            )
            return cursor.rowcount > 0

    # Helpers

    def _params(self, record: R) -> tuple[Any, ...]:
        return tuple(
            bind(field, self.schema.read(record, field.name))
            for field in self.schema.fields
        )

    def _lookup_params(self, record: R) -> tuple[Any, ...] | None:
        """Parameters matching a record, or None when no row can hold it."""
        if record is None:
            return None
        try:
            return self._params(record)
        except (TypeError, ValueError):
            return None

    def _param(self, name: str, value: Any) -> Any:
        try:
            return bind(self.schema.field(name), value)
        except (TypeError, ValueError):
            return _UNMATCHABLE

    def _record(self, row: Sequence[Any]) -> R:
        return self.schema.from_values(dict(zip(self.schema.field_names, row)))

    @staticmethod
    def _count(cursor: sqlite3.Cursor, sql: str, params: Sequence[Any]) -> int:
        cursor.execute(sql, params)
        return cursor.fetchone()[0]

    def _select(
        self, count_sql: str, select_sql: str, params: Sequence[Any] = ()
    ) -> ResultSet[R]:
        """Count matching rows, then rebuild one record per row."""
        with closing(self.connection.cursor()) as cursor:
            buffer = self._record_buffer(self._count(cursor, count_sql, params))
            cursor.execute(select_sql, params)
            for row in cursor:
                buffer.append(self._record(row))
        return buffer.freeze()
