"""Delimited text file storage backend.

The first line of the file is a header naming the columns; every other
line holds one record, one cell per column, separated by a single
character. There is no quoting: a value may contain neither the
separator nor a line break.

Each call reads the whole file into a Sheet, works on it in memory and,
when it changed something, rewrites the file once at the end.
"""

import logging
import re
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from recdao.core.exceptions import (
    DuplicateIdentifier,
    DuplicateRecord,
    IdentifierConflict,
    InvalidHeader,
    MalformedRow,
    NoOpUpdate,
    RecordAlreadyExists,
)

from ..files import atomic_write_text
from ..results import ResultSet
from .base import BaseDAO, R

logger = logging.getLogger(__name__)


class Sheet:
    """In-memory content of a delimited file."""

    def __init__(self, header: list[str], rows: list[list[str]]):
        self.header = header
        self.rows = rows
        self.dirty = False
        self._columns = {name: i for i, name in enumerate(header)}

    def column(self, name: str) -> int:
        return self._columns[name]

    def cells(self, name: str) -> Iterator[str]:
        """Cells of one column, top to bottom."""
        i = self._columns[name]
        return (row[i] for row in self.rows)

    def render(self, separator: str) -> str:
        lines = [separator.join(self.header)]
        lines.extend(separator.join(row) for row in self.rows)
        return "\n".join(lines) + "\n"


class DelimitedFileDAO(BaseDAO[R]):
    """DAO over a delimited text file (CSV without quoting)."""

    def __init__(
        self,
        factory: Callable[[], R],
        path: Path | str,
        identifier: str | None = None,
        separator: str = ",",
    ):
        """Initialize the DAO and normalize the file.

        A missing file is created holding just the header. Blank lines
        are removed from an existing one.

        Args:
            factory: Zero-argument callable returning a blank record.
            path: Path of the delimited file.
            identifier: Name of the identifier column, if any.
            separator: Single cell separator character.

        Raises:
            ValueError: If ``separator`` is not one character.
            InvalidHeader: If the header does not name the fields.
        """
        if len(separator) != 1 or separator in "\r\n":
            raise ValueError(f"Separator must be one character, got {separator!r}")

        super().__init__(factory, identifier)
        self.path = Path(path)
        self.separator = separator
        self._sheet: Sheet | None = None
        self._prepare()

    def _prepare(self) -> None:
        text = self.path.read_text(encoding="utf-8") if self.path.exists() else ""
        if not text.strip():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            empty = Sheet(list(self.schema.field_names), [])
            atomic_write_text(self.path, empty.render(self.separator))
            logger.info("Created %s", self.path)
            return

        lines = text.splitlines()
        blank = sum(1 for line in lines if not line.strip())
        sheet = self._parse(lines)
        if blank:
            logger.warning("Removing %d blank line(s) from %s", blank, self.path)
            atomic_write_text(self.path, sheet.render(self.separator))

    # Sheet handling

    def _parse(self, lines: list[str]) -> Sheet:
        numbered = [(n, line) for n, line in enumerate(lines, 1) if line.strip()]
        if not numbered:
            raise InvalidHeader(self.path, [], list(self.schema.field_names))

        header = numbered[0][1].split(self.separator)
        expected = self.schema.field_names
        if len(header) != len(set(header)) or set(header) != set(expected):
            raise InvalidHeader(self.path, header, list(expected))

        rows = []
        for n, line in numbered[1:]:
            cells = line.split(self.separator)
            if len(cells) != len(header):
                raise MalformedRow(self.path, n, len(cells), len(header))
            rows.append(cells)
        return Sheet(header, rows)

    def _read(self) -> Sheet:
        return self._parse(self.path.read_text(encoding="utf-8").splitlines())

    def _current(self) -> Sheet:
        """Sheet of the running batch, or a fresh read."""
        return self._sheet if self._sheet is not None else self._read()

    @contextmanager
    def _batch(self) -> Iterator[None]:
        if self._sheet is not None:
            yield
            return

        self._sheet = self._read()
        try:
            yield
            if self._sheet.dirty:
                atomic_write_text(self.path, self._sheet.render(self.separator))
        finally:
            self._sheet = None

    def _row(self, sheet: Sheet, record: R) -> list[str]:
        texts = self.schema.to_texts(record)
        return [texts[name] for name in sheet.header]

    def _key(self, sheet: Sheet, row: list[str]) -> tuple[str, ...]:
        """Row in canonical text, the form records render to."""
        return tuple(
            self._normalized(name, cell) for name, cell in zip(sheet.header, row)
        )

    def _cells(self, sheet: Sheet, name: str) -> Iterator[str]:
        return (self._normalized(name, cell) for cell in sheet.cells(name))

    def _position(self, sheet: Sheet, row: list[str]) -> int:
        """Position of the stored row equal to a rendered one, or -1."""
        key = tuple(row)
        for i, stored in enumerate(sheet.rows):
            if self._key(sheet, stored) == key:
                return i
        return -1

    def _record(self, sheet: Sheet, row: list[str]) -> R:
        return self.schema.from_texts(dict(zip(sheet.header, row)))

    def _records(self, sheet: Sheet, rows: Iterable[list[str]]) -> ResultSet[R]:
        seen = set()
        records = []
        for row in rows:
            key = self._key(sheet, row)
            if key in seen:
                raise DuplicateRecord(self._record(sheet, row))
            seen.add(key)
            records.append(self._record(sheet, row))
        return self._result(records)

    # Primitives

    def get_all(self) -> ResultSet[R]:
        sheet = self._current()
        return self._records(sheet, sheet.rows)

    def add_all(self, records: Iterable[R]) -> int:
        written = 0
        with self._batch():
            sheet = self._sheet
            present = {self._key(sheet, row) for row in sheet.rows}
            ids = set(self._cells(sheet, self.identifier)) if self.identifier else set()

            for record in records:
                if record is None:
                    continue
                row = self._row(sheet, record)
                if tuple(row) in present:
                    raise RecordAlreadyExists(record)
                if self.identifier is not None:
                    cell = row[sheet.column(self.identifier)]
                    if cell in ids:
                        raise IdentifierConflict(self.identifier_of(record))
                    ids.add(cell)

                sheet.rows.append(row)
                present.add(tuple(row))
                written += 1

            sheet.dirty = sheet.dirty or written > 0

        logger.debug("Appended %d row(s) to %s", written, self.path)
        return written

    def delete_all(self, records: Iterable[R]) -> int:
        removed = 0
        with self._batch():
            sheet = self._sheet
            keys = [self._key(sheet, row) for row in sheet.rows]
            for record in records:
                if record is None:
                    continue
                key = tuple(self._row(sheet, record))
                if key in keys:
                    i = keys.index(key)
                    del sheet.rows[i]
                    del keys[i]
                    removed += 1

            sheet.dirty = sheet.dirty or removed > 0

        logger.debug("Removed %d row(s) from %s", removed, self.path)
        return removed

    # Native operations

    def find(self, record: R) -> bool:
        if record is None:
            return False
        sheet = self._current()
        return self._position(sheet, self._row(sheet, record)) >= 0

    def get_by_property(self, property_name: str, value: Any) -> ResultSet[R]:
        self.validator.validate(property_name)
        text = self.schema.to_text(property_name, value)
        sheet = self._current()
        i = sheet.column(property_name)
        return self._records(
            sheet,
            (
                row
                for row in sheet.rows
                if self._normalized(property_name, row[i]) == text
            ),
        )

    def get_by_pattern(self, property_name: str, regex: str) -> ResultSet[R]:
        self.validator.validate(property_name)
        pattern = re.compile(regex)
        sheet = self._current()
        i = sheet.column(property_name)
        return self._records(
            sheet,
            (
                row
                for row in sheet.rows
                if pattern.fullmatch(self._normalized(property_name, row[i]))
            ),
        )

    def get_ids(self) -> ResultSet[Any]:
        name = self._require_identifier()
        sheet = self._current()
        seen = set()
        ids = []
        for cell in self._cells(sheet, name):
            if cell in seen:
                raise DuplicateIdentifier(self.schema.from_text(name, cell))
            seen.add(cell)
            ids.append(self.schema.from_text(name, cell))
        return ResultSet(ids)

    def get_by_id(self, identifier: Any) -> R | None:
        name = self._require_identifier()
        text = self.schema.to_text(name, identifier)
        sheet = self._current()
        i = sheet.column(name)
        for row in sheet.rows:
            if self._normalized(name, row[i]) == text:
                return self._record(sheet, row)
        return None

    def update(self, old: R, new: R) -> bool:
        """Replace a record, keeping its line position.

        Cells whose value does not change keep their stored text.
        """
        if old is None or new is None:
            return False
        if self.schema.equal(old, new):
            raise NoOpUpdate(new)

        with self._batch():
            self._check_identifier_change(old, new)
            sheet = self._sheet
            i = self._position(sheet, self._row(sheet, old))
            if i < 0:
                return False
            replacement = self._row(sheet, new)
            if self._position(sheet, replacement) >= 0:
                raise RecordAlreadyExists(new)

            stored = sheet.rows[i]
            sheet.rows[i] = [
                cell if self._normalized(name, cell) == text else text
                for name, cell, text in zip(sheet.header, stored, replacement)
            ]
            sheet.dirty = True
            return True
