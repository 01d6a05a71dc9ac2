"""XML document storage backend.

The document root holds one element per record, named after the record
type in lower camel case (``Person`` becomes ``<person>``). A Layout
decides where the field values live:

- ``Layout.TAG``: one child element per field, holding the value as text
- ``Layout.ATTRIBUTE``: one attribute per field on the record element

Each call parses the document afresh and, when it changed something,
re-indents it and writes it back once at the end.
"""

import logging
import re
import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Any

from recdao.core.exceptions import (
    DuplicateIdentifier,
    DuplicateRecord,
    IdentifierConflict,
    NoOpUpdate,
    RecordAlreadyExists,
)

from ..files import atomic_write_bytes
from ..results import ResultSet
from .base import BaseDAO, R

logger = logging.getLogger(__name__)

INDENT = "    "


class Layout(Enum):
    """Placement of field values inside a record element."""

    TAG = "tag"
    ATTRIBUTE = "attribute"

    @classmethod
    def _missing_(cls, value: object) -> "Layout | None":
        if isinstance(value, str):
            lowered = value.lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class TagLayout:
    """Field values as text of child elements."""

    def read(self, element: ET.Element, name: str) -> str:
        child = element.find(name)
        if child is None or child.text is None:
            return ""
        return child.text.strip()

    def write(self, element: ET.Element, name: str, text: str) -> None:
        child = element.find(name)
        if child is None:
            child = ET.SubElement(element, name)
        child.text = text

    def build(self, tag: str, texts: dict[str, str]) -> ET.Element:
        element = ET.Element(tag)
        for name, text in texts.items():
            ET.SubElement(element, name).text = text
        return element


class AttributeLayout:
    """Field values as attributes of the record element."""

    def read(self, element: ET.Element, name: str) -> str:
        return element.get(name, "")

    def write(self, element: ET.Element, name: str, text: str) -> None:
        element.set(name, text)

    def build(self, tag: str, texts: dict[str, str]) -> ET.Element:
        return ET.Element(tag, dict(texts))


LAYOUTS = {
    Layout.TAG: TagLayout(),
    Layout.ATTRIBUTE: AttributeLayout(),
}


class XmlDocumentDAO(BaseDAO[R]):
    """DAO over the record elements of an XML document."""

    def __init__(
        self,
        factory: Callable[[], R],
        path: Path | str,
        layout: Layout | str = Layout.TAG,
        identifier: str | None = None,
        root: str = "records",
    ):
        """Initialize the DAO.

        Args:
            factory: Zero-argument callable returning a blank record.
            path: Path of the XML document.
            layout: Where field values are stored.
            identifier: Name of the identifier field, if any.
            root: Root element name used when the document is created.

        Raises:
            xml.etree.ElementTree.ParseError: If the document is not
                well-formed.
        """
        super().__init__(factory, identifier)
        self.path = Path(path)
        self.layout = Layout(layout)
        self._strategy = LAYOUTS[self.layout]
        self.tag = self.schema.tag_name
        self._tree: ET.ElementTree | None = None
        self._dirty = False

        if self.path.exists():
            ET.parse(self.path)
        else:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._write(ET.ElementTree(ET.Element(root)))
            logger.info("Created %s", self.path)

    # Document handling

    def _write(self, tree: ET.ElementTree) -> None:
        ET.indent(tree, space=INDENT)
        data = ET.tostring(tree.getroot(), encoding="utf-8", xml_declaration=True)
        atomic_write_bytes(self.path, data + b"\n")

    def _current(self) -> ET.ElementTree:
        """Tree of the running batch, or a fresh parse."""
        return self._tree if self._tree is not None else ET.parse(self.path)

    @contextmanager
    def _batch(self) -> Iterator[None]:
        if self._tree is not None:
            yield
            return

        self._tree = ET.parse(self.path)
        self._dirty = False
        try:
            yield
            if self._dirty:
                self._write(self._tree)
        finally:
            self._tree = None

    def _elements(self, tree: ET.ElementTree) -> list[ET.Element]:
        return [child for child in tree.getroot() if child.tag == self.tag]

    def _texts(self, element: ET.Element) -> tuple[str, ...]:
        """Field values of an element in canonical text."""
        return tuple(self._value(element, name) for name in self.schema.field_names)

    def _value(self, element: ET.Element, name: str) -> str:
        return self._normalized(name, self._strategy.read(element, name))

    def _row(self, record: R) -> tuple[str, ...]:
        return tuple(self.schema.to_texts(record).values())

    def _record(self, element: ET.Element) -> R:
        return self.schema.from_texts(
            {
                name: self._strategy.read(element, name)
                for name in self.schema.field_names
            }
        )

    def _locate(
        self, tree: ET.ElementTree, row: tuple[str, ...]
    ) -> ET.Element | None:
        for element in self._elements(tree):
            if self._texts(element) == row:
                return element
        return None

    def _records(self, elements: Iterable[ET.Element]) -> ResultSet[R]:
        seen = set()
        records = []
        for element in elements:
            texts = self._texts(element)
            if texts in seen:
                raise DuplicateRecord(self._record(element))
            seen.add(texts)
            records.append(self._record(element))
        return self._result(records)

    def _column(self, tree: ET.ElementTree, name: str) -> list[str]:
        return [self._value(element, name) for element in self._elements(tree)]

    # Primitives

    def get_all(self) -> ResultSet[R]:
        return self._records(self._elements(self._current()))

    def add_all(self, records: Iterable[R]) -> int:
        written = 0
        with self._batch():
            root = self._tree.getroot()
            present = {self._texts(element) for element in self._elements(self._tree)}
            ids = set()
            if self.identifier is not None:
                ids.update(self._column(self._tree, self.identifier))

            for record in records:
                if record is None:
                    continue
                texts = self.schema.to_texts(record)
                row = tuple(texts.values())
                if row in present:
                    raise RecordAlreadyExists(record)
                if self.identifier is not None:
                    if texts[self.identifier] in ids:
                        raise IdentifierConflict(self.identifier_of(record))
                    ids.add(texts[self.identifier])

                root.append(self._strategy.build(self.tag, texts))
                present.add(row)
                written += 1

            self._dirty = self._dirty or written > 0

        logger.debug(
            "Appended %d <%s> element(s) to %s", written, self.tag, self.path
        )
        return written

    def delete_all(self, records: Iterable[R]) -> int:
        removed = 0
        with self._batch():
            root = self._tree.getroot()
            for record in records:
                if record is None:
                    continue
                element = self._locate(self._tree, self._row(record))
                if element is not None:
                    root.remove(element)
                    removed += 1

            self._dirty = self._dirty or removed > 0

        logger.debug(
            "Removed %d <%s> element(s) from %s", removed, self.tag, self.path
        )
        return removed

    # Native operations

    def find(self, record: R) -> bool:
        if record is None:
            return False
        return self._locate(self._current(), self._row(record)) is not None

    def get_by_property(self, property_name: str, value: Any) -> ResultSet[R]:
        self.validator.validate(property_name)
        text = self.schema.to_text(property_name, value)
        return self._records(
            element
            for element in self._elements(self._current())
            if self._value(element, property_name) == text
        )

    def get_by_pattern(self, property_name: str, regex: str) -> ResultSet[R]:
        self.validator.validate(property_name)
        pattern = re.compile(regex)
        return self._records(
            element
            for element in self._elements(self._current())
            if pattern.fullmatch(self._value(element, property_name))
        )

    def get_ids(self) -> ResultSet[Any]:
        name = self._require_identifier()
        seen = set()
        ids = []
        for text in self._column(self._current(), name):
            if text in seen:
                raise DuplicateIdentifier(self.schema.from_text(name, text))
            seen.add(text)
            ids.append(self.schema.from_text(name, text))
        return ResultSet(ids)

    def get_by_id(self, identifier: Any) -> R | None:
        name = self._require_identifier()
        text = self.schema.to_text(name, identifier)
        for element in self._elements(self._current()):
            if self._value(element, name) == text:
                return self._record(element)
        return None

    def update(self, old: R, new: R) -> bool:
        """Rewrite the changed fields of a record element in place.

        Fields whose value does not change keep their stored text.
        """
        if old is None or new is None:
            return False
        if self.schema.equal(old, new):
            raise NoOpUpdate(new)

        with self._batch():
            self._check_identifier_change(old, new)
            element = self._locate(self._tree, self._row(old))
            if element is None:
                return False
            if self._locate(self._tree, self._row(new)) is not None:
                raise RecordAlreadyExists(new)

            for name, text in self.schema.to_texts(new).items():
                if self._value(element, name) != text:
                    self._strategy.write(element, name, text)
            self._dirty = True
            return True
