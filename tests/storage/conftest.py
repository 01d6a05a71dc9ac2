"""Shared fixtures for storage tests."""

import sqlite3

import pytest
from sample_records import Person

from recdao.storage.backends.callback import CallbackDAO
from recdao.storage.backends.delimited import DelimitedFileDAO
from recdao.storage.backends.document import Layout, XmlDocumentDAO
from recdao.storage.backends.sqlite import SQLiteDAO


@pytest.fixture
def connection(temp_dir):
    """SQLite connection to a fresh database file."""
    conn = sqlite3.connect(str(temp_dir / "test.db"))
    yield conn
    conn.close()


@pytest.fixture
def sqlite_factory(connection):
    """Build SQLite DAOs of Person over one connection."""

    def build(identifier=None, record=Person):
        return SQLiteDAO(record, connection, identifier=identifier, create=True)

    return build


@pytest.fixture
def csv_path(temp_dir):
    return temp_dir / "people.csv"


@pytest.fixture
def csv_factory(csv_path):
    def build(identifier=None, record=Person):
        return DelimitedFileDAO(record, csv_path, identifier=identifier)

    return build


@pytest.fixture
def csv_seed(csv_path):
    """Write Person rows of raw text to the delimited file."""

    def seed(rows):
        lines = ["id,name,age", *(",".join(row) for row in rows)]
        csv_path.write_text("\n".join(lines) + "\n")

    return seed


@pytest.fixture
def xml_path(temp_dir):
    return temp_dir / "people.xml"


@pytest.fixture
def xml_tag_factory(xml_path):
    def build(identifier=None, record=Person):
        return XmlDocumentDAO(record, xml_path, Layout.TAG, identifier=identifier)

    return build


@pytest.fixture
def xml_attribute_factory(xml_path):
    def build(identifier=None, record=Person):
        return XmlDocumentDAO(
            record, xml_path, Layout.ATTRIBUTE, identifier=identifier
        )

    return build


@pytest.fixture
def xml_tag_seed(xml_path):
    """Write Person rows of raw text as child elements."""

    def seed(rows):
        elements = "".join(
            f"<person><id>{i}</id><name>{n}</name><age>{a}</age></person>"
            for i, n, a in rows
        )
        xml_path.write_text(f"<records>{elements}</records>")

    return seed


@pytest.fixture
def xml_attribute_seed(xml_path):
    """Write Person rows of raw text as attributes."""

    def seed(rows):
        elements = "".join(
            f'<person id="{i}" name="{n}" age="{a}" />' for i, n, a in rows
        )
        xml_path.write_text(f"<records>{elements}</records>")

    return seed


class ListStore:
    """List-backed storage exposing the three CallbackDAO callbacks."""

    def __init__(self, equals):
        self.items = []
        self.equals = equals
        self.persist_calls = 0

    def retrieve(self):
        return list(self.items)

    def persist(self, batch):
        self.persist_calls += 1
        self.items.extend(batch)
        return len(batch)

    def remove(self, batch):
        removed = 0
        for record in batch:
            for i, item in enumerate(self.items):
                if self.equals(item, record):
                    del self.items[i]
                    removed += 1
                    break
        return removed


@pytest.fixture
def store():
    return ListStore(lambda a, b: a == b)


@pytest.fixture
def callback_factory(store):
    def build(identifier=None, record=Person):
        return CallbackDAO(
            record, store.retrieve, store.persist, store.remove, identifier=identifier
        )

    return build
