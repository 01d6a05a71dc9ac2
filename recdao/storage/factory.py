"""Construction helpers for DAOs.

Each helper builds the DAO for one kind of storage from a record factory
and the backend handle. Passing ``identifier`` enables the identifier
operations and the identifier uniqueness checks.
"""

import sqlite3
from collections.abc import Callable
from pathlib import Path

from .backends.base import BaseDAO, R
from .backends.callback import CallbackDAO, Retriever, Writer
from .backends.delimited import DelimitedFileDAO
from .backends.document import Layout, XmlDocumentDAO
from .backends.sqlite import SQLiteDAO


def sql_dao(
    factory: Callable[[], R],
    connection: sqlite3.Connection,
    identifier: str | None = None,
    create: bool = False,
) -> BaseDAO[R]:
    """DAO over the table named after the record type."""
    return SQLiteDAO(factory, connection, identifier=identifier, create=create)


def csv_dao(
    factory: Callable[[], R],
    path: Path | str,
    identifier: str | None = None,
    separator: str = ",",
) -> BaseDAO[R]:
    """DAO over a delimited text file."""
    return DelimitedFileDAO(factory, path, identifier=identifier, separator=separator)


def xml_dao(
    factory: Callable[[], R],
    path: Path | str,
    layout: Layout | str = Layout.TAG,
    identifier: str | None = None,
) -> BaseDAO[R]:
    """DAO over the record elements of an XML document."""
    return XmlDocumentDAO(factory, path, layout=layout, identifier=identifier)


def callback_dao(
    factory: Callable[[], R],
    retriever: Retriever,
    persister: Writer,
    remover: Writer,
    identifier: str | None = None,
) -> BaseDAO[R]:
    """DAO over caller-supplied storage callbacks."""
    return CallbackDAO(factory, retriever, persister, remover, identifier=identifier)
