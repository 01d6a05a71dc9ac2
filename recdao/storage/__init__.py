"""Record storage layer.

One CRUD contract over several kinds of storage:

- **Relational**: SQLite tables through ``sqlite3``
- **Delimited text**: header plus separated lines, rewritten atomically
- **XML documents**: record elements in tag or attribute layout
- **Callbacks**: any storage reachable through three functions

Reads return immutable result sets. On the SQLite, delimited and XML
engines the mutations of one call are applied together or not at all;
the callback backend persists each record replacement as it goes.
"""

# Backends
from recdao.storage.backends import (
    BaseDAO,
    CallbackDAO,
    DelimitedFileDAO,
    Layout,
    SQLiteDAO,
    XmlDocumentDAO,
)

# Factory
from recdao.storage.factory import callback_dao, csv_dao, sql_dao, xml_dao

# Files
from recdao.storage.files import atomic_write_bytes, atomic_write_text

# Results
from recdao.storage.results import ResultBuffer, ResultSet

__all__ = [
    # Backends
    "BaseDAO",
    "CallbackDAO",
    "DelimitedFileDAO",
    "Layout",
    "SQLiteDAO",
    "XmlDocumentDAO",
    # Factory
    "sql_dao",
    "csv_dao",
    "xml_dao",
    "callback_dao",
    # Files
    "atomic_write_text",
    "atomic_write_bytes",
    # Results
    "ResultSet",
    "ResultBuffer",
]
