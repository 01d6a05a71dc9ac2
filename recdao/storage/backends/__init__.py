"""Storage backends.

All backends share the BaseDAO contract:

- **SQLiteDAO**: one table per record type
- **DelimitedFileDAO**: header line plus one separated line per record
- **XmlDocumentDAO**: one element per record, fields as tags or attributes
- **CallbackDAO**: caller-supplied retrieve, persist and remove functions
"""

from .base import BaseDAO
from .callback import CallbackDAO
from .delimited import DelimitedFileDAO, Sheet
from .document import AttributeLayout, Layout, TagLayout, XmlDocumentDAO
from .sqlite import SQLiteDAO, Statements

__all__ = [
    "BaseDAO",
    "CallbackDAO",
    "DelimitedFileDAO",
    "Sheet",
    "Layout",
    "TagLayout",
    "AttributeLayout",
    "XmlDocumentDAO",
    "SQLiteDAO",
    "Statements",
]
