"""Exception classes for record access objects.

Every failure raised by a DAO derives from DAOError so callers can catch
the whole family at once, while each condition stays distinguishable.
"""

from typing import Any


class DAOError(Exception):
    """Base exception for DAO errors."""

    pass


class InvalidPropertyName(DAOError, ValueError):
    """Raised when a property name is malformed or not a declared field."""

    def __init__(self, name: Any, reason: str = ""):
        """Initialize with the rejected name."""
        self.name = name
        if reason:
            message = f"Invalid property name {name!r}: {reason}"
        else:
            message = (
                f"The name {name!r} does not respect the rules of property naming"
            )
        super().__init__(message)


class DuplicateIdentifier(DAOError):
    """Raised when two stored records share one identifier."""

    def __init__(self, identifier: Any):
        """Initialize with the repeated identifier."""
        self.identifier = identifier
        super().__init__(
            f"Two or more records have the same identifier on the storage: "
            f"{identifier!r}"
        )


class DuplicateRecord(DAOError):
    """Raised when two value-equal records coexist on the storage."""

    def __init__(self, record: Any = None):
        """Initialize with the repeated record."""
        self.record = record
        super().__init__(
            "Two or more records are identical on the storage"
            + (f": {record!r}" if record is not None else "")
        )


class RecordAlreadyExists(DAOError):
    """Raised when an add or update would store a record that already exists."""

    def __init__(self, record: Any = None):
        """Initialize with the conflicting record."""
        self.record = record
        super().__init__(
            "A record with the same properties already exists on the storage"
            + (f": {record!r}" if record is not None else "")
        )


class IdentifierConflict(DAOError):
    """Raised when an add or update would reuse another record's identifier."""

    def __init__(self, identifier: Any):
        """Initialize with the conflicting identifier."""
        self.identifier = identifier
        super().__init__(
            f"A record with the identifier {identifier!r} already exists on the "
            "storage"
        )


class NoOpUpdate(DAOError, ValueError):
    """Raised when an update replaces a record with an equal one."""

    def __init__(self, record: Any = None):
        """Initialize with the record passed twice."""
        self.record = record
        super().__init__(
            "The record to be replaced and the replacement are the same; "
            "nothing to update"
        )


class InvalidHeader(DAOError):
    """Raised when a delimited file header does not match the field names."""

    def __init__(self, path: Any, header: list[str], expected: list[str]):
        """Initialize with the file path and both column lists."""
        self.path = path
        self.header = header
        self.expected = expected
        super().__init__(
            f"The header of {path} is not correct with respect to the field "
            f"names: found {header}, expected a permutation of {expected}"
        )


class TooManyProperties(DAOError, ValueError):
    """Raised when set() targets every declared field."""

    def __init__(self, count: int, total: int):
        """Initialize with the number of targeted and declared fields."""
        self.count = count
        self.total = total
        super().__init__(
            f"Updating {count} of {total} properties is not supported, "
            "because replacing all properties leads to duplicated records"
        )


class ArityMismatch(DAOError, ValueError):
    """Raised when property names and values differ in length."""

    def __init__(self, names: int, values: int):
        """Initialize with both lengths."""
        self.names = names
        self.values = values
        more = "properties than values" if names > values else "values than properties"
        super().__init__(
            f"Update failed: there are more {more} ({names} names, {values} values)"
        )


class TypeIntrospectionError(DAOError, TypeError):
    """Raised when a record type cannot be introspected."""

    def __init__(self, record_type: Any, details: str):
        """Initialize with the record type and what went wrong."""
        self.record_type = record_type
        name = getattr(record_type, "__name__", repr(record_type))
        super().__init__(f"Cannot introspect record type {name}: {details}")


class MalformedRow(DAOError):
    """Raised when a delimited line does not hold one cell per column."""

    def __init__(self, path: Any, line: int, cells: int, columns: int):
        """Initialize with the location and both counts."""
        self.path = path
        self.line = line
        self.cells = cells
        self.columns = columns
        super().__init__(
            f"{path}:{line}: found {cells} cell(s), expected {columns}"
        )
