"""Record introspection, property validation and ordering."""

# Errors
from recdao.core.exceptions import (
    ArityMismatch,
    DAOError,
    DuplicateIdentifier,
    DuplicateRecord,
    IdentifierConflict,
    InvalidHeader,
    InvalidPropertyName,
    MalformedRow,
    NoOpUpdate,
    RecordAlreadyExists,
    TooManyProperties,
    TypeIntrospectionError,
)

# Fields
from recdao.core.fields import FieldDescriptor, FieldKind

# Introspection
from recdao.core.introspection import Accessor, RecordSchema

# Ordering
from recdao.core.sorting import PropertyComparator, Sense, order_by

# Validation
from recdao.core.validators import PropertyValidator, is_property_name

__all__ = [
    # Errors
    "DAOError",
    "InvalidPropertyName",
    "DuplicateIdentifier",
    "DuplicateRecord",
    "RecordAlreadyExists",
    "IdentifierConflict",
    "NoOpUpdate",
    "InvalidHeader",
    "MalformedRow",
    "TooManyProperties",
    "ArityMismatch",
    "TypeIntrospectionError",
    # Fields
    "FieldKind",
    "FieldDescriptor",
    # Introspection
    "Accessor",
    "RecordSchema",
    # Ordering
    "Sense",
    "PropertyComparator",
    "order_by",
    # Validation
    "PropertyValidator",
    "is_property_name",
]
