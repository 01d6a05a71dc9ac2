"""Validation of user-supplied property names.

Property names end up inside generated SQL, as column lookups in
delimited files and as XML tag or attribute names. PropertyValidator is
the gate every name passes before any of that happens.
"""

import re

from .exceptions import InvalidPropertyName
from .introspection import RecordSchema

PROPERTY_NAME = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


def is_property_name(name: object) -> bool:
    """Check the shape of a name, regardless of any record type."""
    return isinstance(name, str) and PROPERTY_NAME.fullmatch(name) is not None


class PropertyValidator:
    """Check property names against a record schema."""

    def __init__(self, schema: RecordSchema):
        self.schema = schema

    def validate(self, *names: object) -> None:
        """Validate every name.

        Raises:
            InvalidPropertyName: On the first name that is empty, not an
                identifier-shaped string, or not a declared field.
        """
        for name in names:
            if name is None:
                raise InvalidPropertyName(name, "the name of the property is null")
            if not is_property_name(name):
                raise InvalidPropertyName(name)
            if name not in self.schema:
                raise InvalidPropertyName(
                    name, f"not an attribute of the record type {self.schema.name}"
                )

    def is_valid(self, name: object) -> bool:
        try:
            self.validate(name)
        except InvalidPropertyName:
            return False
        return True
