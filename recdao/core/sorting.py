"""Ordering of records by one property.

The default comparison renders the property of both records as text and
compares the strings. This gives one deterministic order for every field
kind, at the price of textual ordering for numbers ("10" sorts before
"9"). Pass ``typed=True`` to compare the native values instead.
"""

from collections.abc import Iterable
from enum import Enum
from functools import cmp_to_key
from typing import Any

from .introspection import RecordSchema


class Sense(Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"

    @classmethod
    def _missing_(cls, value: object) -> "Sense | None":
        if isinstance(value, str):
            lowered = value.lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class PropertyComparator:
    """Compare two records on one property."""

    def __init__(
        self,
        schema: RecordSchema,
        property_name: str,
        sense: Sense = Sense.ASC,
        typed: bool = False,
    ):
        self.schema = schema
        self.property_name = property_name
        self.sense = sense
        self.typed = typed

    def key(self, record: Any) -> Any:
        """Sort key of a record for ascending order."""
        value = self.schema.read(record, self.property_name)
        if self.typed:
            # None sorts first
            return (value is not None, value)
        return self.schema.to_text(self.property_name, value)

    def compare(self, first: Any, second: Any) -> int:
        a, b = self.key(first), self.key(second)
        result = (a > b) - (a < b)
        return -result if self.sense is Sense.DESC else result

    def sort(self, records: Iterable[Any]) -> list[Any]:
        """Stable sort of records; equal keys keep their input order."""
        return sorted(records, key=cmp_to_key(self.compare))


def order_by(
    schema: RecordSchema,
    records: Iterable[Any],
    property_name: str,
    sense: Sense = Sense.ASC,
    typed: bool = False,
) -> list[Any]:
    """Sort records on one property."""
    return PropertyComparator(schema, property_name, sense, typed).sort(records)
