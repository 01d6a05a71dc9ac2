"""Field kinds and value conversions for persisted record fields.

Every persisted field belongs to one of a small set of semantic kinds.
The kind decides how a value is written to text (delimited files, XML),
how it is parsed back, and how raw driver values are coerced into the
Python type the record declares.
"""

import types
import typing
from datetime import date, datetime
from enum import Enum, unique
from typing import Any

import msgspec

TRUE_WORDS = frozenset({"true", "1", "yes", "y", "on"})
FALSE_WORDS = frozenset({"false", "0", "no", "n", "off"})


@unique
class FieldKind(Enum):
    """Semantic type of a persisted field."""

    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    STRING = "string"
    DATE = "date"

    @classmethod
    def from_annotation(cls, annotation: Any) -> tuple["FieldKind", bool] | None:
        """Map a type annotation to a kind.

        Returns:
            Tuple of (kind, nullable), or None when the annotation is not
            a supported field type.
        """
        nullable = False
        origin = typing.get_origin(annotation)
        if origin is typing.Union or origin is types.UnionType:
            args = [a for a in typing.get_args(annotation) if a is not type(None)]
            if len(args) != 1:
                return None
            annotation = args[0]
            nullable = True

        kind = _ANNOTATION_KINDS.get(annotation)
        if kind is None:
            return None
        return kind, nullable


_ANNOTATION_KINDS: dict[Any, FieldKind] = {
    int: FieldKind.INTEGER,
    float: FieldKind.FLOAT,
    bool: FieldKind.BOOLEAN,
    str: FieldKind.STRING,
    date: FieldKind.DATE,
}

_PYTHON_TYPES: dict[FieldKind, type] = {
    FieldKind.INTEGER: int,
    FieldKind.FLOAT: float,
    FieldKind.BOOLEAN: bool,
    FieldKind.STRING: str,
    FieldKind.DATE: date,
}


class FieldDescriptor(msgspec.Struct, frozen=True):
    """Name and semantic type of one persisted field."""

    name: str
    kind: FieldKind
    nullable: bool = False

    @property
    def python_type(self) -> type:
        """Python type values of this field are coerced to."""
        return _PYTHON_TYPES[self.kind]

    def coerce(self, raw: Any) -> Any:
        """Coerce a raw value (driver value, text, user input) to this field."""
        return coerce_value(self.kind, raw)

    def to_text(self, value: Any) -> str:
        """Textual form of a value of this field."""
        return format_value(self.kind, value)

    def from_text(self, text: str) -> Any:
        """Parse the textual form produced by to_text()."""
        return parse_value(self.kind, text)


def coerce_value(kind: FieldKind, raw: Any) -> Any:
    """Convert a raw value to the Python type of a field kind.

    Raises:
        ValueError: If the value cannot represent the kind.
    """
    if raw is None:
        return None

    if kind is FieldKind.STRING:
        if isinstance(raw, str):
            return raw
        raw_kind = _kind_of(raw)
        return str(raw) if raw_kind is FieldKind.STRING else format_value(raw_kind, raw)

    if kind is FieldKind.BOOLEAN:
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, int | float):
            return bool(raw)
        word = str(raw).strip().lower()
        if word in TRUE_WORDS:
            return True
        if word in FALSE_WORDS:
            return False
        raise ValueError(f"Not a boolean value: {raw!r}")

    if kind is FieldKind.INTEGER:
        if isinstance(raw, bool):
            return int(raw)
        if isinstance(raw, int):
            return raw
        if isinstance(raw, float):
            if not raw.is_integer():
                raise ValueError(f"Not an integer value: {raw!r}")
            return int(raw)
        return int(str(raw).strip())

    if kind is FieldKind.FLOAT:
        if isinstance(raw, float):
            return raw
        if isinstance(raw, int) and not isinstance(raw, bool):
            return float(raw)
        return float(str(raw).strip())

    # DATE
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    return date.fromisoformat(str(raw).strip())


def format_value(kind: FieldKind, value: Any) -> str:
    """Render a value as text.

    Values that cannot be coerced to the kind fall back to ``str()`` so a
    mismatching filter value simply never matches.
    """
    if value is None:
        return ""
    try:
        value = coerce_value(kind, value)
    except (TypeError, ValueError):
        return str(value)

    if kind is FieldKind.BOOLEAN:
        return "true" if value else "false"
    if kind is FieldKind.DATE:
        return value.isoformat()
    return str(value)


def parse_value(kind: FieldKind, text: str) -> Any:
    """Parse text written by format_value()."""
    if kind is FieldKind.STRING:
        return text
    if text is None or not text.strip():
        return None
    return coerce_value(kind, text)


def _kind_of(value: Any) -> FieldKind:
    if isinstance(value, bool):
        return FieldKind.BOOLEAN
    if isinstance(value, int):
        return FieldKind.INTEGER
    if isinstance(value, float):
        return FieldKind.FLOAT
    if isinstance(value, date):
        return FieldKind.DATE
    return FieldKind.STRING
