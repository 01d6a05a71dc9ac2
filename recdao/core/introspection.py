"""Runtime introspection of record types.

A DAO works against property names, never against a concrete record
class. RecordSchema is the explicit capability that bridges the two: it
is derived once from a record factory and then answers, for every
persisted field, its semantic kind and how to read and write it.

Supported record types are ``msgspec.Struct`` subclasses, dataclasses and
plain classes with annotated attributes. A field may expose accessor
methods following the ``get_<field>`` / ``is_<field>`` / ``set_<field>``
convention; fields without them are accessed as attributes, which then
must be assignable (the type may not be frozen).
"""

import dataclasses
import typing
from collections.abc import Callable, Iterator, Mapping
from operator import attrgetter
from typing import Any, NamedTuple

import msgspec

from .exceptions import TypeIntrospectionError
from .fields import FieldDescriptor, FieldKind


class Accessor(NamedTuple):
    """Reader and writer of one field."""

    reader: Callable[[Any], Any]
    writer: Callable[[Any, Any], None]


class RecordSchema:
    """Ordered field descriptors and accessors of one record type."""

    def __init__(
        self,
        record_type: type,
        factory: Callable[[], Any],
        fields: tuple[FieldDescriptor, ...],
        accessors: dict[str, Accessor],
    ):
        self.record_type = record_type
        self.factory = factory
        self.fields = fields
        self._by_name = {field.name: field for field in fields}
        self._accessors = accessors

    @classmethod
    def from_factory(cls, factory: Callable[[], Any]) -> "RecordSchema":
        """Build the schema of the records produced by ``factory``.

        Args:
            factory: Zero-argument callable returning a blank record,
                usually the record class itself.

        Raises:
            TypeIntrospectionError: If no blank record can be built, a field
                has an unsupported type, or a field lacks accessors.
        """
        try:
            sample = factory()
        except Exception as e:
            raise TypeIntrospectionError(
                factory, f"cannot build a blank record ({e})"
            ) from e

        record_type = type(sample)
        declared = _declared_fields(record_type)
        if not declared:
            raise TypeIntrospectionError(record_type, "no declared fields")

        frozen = _is_frozen(record_type)
        fields = []
        accessors = {}
        for name, annotation in declared:
            resolved = FieldKind.from_annotation(annotation)
            if resolved is None:
                raise TypeIntrospectionError(
                    record_type, f"field {name!r} has unsupported type {annotation!r}"
                )
            kind, nullable = resolved
            descriptor = FieldDescriptor(name=name, kind=kind, nullable=nullable)
            fields.append(descriptor)
            accessors[name] = _resolve_accessor(record_type, sample, descriptor, frozen)

        return cls(record_type, factory, tuple(fields), accessors)

    @classmethod
    def of(cls, record_type: type) -> "RecordSchema":
        """Build the schema of a default-constructible record type."""
        return cls.from_factory(record_type)

    @property
    def name(self) -> str:
        """Record type name (relational table name)."""
        return self.record_type.__name__

    @property
    def tag_name(self) -> str:
        """Lower-camel-case record type name (XML element name)."""
        name = self.name
        return name[:1].lower() + name[1:]

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(field.name for field in self.fields)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[FieldDescriptor]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __repr__(self) -> str:
        return f"RecordSchema({self.name}, fields={list(self.field_names)})"

    def field(self, name: str) -> FieldDescriptor:
        """Descriptor of a declared field.

        Raises:
            KeyError: If ``name`` is not a declared field.
        """
        return self._by_name[name]

    def blank(self) -> Any:
        """New record from the factory."""
        return self.factory()

    def read(self, record: Any, name: str) -> Any:
        return self._accessors[name].reader(record)

    def write(self, record: Any, name: str, value: Any) -> None:
        """Write a value, coercing it to the field's type first."""
        self._accessors[name].writer(record, self._by_name[name].coerce(value))

    def values(self, record: Any) -> list[Any]:
        """Field values of a record in declaration order."""
        return [accessor.reader(record) for accessor in self._accessors.values()]

    def as_dict(self, record: Any) -> dict[str, Any]:
        return {name: self.read(record, name) for name in self.field_names}

    def from_values(self, values: Mapping[str, Any]) -> Any:
        """Build a record from raw values keyed by field name."""
        record = self.blank()
        for name, value in values.items():
            self.write(record, name, value)
        return record

    def from_texts(self, texts: Mapping[str, str]) -> Any:
        """Build a record from textual field values keyed by field name."""
        record = self.blank()
        for name, text in texts.items():
            self._accessors[name].writer(record, self._by_name[name].from_text(text))
        return record

    def to_texts(self, record: Any) -> dict[str, str]:
        """Textual field values of a record keyed by field name."""
        return {
            field.name: field.to_text(self.read(record, field.name))
            for field in self.fields
        }

    def clone(self, record: Any) -> Any:
        """Field-by-field copy of a record into a new blank record."""
        copy = self.blank()
        for name, accessor in self._accessors.items():
            accessor.writer(copy, accessor.reader(record))
        return copy

    def replace(self, record: Any, **changes: Any) -> Any:
        """Copy of a record with some fields overwritten."""
        copy = self.clone(record)
        for name, value in changes.items():
            self.write(copy, name, value)
        return copy

    def to_text(self, name: str, value: Any) -> str:
        return self._by_name[name].to_text(value)

    def from_text(self, name: str, text: str) -> Any:
        return self._by_name[name].from_text(text)

    def coerce(self, name: str, raw: Any) -> Any:
        return self._by_name[name].coerce(raw)

    def values_equal(self, name: str, first: Any, second: Any) -> bool:
        """Compare two values of one field by value, then by textual form."""
        if first == second:
            return True
        if first is None or second is None:
            return False
        return self.to_text(name, first) == self.to_text(name, second)

    def equal(self, first: Any, second: Any) -> bool:
        """Field-wise value equality of two records."""
        if first is second:
            return True
        if first is None or second is None:
            return False
        return all(
            self.values_equal(name, accessor.reader(first), accessor.reader(second))
            for name, accessor in self._accessors.items()
        )


def _declared_fields(record_type: type) -> list[tuple[str, Any]]:
    """Declared (name, annotation) pairs in declaration order."""
    if isinstance(record_type, type) and issubclass(record_type, msgspec.Struct):
        return [(f.name, f.type) for f in msgspec.structs.fields(record_type)]

    try:
        hints = typing.get_type_hints(record_type)
    except Exception as e:
        raise TypeIntrospectionError(
            record_type, f"cannot resolve annotations ({e})"
        ) from e

    if dataclasses.is_dataclass(record_type):
        return [
            (f.name, hints.get(f.name, f.type)) for f in dataclasses.fields(record_type)
        ]

    return [
        (name, annotation)
        for name, annotation in hints.items()
        if not name.startswith("_")
        and typing.get_origin(annotation) is not typing.ClassVar
    ]


def _is_frozen(record_type: type) -> bool:
    config = getattr(record_type, "__struct_config__", None)
    if config is not None:
        return bool(config.frozen)
    params = getattr(record_type, "__dataclass_params__", None)
    if params is not None:
        return bool(params.frozen)
    return False


def _resolve_accessor(
    record_type: type, sample: Any, field: FieldDescriptor, frozen: bool
) -> Accessor:
    name = field.name

    reader_names = [f"get_{name}"]
    if field.kind is FieldKind.BOOLEAN:
        reader_names.insert(0, f"is_{name}")

    reader = None
    for method_name in reader_names:
        if callable(getattr(record_type, method_name, None)):
            reader = _method_reader(method_name)
            break
    if reader is None:
        if not hasattr(sample, name):
            raise TypeIntrospectionError(
                record_type, f"field {name!r} has no reader and no attribute value"
            )
        reader = attrgetter(name)

    setter_name = f"set_{name}"
    if callable(getattr(record_type, setter_name, None)):
        writer = _method_writer(setter_name)
    elif not frozen:
        writer = _attribute_writer(name)
    else:
        raise TypeIntrospectionError(
            record_type, f"field {name!r} has no {setter_name}() and the type is frozen"
        )

    return Accessor(reader, writer)


def _method_reader(method_name: str) -> Callable[[Any], Any]:
    def read(record: Any) -> Any:
        return getattr(record, method_name)()

    return read


def _method_writer(method_name: str) -> Callable[[Any, Any], None]:
    def write(record: Any, value: Any) -> None:
        getattr(record, method_name)(value)

    return write


def _attribute_writer(name: str) -> Callable[[Any, Any], None]:
    def write(record: Any, value: Any) -> None:
        setattr(record, name, value)

    return write
