"""Immutable result sets returned by every DAO read.

Reads collect rows into a ResultBuffer sized up front. Slots may stay
empty (filtered rows); putting a value equal to one already held raises
the error the reader configured. freeze() compacts the filled slots into a
ResultSet whose size is fixed from then on.
"""

from collections.abc import Callable, Iterable, Iterator, Sequence
from typing import Any, Generic, TypeVar, overload

from recdao.core.exceptions import DAOError

T = TypeVar("T")

_EMPTY: Any = object()

Equality = Callable[[Any, Any], bool]


def _default_equality(first: Any, second: Any) -> bool:
    return first == second


class ResultSet(Sequence, Generic[T]):
    """Read-only, order-preserving sequence compared by value."""

    __slots__ = ("_items", "_equals")

    def __init__(self, items: Iterable[T] = (), equals: Equality | None = None):
        self._items: tuple[T, ...] = tuple(items)
        self._equals = equals or _default_equality

    @overload
    def __getitem__(self, index: int) -> T: ...

    @overload
    def __getitem__(self, index: slice) -> "ResultSet[T]": ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return ResultSet(self._items[index], self._equals)
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __contains__(self, value: object) -> bool:
        return any(self._equals(item, value) for item in self._items)

    def index(self, value: Any, start: int = 0, stop: int | None = None) -> int:
        stop = len(self._items) if stop is None else stop
        for i in range(start, min(stop, len(self._items))):
            if self._equals(self._items[i], value):
                return i
        raise ValueError(f"{value!r} is not in result set")

    def count(self, value: Any) -> int:
        return sum(1 for item in self._items if self._equals(item, value))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Sequence) or isinstance(other, str | bytes):
            return NotImplemented
        if len(self) != len(other):
            return False
        return all(self._equals(a, b) for a, b in zip(self._items, other))

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"ResultSet({list(self._items)!r})"

    def to_list(self) -> list[T]:
        """Mutable copy of the items."""
        return list(self._items)


class ResultBuffer(Generic[T]):
    """Fixed-capacity working buffer that rejects value-equal duplicates."""

    def __init__(
        self,
        size: int,
        equals: Equality | None = None,
        duplicate_error: Callable[[Any], DAOError] | None = None,
    ):
        """Initialize the buffer.

        Args:
            size: Number of slots, usually the row count of the source.
            equals: Value equality used for duplicate detection and by the
                frozen ResultSet.
            duplicate_error: Factory of the error raised on a duplicate;
                duplicates are allowed when None.
        """
        self._slots: list[Any] = [_EMPTY] * size
        self._equals = equals or _default_equality
        self._duplicate_error = duplicate_error
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._slots)

    def put(self, index: int, value: T) -> None:
        """Fill one slot, growing the buffer if rows appeared since sizing."""
        if self._duplicate_error is not None and self._holds(value):
            raise self._duplicate_error(value)
        if index >= len(self._slots):
            self._slots.extend([_EMPTY] * (index + 1 - len(self._slots)))
        self._slots[index] = value
        self._cursor = max(self._cursor, index + 1)

    def append(self, value: T) -> None:
        self.put(self._cursor, value)

    def skip(self) -> None:
        """Leave the next slot empty."""
        self._cursor += 1

    def freeze(self) -> ResultSet[T]:
        """Compact the filled slots into a ResultSet."""
        return ResultSet(
            (value for value in self._slots if value is not _EMPTY), self._equals
        )

    def _holds(self, value: T) -> bool:
        return any(
            slot is not _EMPTY and self._equals(slot, value) for slot in self._slots
        )
