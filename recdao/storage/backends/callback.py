"""DAO over caller-supplied storage callbacks."""

from collections.abc import Callable, Iterable

from recdao.core.exceptions import IdentifierConflict, RecordAlreadyExists

from ..results import ResultSet
from .base import BaseDAO, R

Retriever = Callable[[], Iterable[R]]
Writer = Callable[[list[R]], int]


class CallbackDAO(BaseDAO[R]):
    """DAO whose primitives are plain callables.

    Useful for storage the library does not know about, and for tests:
    a list with three small functions around it is a complete backend.

    Each ``add_all`` batch is checked before the persister sees it, but
    updates are a removal followed by an addition, so a multi-record
    ``set`` that fails partway keeps the replacements already made.
    """

    def __init__(
        self,
        factory: Callable[[], R],
        retriever: Retriever,
        persister: Writer,
        remover: Writer,
        identifier: str | None = None,
    ):
        """Initialize the DAO.

        Args:
            factory: Zero-argument callable returning a blank record.
            retriever: Returns every stored record.
            persister: Stores a batch and returns how many were stored.
            remover: Removes a batch and returns how many were removed.
            identifier: Name of the identifier field, if any.
        """
        super().__init__(factory, identifier)
        self.retriever = retriever
        self.persister = persister
        self.remover = remover

    def get_all(self) -> ResultSet[R]:
        """Retrieved records; equal records make the read fail."""
        buffer = self._record_buffer(0)
        for record in self.retriever():
            buffer.append(record)
        return buffer.freeze()

    def add_all(self, records: Iterable[R]) -> int:
        """Check the batch against stored records, then persist it."""
        batch = [record for record in records if record is not None]
        if not batch:
            return 0

        known = self.get_all().to_list()
        for record in batch:
            if any(self.schema.equal(other, record) for other in known):
                raise RecordAlreadyExists(record)
            if self.identifier is not None:
                identifier = self.identifier_of(record)
                if any(
                    self._has_value(other, self.identifier, identifier)
                    for other in known
                ):
                    raise IdentifierConflict(identifier)
            known.append(record)

        return self.persister(batch)

    def delete_all(self, records: Iterable[R]) -> int:
        batch = [record for record in records if record is not None]
        if not batch:
            return 0
        return self.remover(batch)
