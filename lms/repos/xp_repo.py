from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.certificate import XpTransaction
from lms.services.errors import AwardAlreadyExistsError


class XpRepo(Protocol):
    async def add(self, transaction: XpTransaction) -> None:
        """Append a transaction; AwardAlreadyExistsError on a duplicate key."""
        ...

    async def total_points(self, student_id: UUID) -> int: ...


class InMemoryXpRepo:
    def __init__(self) -> None:
        self._log: list[XpTransaction] = []
        self._keys: set[tuple[UUID, str, UUID]] = set()

    async def add(self, transaction: XpTransaction) -> None:
        if transaction.key in self._keys:
            raise AwardAlreadyExistsError(*transaction.key)
        self._keys.add(transaction.key)
        self._log.append(transaction)

    async def total_points(self, student_id: UUID) -> int:
        return sum(t.points for t in self._log if t.student_id == student_id)

    def all(self) -> list[XpTransaction]:
        return list(self._log)
