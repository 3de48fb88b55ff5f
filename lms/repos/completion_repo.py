from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.completion import CompletionRecord


class CompletionRepo(Protocol):
    async def upsert_many(self, records: list[CompletionRecord]) -> int: ...
    async def completed_content_ids(
        self, student_id: UUID, enrollment_id: UUID, content_ids: list[UUID]
    ) -> set[UUID]: ...
    async def completed_pairs(
        self,
        enrollment_id: UUID,
        content_ids: list[UUID],
        student_ids: list[UUID] | None = None,
    ) -> set[tuple[UUID, UUID]]: ...


class InMemoryCompletionRepo:
    """Dict keyed on (student_id, content_id, enrollment_id).

    The key makes upsert naturally idempotent: writing the same triple
    again replaces the row instead of adding a second one.
    """

    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID, UUID], CompletionRecord] = {}

    async def upsert_many(self, records: list[CompletionRecord]) -> int:
        for record in records:
            self._store[record.key] = record
        return len(records)

    async def completed_content_ids(
        self, student_id: UUID, enrollment_id: UUID, content_ids: list[UUID]
    ) -> set[UUID]:
        wanted = set(content_ids)
        return {
            r.content_id
            for r in self._store.values()
            if r.student_id == student_id
            and r.enrollment_id == enrollment_id
            and r.content_id in wanted
        }

    async def completed_pairs(
        self,
        enrollment_id: UUID,
        content_ids: list[UUID],
        student_ids: list[UUID] | None = None,
    ) -> set[tuple[UUID, UUID]]:
        wanted = set(content_ids)
        students = set(student_ids) if student_ids is not None else None
        return {
            (r.student_id, r.content_id)
            for r in self._store.values()
            if r.enrollment_id == enrollment_id
            and r.content_id in wanted
            and (students is None or r.student_id in students)
        }

    def all(self) -> list[CompletionRecord]:
        return list(self._store.values())
