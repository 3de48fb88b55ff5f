"""PostgreSQL implementation of CompletionRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import ContentCompletionRow
from lms.models.completion import CompletionRecord


class PgCompletionRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert_many(self, records: list[CompletionRecord]) -> int:
        """Single INSERT ... ON CONFLICT DO UPDATE over the completion key."""
        if not records:
            return 0
        stmt = pg_insert(ContentCompletionRow).values(
            [
                {
                    "student_id": r.student_id,
                    "content_id": r.content_id,
                    "class_assignment_id": r.enrollment_id,
                    "watch_percentage": r.watch_percentage,
                    "completed_at": r.completed_at,
                }
                for r in records
            ]
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["student_id", "content_id", "class_assignment_id"],
            set_={
                "watch_percentage": stmt.excluded.watch_percentage,
                "completed_at": stmt.excluded.completed_at,
            },
        )
        await self._session.execute(stmt)
        return len(records)

    async def completed_content_ids(
        self, student_id: UUID, enrollment_id: UUID, content_ids: list[UUID]
    ) -> set[UUID]:
        if not content_ids:
            return set()
        stmt = (
            select(ContentCompletionRow.content_id)
            .where(ContentCompletionRow.student_id == student_id)
            .where(ContentCompletionRow.class_assignment_id == enrollment_id)
            .where(ContentCompletionRow.content_id.in_(content_ids))
        )
        return set((await self._session.execute(stmt)).scalars())

    async def completed_pairs(
        self,
        enrollment_id: UUID,
        content_ids: list[UUID],
        student_ids: list[UUID] | None = None,
    ) -> set[tuple[UUID, UUID]]:
        if not content_ids:
            return set()
        stmt = (
            select(ContentCompletionRow.student_id, ContentCompletionRow.content_id)
            .where(ContentCompletionRow.class_assignment_id == enrollment_id)
            .where(ContentCompletionRow.content_id.in_(content_ids))
        )
        if student_ids is not None:
            stmt = stmt.where(ContentCompletionRow.student_id.in_(student_ids))
        return {(row[0], row[1]) for row in await self._session.execute(stmt)}
