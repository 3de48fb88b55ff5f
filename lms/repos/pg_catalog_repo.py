"""PostgreSQL implementation of CatalogRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import ContentItemRow, CourseModuleRow, CourseRow, CourseSessionRow
from lms.models.catalog import SessionAncestry


class PgCatalogRepo:
    """Satisfies the CatalogRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def content_ids_for_session(self, session_id: UUID) -> list[UUID]:
        stmt = (
            select(ContentItemRow.id)
            .where(ContentItemRow.session_id == session_id)
            .order_by(ContentItemRow.position)
        )
        return list((await self._session.execute(stmt)).scalars())

    async def session_ids_for_module(self, module_id: UUID) -> list[UUID]:
        stmt = (
            select(CourseSessionRow.id)
            .where(CourseSessionRow.module_id == module_id)
            .order_by(CourseSessionRow.position)
        )
        return list((await self._session.execute(stmt)).scalars())

    async def content_ids_for_sessions(
        self, session_ids: list[UUID]
    ) -> dict[UUID, list[UUID]]:
        grouped: dict[UUID, list[UUID]] = {sid: [] for sid in session_ids}
        if not session_ids:
            return grouped
        stmt = (
            select(ContentItemRow.session_id, ContentItemRow.id)
            .where(ContentItemRow.session_id.in_(session_ids))
            .order_by(ContentItemRow.position)
        )
        for session_id, content_id in await self._session.execute(stmt):
            grouped[session_id].append(content_id)
        return grouped

    async def module_ids_for_course(self, course_id: UUID) -> list[UUID]:
        stmt = (
            select(CourseModuleRow.id)
            .where(CourseModuleRow.course_id == course_id)
            .order_by(CourseModuleRow.position)
        )
        return list((await self._session.execute(stmt)).scalars())

    async def module_and_course_titles(
        self, module_id: UUID
    ) -> tuple[str | None, str | None]:
        stmt = (
            select(CourseModuleRow.title, CourseRow.title)
            .outerjoin(CourseRow, CourseRow.id == CourseModuleRow.course_id)
            .where(CourseModuleRow.id == module_id)
        )
        row = (await self._session.execute(stmt)).one_or_none()
        if row is None:
            return None, None
        return row[0], row[1]

    async def course_title(self, course_id: UUID) -> str | None:
        stmt = select(CourseRow.title).where(CourseRow.id == course_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def session_title(self, session_id: UUID) -> str | None:
        stmt = select(CourseSessionRow.title).where(CourseSessionRow.id == session_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def session_ancestry(self, session_id: UUID) -> SessionAncestry | None:
        stmt = (
            select(CourseSessionRow.id, CourseModuleRow.id, CourseModuleRow.course_id)
            .join(CourseModuleRow, CourseModuleRow.id == CourseSessionRow.module_id)
            .where(CourseSessionRow.id == session_id)
        )
        row = (await self._session.execute(stmt)).one_or_none()
        if row is None:
            return None
        return SessionAncestry(session_id=row[0], module_id=row[1], course_id=row[2])
