"""PostgreSQL implementation of RosterRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import ClassCourseAssignmentRow, ClassRow, StudentRow
from lms.models.catalog import Enrollment
from lms.models.student import Student


class PgRosterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def active_students_for_class(self, class_id: UUID) -> list[Student]:
        stmt = (
            select(StudentRow)
            .where(StudentRow.class_id == class_id)
            .where(StudentRow.status == "active")
            .order_by(StudentRow.roll_number, StudentRow.student_name)
        )
        rows = (await self._session.execute(stmt)).scalars()
        return [_row_to_student(r) for r in rows]

    async def students_by_ids(self, student_ids: list[UUID]) -> list[Student]:
        if not student_ids:
            return []
        stmt = select(StudentRow).where(StudentRow.id.in_(student_ids))
        by_id = {r.id: r for r in (await self._session.execute(stmt)).scalars()}
        return [_row_to_student(by_id[sid]) for sid in student_ids if sid in by_id]

    async def class_institution(self, class_id: UUID) -> UUID | None:
        stmt = select(ClassRow.institution_id).where(ClassRow.id == class_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def get_enrollment(self, enrollment_id: UUID) -> Enrollment | None:
        stmt = select(ClassCourseAssignmentRow).where(
            ClassCourseAssignmentRow.id == enrollment_id
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return Enrollment(
            id=row.id,
            class_id=row.class_id,
            course_id=row.course_id,
            institution_id=row.institution_id,
        )


def _row_to_student(row: StudentRow) -> Student:
    return Student(
        id=row.id,
        institution_id=row.institution_id,
        class_id=row.class_id,
        name=row.student_name,
        roll_number=row.roll_number or "",
        user_id=row.user_id,
        status=row.status,
    )
