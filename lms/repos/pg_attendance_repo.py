"""PostgreSQL implementation of AttendanceRepo."""

from __future__ import annotations

import datetime
import time
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import AttendanceSnapshotRow
from lms.models.attendance import AttendanceEntry, AttendanceSnapshot


class PgAttendanceRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert_snapshot(self, snapshot: AttendanceSnapshot) -> None:
        values = {
            "timetable_assignment_id": snapshot.slot_id,
            "date": snapshot.date,
            "class_id": snapshot.class_id,
            "institution_id": snapshot.institution_id,
            "officer_id": snapshot.officer_id,
            "period_label": snapshot.period_label,
            "subject": snapshot.subject,
            "attendance_records": [e.to_dict() for e in snapshot.entries],
            "total_students": snapshot.total_students,
            "students_present": snapshot.students_present,
            "students_absent": snapshot.students_absent,
            "students_late": snapshot.students_late,
            "is_session_completed": snapshot.is_session_completed,
            "completed_by": snapshot.officer_id,
            "completed_at": snapshot.completed_at,
            "updated_at": int(time.time()),
        }
        stmt = pg_insert(AttendanceSnapshotRow).values(**values)
        # Whole-row replace: a re-run overwrites the earlier roster.
        stmt = stmt.on_conflict_do_update(
            index_elements=["timetable_assignment_id", "date"],
            set_={
                k: v
                for k, v in values.items()
                if k not in ("timetable_assignment_id", "date")
            },
        )
        await self._session.execute(stmt)

    async def get_snapshot(
        self, slot_id: UUID, date: datetime.date
    ) -> AttendanceSnapshot | None:
        stmt = (
            select(AttendanceSnapshotRow)
            .where(AttendanceSnapshotRow.timetable_assignment_id == slot_id)
            .where(AttendanceSnapshotRow.date == date)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return AttendanceSnapshot(
            slot_id=row.timetable_assignment_id,
            class_id=row.class_id,
            institution_id=row.institution_id,
            date=row.date,
            period_label=row.period_label,
            subject=row.subject,
            entries=tuple(AttendanceEntry.from_dict(d) for d in row.attendance_records),
            officer_id=row.officer_id,
            completed_at=row.completed_at,
            is_session_completed=row.is_session_completed,
        )
