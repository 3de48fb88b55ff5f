"""PostgreSQL implementation of ScheduleRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import PeriodRow, TimetableSlotRow
from lms.models.attendance import Period, TimetableSlot


class PgScheduleRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_slot_for_class_on_weekday(
        self, class_id: UUID, weekday: str
    ) -> TimetableSlot | None:
        stmt = (
            select(TimetableSlotRow)
            .where(TimetableSlotRow.class_id == class_id)
            .where(TimetableSlotRow.day == weekday)
            .limit(1)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_slot(row)

    async def first_period_id(self, institution_id: UUID) -> UUID | None:
        stmt = (
            select(PeriodRow.id)
            .where(PeriodRow.institution_id == institution_id)
            .order_by(PeriodRow.display_order)
            .limit(1)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def create_default_period(self, institution_id: UUID) -> Period:
        period = Period.default_for(institution_id)
        self._session.add(
            PeriodRow(
                id=period.id,
                institution_id=period.institution_id,
                label=period.label,
                start_time=period.start_time,
                end_time=period.end_time,
                display_order=period.display_order,
                is_break=period.is_break,
            )
        )
        await self._session.flush()
        return period

    async def create_placeholder_slot(self, slot: TimetableSlot) -> TimetableSlot:
        self._session.add(
            TimetableSlotRow(
                id=slot.id,
                class_id=slot.class_id,
                institution_id=slot.institution_id,
                day=slot.day,
                period_id=slot.period_id,
                subject=slot.subject,
                class_name=slot.class_name,
                teacher_id=slot.teacher_id,
                teacher_name=slot.teacher_name,
                is_placeholder=slot.is_placeholder,
            )
        )
        await self._session.flush()
        return slot


def _row_to_slot(row: TimetableSlotRow) -> TimetableSlot:
    return TimetableSlot(
        id=row.id,
        class_id=row.class_id,
        institution_id=row.institution_id,
        day=row.day,
        period_id=row.period_id,
        subject=row.subject,
        class_name=row.class_name or "",
        teacher_id=row.teacher_id,
        teacher_name=row.teacher_name or "",
        is_placeholder=row.is_placeholder,
    )
