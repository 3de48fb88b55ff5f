from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.attendance import Period, TimetableSlot


class ScheduleRepo(Protocol):
    async def find_slot_for_class_on_weekday(
        self, class_id: UUID, weekday: str
    ) -> TimetableSlot | None: ...
    async def first_period_id(self, institution_id: UUID) -> UUID | None: ...
    async def create_default_period(self, institution_id: UUID) -> Period: ...
    async def create_placeholder_slot(self, slot: TimetableSlot) -> TimetableSlot: ...


class InMemoryScheduleRepo:
    def __init__(self) -> None:
        self._periods: dict[UUID, Period] = {}
        self._slots: dict[UUID, TimetableSlot] = {}

    def add_period(self, period: Period) -> None:
        self._periods[period.id] = period

    def add_slot(self, slot: TimetableSlot) -> None:
        self._slots[slot.id] = slot

    def slots(self) -> list[TimetableSlot]:
        return list(self._slots.values())

    def periods(self) -> list[Period]:
        return list(self._periods.values())

    async def find_slot_for_class_on_weekday(
        self, class_id: UUID, weekday: str
    ) -> TimetableSlot | None:
        for slot in self._slots.values():
            if slot.class_id == class_id and slot.day == weekday:
                return slot
        return None

    async def first_period_id(self, institution_id: UUID) -> UUID | None:
        periods = [p for p in self._periods.values() if p.institution_id == institution_id]
        if not periods:
            return None
        return min(periods, key=lambda p: p.display_order).id

    async def create_default_period(self, institution_id: UUID) -> Period:
        period = Period.default_for(institution_id)
        self._periods[period.id] = period
        return period

    async def create_placeholder_slot(self, slot: TimetableSlot) -> TimetableSlot:
        self._slots[slot.id] = slot
        return slot
