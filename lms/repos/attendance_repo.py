from __future__ import annotations

import datetime
from typing import Protocol
from uuid import UUID

from lms.models.attendance import AttendanceSnapshot


class AttendanceRepo(Protocol):
    async def upsert_snapshot(self, snapshot: AttendanceSnapshot) -> None: ...
    async def get_snapshot(
        self, slot_id: UUID, date: datetime.date
    ) -> AttendanceSnapshot | None: ...


class InMemoryAttendanceRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[UUID, datetime.date], AttendanceSnapshot] = {}

    async def upsert_snapshot(self, snapshot: AttendanceSnapshot) -> None:
        # Last write wins: the whole snapshot is replaced, never merged.
        self._store[snapshot.key] = snapshot

    async def get_snapshot(
        self, slot_id: UUID, date: datetime.date
    ) -> AttendanceSnapshot | None:
        return self._store.get((slot_id, date))

    def all(self) -> list[AttendanceSnapshot]:
        return list(self._store.values())
