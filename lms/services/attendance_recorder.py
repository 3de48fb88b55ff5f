"""Attendance derived from a session completion.

When an instructor marks a session complete, the selected students were
evidently in the room.  This module turns that into the class's
attendance snapshot for the day: every active student of the class is
listed, selected ones as present, everyone else as absent.

Attendance is a convenience view, not the record of completion.  Every
failure in here is logged and counted, and record_attendance() returns
None instead of raising, so it can never fail the completion that
triggered it.
"""

from __future__ import annotations

import datetime
import logging
from uuid import UUID

from lms.core.config import SETTINGS
from lms.core.metrics import ATTENDANCE_FAILURES
from lms.models.attendance import AttendanceEntry, AttendanceSnapshot, TimetableSlot
from lms.repos.registry import Repos

logger = logging.getLogger(__name__)

_WEEKDAYS = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

DEFAULT_SUBJECT = "Course Content"
DEFAULT_PERIOD_LABEL = "Course Session"


def weekday_name(day: datetime.date) -> str:
    return _WEEKDAYS[day.weekday()]


async def resolve_slot(
    repos: Repos,
    *,
    class_id: UUID,
    institution_id: UUID,
    weekday: str,
    subject: str,
    officer_id: UUID | None = None,
) -> TimetableSlot:
    """Existing slot for the class on this weekday, else a new placeholder.

    The placeholder sits on the institution's first period; an institution
    with no periods at all gets a default one created first.
    """
    slot = await repos.schedule.find_slot_for_class_on_weekday(class_id, weekday)
    if slot is not None:
        return slot

    period_id = await repos.schedule.first_period_id(institution_id)
    if period_id is None:
        period = await repos.schedule.create_default_period(institution_id)
        period_id = period.id
        logger.info("Created default period for institution=%s", institution_id)

    slot = await repos.schedule.create_placeholder_slot(
        TimetableSlot.placeholder(
            class_id=class_id,
            institution_id=institution_id,
            day=weekday,
            period_id=period_id,
            subject=subject,
            teacher_id=officer_id,
        )
    )
    logger.info("Created placeholder slot=%s class=%s day=%s", slot.id, class_id, weekday)
    return slot


async def _record(
    repos: Repos,
    class_id: UUID,
    present_student_ids: list[UUID],
    session_label: str | None,
    slot_id: UUID | None,
    officer_id: UUID | None,
    now: datetime.datetime,
) -> AttendanceSnapshot | None:
    institution_id = await repos.roster.class_institution(class_id)
    if institution_id is None:
        logger.warning("Attendance skipped: unknown class=%s", class_id)
        return None

    roster = await repos.roster.active_students_for_class(class_id)
    present = set(present_student_ids)
    check_in = now.isoformat()
    entries = tuple(
        AttendanceEntry(
            student_id=s.id,
            student_name=s.name,
            roll_number=s.roll_number,
            status="present" if s.id in present else "absent",
            check_in_time=check_in if s.id in present else None,
        )
        for s in roster
    )

    subject = session_label or DEFAULT_SUBJECT
    if slot_id is None:
        slot = await resolve_slot(
            repos,
            class_id=class_id,
            institution_id=institution_id,
            weekday=weekday_name(now.date()),
            subject=subject,
            officer_id=officer_id,
        )
        slot_id = slot.id

    snapshot = AttendanceSnapshot(
        slot_id=slot_id,
        class_id=class_id,
        institution_id=institution_id,
        date=now.date(),
        period_label=session_label or DEFAULT_PERIOD_LABEL,
        subject=subject,
        entries=entries,
        officer_id=officer_id,
        completed_at=int(now.timestamp()),
    )
    await repos.attendance.upsert_snapshot(snapshot)
    logger.info(
        "Attendance recorded slot=%s date=%s present=%d/%d",
        slot_id,
        snapshot.date,
        snapshot.students_present,
        snapshot.total_students,
    )
    return snapshot


async def record_attendance(
    repos: Repos,
    class_id: UUID,
    present_student_ids: list[UUID],
    session_label: str | None = None,
    *,
    slot_id: UUID | None = None,
    officer_id: UUID | None = None,
    now: datetime.datetime | None = None,
) -> AttendanceSnapshot | None:
    """Overwrite today's snapshot for the class's slot.  Never raises.

    "Today" is the local date in ATTENDANCE_TIMEZONE, also when ``now`` is
    passed in another zone.
    """
    if now is None:
        now = datetime.datetime.now(SETTINGS.attendance_tz)
    else:
        now = now.astimezone(SETTINGS.attendance_tz)
    try:
        async with repos.savepoint():
            return await _record(
                repos,
                class_id,
                present_student_ids,
                session_label,
                slot_id,
                officer_id,
                now,
            )
    except Exception:
        ATTENDANCE_FAILURES.inc()
        logger.exception("Attendance recording failed for class=%s", class_id)
        return None
