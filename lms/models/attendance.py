from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Period:
    id: UUID
    institution_id: UUID
    label: str
    start_time: str  # "HH:MM"
    end_time: str
    display_order: int
    is_break: bool = False

    @staticmethod
    def default_for(institution_id: UUID) -> Period:
        """The period created when an institution has configured none."""
        return Period(
            id=uuid4(),
            institution_id=institution_id,
            label="Period 1",
            start_time="09:00",
            end_time="10:00",
            display_order=1,
        )


@dataclass(frozen=True, slots=True)
class TimetableSlot:
    """A class's recurring period on one weekday."""

    id: UUID
    class_id: UUID
    institution_id: UUID
    day: str  # Monday|Tuesday|...
    period_id: UUID | None
    subject: str
    class_name: str = ""
    teacher_id: UUID | None = None
    teacher_name: str = ""
    is_placeholder: bool = False

    @staticmethod
    def placeholder(
        *,
        class_id: UUID,
        institution_id: UUID,
        day: str,
        period_id: UUID | None,
        subject: str,
        teacher_id: UUID | None = None,
    ) -> TimetableSlot:
        return TimetableSlot(
            id=uuid4(),
            class_id=class_id,
            institution_id=institution_id,
            day=day,
            period_id=period_id,
            subject=subject,
            class_name="Course Session",
            teacher_id=teacher_id,
            teacher_name="Course Instructor",
            is_placeholder=True,
        )


@dataclass(frozen=True, slots=True)
class AttendanceEntry:
    student_id: UUID
    student_name: str
    roll_number: str
    status: str  # present|absent|late
    check_in_time: str | None = None

    def to_dict(self) -> dict:
        return {
            "student_id": str(self.student_id),
            "student_name": self.student_name,
            "roll_number": self.roll_number,
            "status": self.status,
            "check_in_time": self.check_in_time,
        }

    @staticmethod
    def from_dict(data: dict) -> AttendanceEntry:
        return AttendanceEntry(
            student_id=UUID(data["student_id"]),
            student_name=data.get("student_name", ""),
            roll_number=data.get("roll_number", ""),
            status=data["status"],
            check_in_time=data.get("check_in_time"),
        )


@dataclass(frozen=True, slots=True)
class AttendanceSnapshot:
    """Per-(slot, date) roster snapshot.  Overwritten in place, never merged."""

    slot_id: UUID
    class_id: UUID
    institution_id: UUID
    date: datetime.date
    period_label: str
    subject: str
    entries: tuple[AttendanceEntry, ...] = field(default_factory=tuple)
    officer_id: UUID | None = None
    completed_at: int | None = None
    is_session_completed: bool = True

    @property
    def key(self) -> tuple[UUID, datetime.date]:
        return (self.slot_id, self.date)

    @property
    def total_students(self) -> int:
        return len(self.entries)

    @property
    def students_present(self) -> int:
        return sum(1 for e in self.entries if e.status == "present")

    @property
    def students_late(self) -> int:
        return sum(1 for e in self.entries if e.status == "late")

    @property
    def students_absent(self) -> int:
        return sum(1 for e in self.entries if e.status == "absent")

    def status_of(self, student_id: UUID) -> str | None:
        for e in self.entries:
            if e.student_id == student_id:
                return e.status
        return None
