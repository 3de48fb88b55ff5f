from __future__ import annotations

import math
from dataclasses import dataclass, field
from uuid import UUID


def percentage(part: int, whole: int) -> int:
    """Whole-number percentage, halves rounded up; 0 when whole is 0."""
    if whole <= 0:
        return 0
    return math.floor(part / whole * 100 + 0.5)


@dataclass(frozen=True, slots=True)
class CompletionRecord:
    """Fact: this student finished this content item under this enrollment.

    Keyed on (student_id, content_id, enrollment_id).  Rows are upserted,
    never deleted; absence is the only "incomplete" signal.
    """

    student_id: UUID
    content_id: UUID
    enrollment_id: UUID
    completed_at: int
    watch_percentage: int = 100

    @property
    def key(self) -> tuple[UUID, UUID, UUID]:
        return (self.student_id, self.content_id, self.enrollment_id)


@dataclass(frozen=True, slots=True)
class ModuleProgress:
    module_id: UUID
    completed_count: int
    total_count: int

    @property
    def is_complete(self) -> bool:
        return self.total_count > 0 and self.completed_count == self.total_count


@dataclass(frozen=True, slots=True)
class SessionCompletionStatus:
    session_id: UUID
    total_students: int
    completed_students: int
    is_fully_completed: bool
    is_conducted: bool  # at least one student marked = the session was taught


@dataclass(frozen=True, slots=True)
class ClassProgress:
    total_sessions: int
    total_students: int
    total_completions: int  # sum over sessions of students who completed it
    max_completions: int  # total_sessions * total_students
    progress_percentage: int
    sessions: tuple[SessionCompletionStatus, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class StudentCourseProgress:
    student_id: UUID
    completed_session_ids: frozenset[UUID]
    total_sessions: int

    @property
    def completed_count(self) -> int:
        return len(self.completed_session_ids)

    @property
    def progress_percentage(self) -> int:
        return percentage(self.completed_count, self.total_sessions)
