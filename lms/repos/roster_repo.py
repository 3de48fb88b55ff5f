from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.catalog import Enrollment
from lms.models.student import SchoolClass, Student


class RosterRepo(Protocol):
    async def active_students_for_class(self, class_id: UUID) -> list[Student]: ...
    async def students_by_ids(self, student_ids: list[UUID]) -> list[Student]: ...
    async def class_institution(self, class_id: UUID) -> UUID | None: ...
    async def get_enrollment(self, enrollment_id: UUID) -> Enrollment | None: ...


class InMemoryRosterRepo:
    def __init__(self) -> None:
        self._classes: dict[UUID, SchoolClass] = {}
        self._students: dict[UUID, Student] = {}
        self._enrollments: dict[UUID, Enrollment] = {}

    def add_class(self, school_class: SchoolClass) -> None:
        self._classes[school_class.id] = school_class

    def add_student(self, student: Student) -> None:
        self._students[student.id] = student

    def add_enrollment(self, enrollment: Enrollment) -> None:
        self._enrollments[enrollment.id] = enrollment

    async def active_students_for_class(self, class_id: UUID) -> list[Student]:
        students = [
            s
            for s in self._students.values()
            if s.class_id == class_id and s.is_active
        ]
        return sorted(students, key=lambda s: (s.roll_number, s.name))

    async def students_by_ids(self, student_ids: list[UUID]) -> list[Student]:
        return [self._students[sid] for sid in student_ids if sid in self._students]

    async def class_institution(self, class_id: UUID) -> UUID | None:
        school_class = self._classes.get(class_id)
        return school_class.institution_id if school_class else None

    async def get_enrollment(self, enrollment_id: UUID) -> Enrollment | None:
        return self._enrollments.get(enrollment_id)
