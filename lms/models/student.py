from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class SchoolClass:
    id: UUID
    institution_id: UUID
    name: str

    @staticmethod
    def new(*, institution_id: UUID, name: str) -> SchoolClass:
        return SchoolClass(id=uuid4(), institution_id=institution_id, name=name)


@dataclass(frozen=True, slots=True)
class Student:
    """A student record inside a class.

    ``id`` is the record id that completions and attendance are keyed on.
    ``user_id`` is the login identity certificates and XP are keyed on;
    it is None until an account has been provisioned for the student.
    """

    id: UUID
    institution_id: UUID
    class_id: UUID
    name: str
    roll_number: str = ""
    user_id: UUID | None = None
    status: str = "active"  # active|inactive|graduated|transferred

    @staticmethod
    def new(
        *,
        institution_id: UUID,
        class_id: UUID,
        name: str,
        roll_number: str = "",
        user_id: UUID | None = None,
        status: str = "active",
    ) -> Student:
        return Student(
            id=uuid4(),
            institution_id=institution_id,
            class_id=class_id,
            name=name,
            roll_number=roll_number,
            user_id=user_id,
            status=status,
        )

    @property
    def is_active(self) -> bool:
        return self.status == "active"


@dataclass(frozen=True, slots=True)
class StudentRef:
    """The pair of ids the issuance chain needs for one student."""

    record_id: UUID
    user_id: UUID
    institution_id: UUID | None = None

    @staticmethod
    def of(student: Student) -> StudentRef:
        if student.user_id is None:
            raise ValueError(f"student {student.id} has no linked user account")
        return StudentRef(
            record_id=student.id,
            user_id=student.user_id,
            institution_id=student.institution_id,
        )
