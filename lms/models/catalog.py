from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    title: str

    @staticmethod
    def new(*, title: str) -> Course:
        return Course(id=uuid4(), title=title)


@dataclass(frozen=True, slots=True)
class CourseModule:
    id: UUID
    course_id: UUID
    position: int
    title: str

    @staticmethod
    def new(*, course_id: UUID, position: int, title: str) -> CourseModule:
        return CourseModule(
            id=uuid4(), course_id=course_id, position=position, title=title
        )


@dataclass(frozen=True, slots=True)
class CourseSession:
    """A teaching session: the unit an instructor marks complete."""

    id: UUID
    module_id: UUID
    position: int
    title: str

    @staticmethod
    def new(*, module_id: UUID, position: int, title: str) -> CourseSession:
        return CourseSession(
            id=uuid4(), module_id=module_id, position=position, title=title
        )


@dataclass(frozen=True, slots=True)
class ContentItem:
    id: UUID
    session_id: UUID
    position: int
    title: str = ""
    type: str = "video"  # video|pdf|ppt|link|...

    @staticmethod
    def new(*, session_id: UUID, position: int, title: str = "") -> ContentItem:
        return ContentItem(
            id=uuid4(), session_id=session_id, position=position, title=title
        )


@dataclass(frozen=True, slots=True)
class SessionAncestry:
    """Module and course a session belongs to, as the catalog says."""

    session_id: UUID
    module_id: UUID
    course_id: UUID


@dataclass(frozen=True, slots=True)
class Enrollment:
    """A course offered to a class (the class-course assignment).

    Students are enrolled through their class, so every completion row
    is scoped by this id rather than by (student, course).
    """

    id: UUID
    class_id: UUID
    course_id: UUID
    institution_id: UUID

    @staticmethod
    def new(*, class_id: UUID, course_id: UUID, institution_id: UUID) -> Enrollment:
        return Enrollment(
            id=uuid4(),
            class_id=class_id,
            course_id=course_id,
            institution_id=institution_id,
        )
