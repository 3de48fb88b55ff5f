from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.catalog import (
    ContentItem,
    Course,
    CourseModule,
    CourseSession,
    SessionAncestry,
)


class CatalogRepo(Protocol):
    """Read side of the course catalog (authored elsewhere)."""

    async def content_ids_for_session(self, session_id: UUID) -> list[UUID]: ...
    async def session_ids_for_module(self, module_id: UUID) -> list[UUID]: ...
    async def content_ids_for_sessions(
        self, session_ids: list[UUID]
    ) -> dict[UUID, list[UUID]]: ...
    async def module_ids_for_course(self, course_id: UUID) -> list[UUID]: ...
    async def module_and_course_titles(
        self, module_id: UUID
    ) -> tuple[str | None, str | None]: ...
    async def course_title(self, course_id: UUID) -> str | None: ...
    async def session_title(self, session_id: UUID) -> str | None: ...
    async def session_ancestry(self, session_id: UUID) -> SessionAncestry | None: ...


class InMemoryCatalogRepo:
    def __init__(self) -> None:
        self._courses: dict[UUID, Course] = {}
        self._modules: dict[UUID, CourseModule] = {}
        self._sessions: dict[UUID, CourseSession] = {}
        self._contents: dict[UUID, ContentItem] = {}

    # --- seeding (catalog authoring lives outside this service) ---

    def add_course(self, course: Course) -> None:
        self._courses[course.id] = course

    def add_module(self, module: CourseModule) -> None:
        self._modules[module.id] = module

    def add_session(self, session: CourseSession) -> None:
        self._sessions[session.id] = session

    def add_content(self, content: ContentItem) -> None:
        self._contents[content.id] = content

    # --- CatalogRepo ---

    async def content_ids_for_session(self, session_id: UUID) -> list[UUID]:
        items = [c for c in self._contents.values() if c.session_id == session_id]
        return [c.id for c in sorted(items, key=lambda c: c.position)]

    async def session_ids_for_module(self, module_id: UUID) -> list[UUID]:
        sessions = [s for s in self._sessions.values() if s.module_id == module_id]
        return [s.id for s in sorted(sessions, key=lambda s: s.position)]

    async def content_ids_for_sessions(
        self, session_ids: list[UUID]
    ) -> dict[UUID, list[UUID]]:
        grouped: dict[UUID, list[UUID]] = {sid: [] for sid in session_ids}
        for c in sorted(self._contents.values(), key=lambda c: c.position):
            if c.session_id in grouped:
                grouped[c.session_id].append(c.id)
        return grouped

    async def module_ids_for_course(self, course_id: UUID) -> list[UUID]:
        modules = [m for m in self._modules.values() if m.course_id == course_id]
        return [m.id for m in sorted(modules, key=lambda m: m.position)]

    async def module_and_course_titles(
        self, module_id: UUID
    ) -> tuple[str | None, str | None]:
        module = self._modules.get(module_id)
        if module is None:
            return None, None
        course = self._courses.get(module.course_id)
        return module.title, course.title if course else None

    async def course_title(self, course_id: UUID) -> str | None:
        course = self._courses.get(course_id)
        return course.title if course else None

    async def session_title(self, session_id: UUID) -> str | None:
        session = self._sessions.get(session_id)
        return session.title if session else None

    async def session_ancestry(self, session_id: UUID) -> SessionAncestry | None:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        module = self._modules.get(session.module_id)
        if module is None:
            return None
        return SessionAncestry(
            session_id=session_id, module_id=module.id, course_id=module.course_id
        )
