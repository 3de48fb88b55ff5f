from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from lms.main import app
from lms.models.catalog import ContentItem, Course, CourseModule, CourseSession, Enrollment
from lms.models.certificate import CertificateTemplate
from lms.models.student import SchoolClass, Student
from lms.repos.registry import Repos, in_memory_repos, reset_in_memory_repos
from lms.services import token_service
from lms.services.cache import cache_service
from lms.services.task_queue import task_queue

# Ensure repo root is on sys.path so `import lms` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def reset_repos() -> None:
    """Fresh in-memory catalog, roster and credential stores per test."""
    reset_in_memory_repos()


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_task_queue() -> None:
    if hasattr(task_queue, "_queues"):
        task_queue._queues.clear()  # type: ignore[union-attr]


@pytest.fixture
def repos() -> Repos:
    return in_memory_repos()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    username: str = "test-user",
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def instructor_token() -> str:
    return mint_token(username="test-instructor", roles=["instructor"])


@pytest.fixture
def student_token() -> str:
    return mint_token(username="test-student", roles=["student"])


# ---------------------------------------------------------------------------
# Catalog / roster seeding
# ---------------------------------------------------------------------------


@dataclass
class World:
    """A seeded course offered to one class."""

    course: Course
    modules: list[CourseModule]
    sessions: list[list[CourseSession]]  # per module
    content: dict[UUID, list[UUID]]  # session id -> content ids
    school_class: SchoolClass
    enrollment: Enrollment
    students: list[Student]
    templates: list[CertificateTemplate] = field(default_factory=list)

    def session(self, module_index: int, session_index: int = 0) -> CourseSession:
        return self.sessions[module_index][session_index]

    @property
    def student_ids(self) -> list[UUID]:
        return [s.id for s in self.students]


def seed_world(
    repos: Repos,
    layout: tuple[tuple[int, ...], ...] = ((2,),),
    *,
    student_count: int = 2,
    with_templates: bool = True,
    linked_accounts: bool = True,
) -> World:
    """Seed a course whose shape is given by ``layout``.

    layout[m][s] is the number of content items in session s of module m,
    so ((2,), (1, 1)) is two modules: one session with two items, then
    two sessions with one item each.
    """
    institution_id = uuid4()
    course = Course.new(title="Robotics Basics")
    repos.catalog.add_course(course)  # type: ignore[attr-defined]

    modules: list[CourseModule] = []
    sessions: list[list[CourseSession]] = []
    content: dict[UUID, list[UUID]] = {}
    for m_pos, session_sizes in enumerate(layout, start=1):
        module = CourseModule.new(course_id=course.id, position=m_pos, title=f"Level {m_pos}")
        repos.catalog.add_module(module)  # type: ignore[attr-defined]
        modules.append(module)
        module_sessions = []
        for s_pos, size in enumerate(session_sizes, start=1):
            session = CourseSession.new(
                module_id=module.id, position=s_pos, title=f"Session {m_pos}.{s_pos}"
            )
            repos.catalog.add_session(session)  # type: ignore[attr-defined]
            module_sessions.append(session)
            content[session.id] = []
            for c_pos in range(1, size + 1):
                item = ContentItem.new(session_id=session.id, position=c_pos)
                repos.catalog.add_content(item)  # type: ignore[attr-defined]
                content[session.id].append(item.id)
        sessions.append(module_sessions)

    school_class = SchoolClass.new(institution_id=institution_id, name="Grade 7-A")
    repos.roster.add_class(school_class)  # type: ignore[attr-defined]
    enrollment = Enrollment.new(
        class_id=school_class.id, course_id=course.id, institution_id=institution_id
    )
    repos.roster.add_enrollment(enrollment)  # type: ignore[attr-defined]

    students = []
    for i in range(1, student_count + 1):
        student = Student.new(
            institution_id=institution_id,
            class_id=school_class.id,
            name=f"Student {i}",
            roll_number=f"{i:02d}",
            user_id=uuid4() if linked_accounts else None,
        )
        repos.roster.add_student(student)  # type: ignore[attr-defined]
        students.append(student)

    templates = []
    if with_templates:
        for category in ("module", "course"):
            template = CertificateTemplate.new(name=f"{category} template", category=category)
            repos.templates.add(template)  # type: ignore[attr-defined]
            templates.append(template)

    return World(
        course=course,
        modules=modules,
        sessions=sessions,
        content=content,
        school_class=school_class,
        enrollment=enrollment,
        students=students,
        templates=templates,
    )
