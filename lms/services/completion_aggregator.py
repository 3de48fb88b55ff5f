"""Roll content completions up into session, module and course state.

Two pure predicates decide completeness:

  module_complete(content_ids, completed_ids)
      every content item reachable from the module has a completion row
  course_complete(module_ids, certified_module_ids)
      every module of the course has an issued module certificate

Both return False for an empty hierarchy.  An empty module or course is
never "complete", so it can never be certified by accident.  The async
queries below only gather the id sets these predicates work on.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from uuid import UUID

from lms.models.completion import (
    ClassProgress,
    ModuleProgress,
    SessionCompletionStatus,
    StudentCourseProgress,
    percentage,
)
from lms.repos.registry import Repos

logger = logging.getLogger(__name__)


def module_complete(content_ids: Iterable[UUID], completed_ids: Iterable[UUID]) -> bool:
    required = set(content_ids)
    if not required:
        return False
    # Set containment, not a count: duplicate or stray rows cannot fake it.
    return required <= set(completed_ids)


def course_complete(
    module_ids: Iterable[UUID], certified_module_ids: Iterable[UUID]
) -> bool:
    required = set(module_ids)
    if not required:
        return False
    return required <= set(certified_module_ids)


async def module_content_ids(repos: Repos, module_id: UUID) -> list[UUID]:
    session_ids = await repos.catalog.session_ids_for_module(module_id)
    if not session_ids:
        return []
    by_session = await repos.catalog.content_ids_for_sessions(session_ids)
    return [cid for sid in session_ids for cid in by_session.get(sid, [])]


async def module_progress(
    repos: Repos, student_id: UUID, enrollment_id: UUID, module_id: UUID
) -> ModuleProgress:
    content_ids = await module_content_ids(repos, module_id)
    completed: set[UUID] = set()
    if content_ids:
        completed = await repos.completions.completed_content_ids(
            student_id, enrollment_id, content_ids
        )
    return ModuleProgress(
        module_id=module_id,
        completed_count=len(completed & set(content_ids)),
        total_count=len(set(content_ids)),
    )


async def is_module_complete(
    repos: Repos, student_id: UUID, enrollment_id: UUID, module_id: UUID
) -> bool:
    content_ids = await module_content_ids(repos, module_id)
    if not content_ids:
        logger.debug("Module %s has no content; never complete", module_id)
        return False
    completed = await repos.completions.completed_content_ids(
        student_id, enrollment_id, content_ids
    )
    return module_complete(content_ids, completed)


async def session_completion_by_student(
    repos: Repos, session_id: UUID, enrollment_id: UUID, student_ids: list[UUID]
) -> dict[UUID, bool]:
    """student id -> True iff every content item of the session is complete."""
    content_ids = await repos.catalog.content_ids_for_session(session_id)
    if not content_ids or not student_ids:
        return {sid: False for sid in student_ids}
    pairs = await repos.completions.completed_pairs(
        enrollment_id, content_ids, student_ids
    )
    done: dict[UUID, set[UUID]] = {}
    for sid, cid in pairs:
        done.setdefault(sid, set()).add(cid)
    return {sid: module_complete(content_ids, done.get(sid, ())) for sid in student_ids}


async def class_progress(
    repos: Repos, class_id: UUID, enrollment_id: UUID, session_ids: list[UUID]
) -> ClassProgress:
    """Per-session completion counts for a class's active roster.

    A session counts as conducted once any student has completed it.
    Sessions without content are reported with zero completions.
    """
    session_ids = list(dict.fromkeys(session_ids))
    students = await repos.roster.active_students_for_class(class_id)
    total_students = len(students)
    if not session_ids or total_students == 0:
        return ClassProgress(
            total_sessions=len(session_ids),
            total_students=total_students,
            total_completions=0,
            max_completions=0,
            progress_percentage=0,
        )

    by_session = await repos.catalog.content_ids_for_sessions(session_ids)
    all_content = [cid for sid in session_ids for cid in by_session.get(sid, [])]
    student_ids = [s.id for s in students]
    pairs: set[tuple[UUID, UUID]] = set()
    if all_content:
        pairs = await repos.completions.completed_pairs(
            enrollment_id, all_content, student_ids
        )
    done: dict[UUID, set[UUID]] = {}
    for sid, cid in pairs:
        done.setdefault(sid, set()).add(cid)

    statuses = []
    total_completions = 0
    for session_id in session_ids:
        content_ids = by_session.get(session_id, [])
        completed_students = sum(
            1 for sid in student_ids if module_complete(content_ids, done.get(sid, ()))
        )
        total_completions += completed_students
        statuses.append(
            SessionCompletionStatus(
                session_id=session_id,
                total_students=total_students,
                completed_students=completed_students,
                is_fully_completed=completed_students == total_students,
                is_conducted=completed_students > 0,
            )
        )

    max_completions = len(session_ids) * total_students
    return ClassProgress(
        total_sessions=len(session_ids),
        total_students=total_students,
        total_completions=total_completions,
        max_completions=max_completions,
        progress_percentage=percentage(total_completions, max_completions),
        sessions=tuple(statuses),
    )


async def student_course_progress(
    repos: Repos, student_id: UUID, enrollment_id: UUID, session_ids: list[UUID]
) -> StudentCourseProgress:
    session_ids = list(dict.fromkeys(session_ids))
    if not session_ids:
        return StudentCourseProgress(
            student_id=student_id, completed_session_ids=frozenset(), total_sessions=0
        )
    by_session = await repos.catalog.content_ids_for_sessions(session_ids)
    all_content = [cid for sid in session_ids for cid in by_session.get(sid, [])]
    completed: set[UUID] = set()
    if all_content:
        completed = await repos.completions.completed_content_ids(
            student_id, enrollment_id, all_content
        )
    return StudentCourseProgress(
        student_id=student_id,
        completed_session_ids=frozenset(
            sid for sid in session_ids if module_complete(by_session.get(sid, []), completed)
        ),
        total_sessions=len(session_ids),
    )
