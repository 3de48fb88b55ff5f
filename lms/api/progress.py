"""Progress read endpoints (read-through cached).

- GET /v1/enrollments/{enrollment_id}/progress
      class dashboard: per-session completion counts for the class roster
- GET /v1/enrollments/{enrollment_id}/students/{student_id}/progress
      one student's completed sessions

Both are cached under progress:{enrollment_id}:..., which
POST /v1/sessions/{id}/complete drops wholesale after it commits.
"""

from __future__ import annotations

import hashlib
import json
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from lms.api.dependencies import STAFF_ROLES, get_repos, require_staff, require_user
from lms.models.principal import Principal
from lms.repos.registry import Repos
from lms.services.cache import PROGRESS_CACHE_TTL, cache_service, progress_prefix
from lms.services.completion_aggregator import class_progress, student_course_progress

router = APIRouter(prefix="/v1/enrollments", tags=["progress"])


class SessionStatusOut(BaseModel):
    session_id: UUID
    total_students: int
    completed_students: int
    is_fully_completed: bool
    is_conducted: bool


class ClassProgressOut(BaseModel):
    total_sessions: int
    total_students: int
    total_completions: int
    max_completions: int
    progress_percentage: int
    sessions: list[SessionStatusOut]


class StudentProgressOut(BaseModel):
    student_id: UUID
    completed_session_ids: list[UUID]
    completed_count: int
    total_sessions: int
    progress_percentage: int


def _digest(session_ids: list[UUID]) -> str:
    joined = ",".join(sorted(str(s) for s in set(session_ids)))
    return hashlib.sha256(joined.encode()).hexdigest()[:16]


@router.get("/{enrollment_id}/progress", response_model=ClassProgressOut)
async def get_class_progress(
    enrollment_id: UUID,
    _principal: Annotated[Principal, Depends(require_staff)],
    repos: Annotated[Repos, Depends(get_repos)],
    session_ids: Annotated[list[UUID], Query()] = [],  # noqa: B006
    class_id: UUID | None = None,
) -> ClassProgressOut:
    if class_id is None:
        enrollment = await repos.roster.get_enrollment(enrollment_id)
        if enrollment is None:
            raise HTTPException(status_code=404, detail="enrollment not found")
        class_id = enrollment.class_id

    cache_key = f"{progress_prefix(enrollment_id)}class:{class_id}:{_digest(session_ids)}"
    cached = await cache_service.get(cache_key)
    if cached is not None:
        return ClassProgressOut(**json.loads(cached))

    progress = await class_progress(repos, class_id, enrollment_id, session_ids)
    out = ClassProgressOut(
        total_sessions=progress.total_sessions,
        total_students=progress.total_students,
        total_completions=progress.total_completions,
        max_completions=progress.max_completions,
        progress_percentage=progress.progress_percentage,
        sessions=[
            SessionStatusOut(
                session_id=s.session_id,
                total_students=s.total_students,
                completed_students=s.completed_students,
                is_fully_completed=s.is_fully_completed,
                is_conducted=s.is_conducted,
            )
            for s in progress.sessions
        ],
    )
    await cache_service.set(cache_key, out.model_dump_json(), PROGRESS_CACHE_TTL)
    return out


@router.get(
    "/{enrollment_id}/students/{student_id}/progress",
    response_model=StudentProgressOut,
)
async def get_student_progress(
    enrollment_id: UUID,
    student_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    repos: Annotated[Repos, Depends(get_repos)],
    session_ids: Annotated[list[UUID], Query()] = [],  # noqa: B006
) -> StudentProgressOut:
    if not principal.has_any_role(STAFF_ROLES):
        # Students may read only their own record.
        found = await repos.roster.students_by_ids([student_id])
        if not found or str(found[0].user_id) != principal.user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )

    cache_key = (
        f"{progress_prefix(enrollment_id)}student:{student_id}:{_digest(session_ids)}"
    )
    cached = await cache_service.get(cache_key)
    if cached is not None:
        return StudentProgressOut(**json.loads(cached))

    progress = await student_course_progress(repos, student_id, enrollment_id, session_ids)
    out = StudentProgressOut(
        student_id=student_id,
        completed_session_ids=[
            s for s in dict.fromkeys(session_ids) if s in progress.completed_session_ids
        ],
        completed_count=progress.completed_count,
        total_sessions=progress.total_sessions,
        progress_percentage=progress.progress_percentage,
    )
    await cache_service.set(cache_key, out.model_dump_json(), PROGRESS_CACHE_TTL)
    return out
