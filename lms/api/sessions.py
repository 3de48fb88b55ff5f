"""Session completion endpoints.

- POST /v1/sessions/{session_id}/complete     instructor marks a session done
- GET  /v1/sessions/{session_id}/completions  per-student completion map

Completing a session writes completion rows, attendance and credentials
in one transaction.  The transaction is committed before the cached
progress views of the enrollment are dropped, so the next read
recomputes from committed rows.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from lms.api.dependencies import get_repos, require_staff, require_user
from lms.models.principal import Principal
from lms.repos.registry import Repos
from lms.services.cache import invalidate_progress
from lms.services.completion_aggregator import session_completion_by_student
from lms.services.errors import (
    EnrollmentMismatchError,
    EnrollmentNotFoundError,
    SessionAncestryMismatchError,
    SessionNotFoundError,
)
from lms.services.session_completion import (
    SessionCompletionResult,
    complete_session,
    issuance_queue,
)
from lms.services.task_queue import task_queue

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/sessions", tags=["sessions"])


class CompleteSessionIn(BaseModel):
    student_ids: list[UUID] = Field(default_factory=list)
    enrollment_id: UUID
    class_id: UUID
    module_id: UUID | None = None
    course_id: UUID | None = None
    slot_id: UUID | None = None
    officer_id: UUID | None = None


class StudentReportOut(BaseModel):
    student_id: UUID
    status: str  # issued|already_issued|not_yet_earned|missing_template|queued|skipped|failed
    course_status: str | None = None
    certificate_code: str | None = None
    error: str | None = None


class CompleteSessionOut(BaseModel):
    success: bool
    processed_count: int
    error: str | None = None
    attendance_recorded: bool
    students: list[StudentReportOut]


def _to_out(result: SessionCompletionResult) -> CompleteSessionOut:
    return CompleteSessionOut(
        success=result.success,
        processed_count=result.processed_count,
        error=result.error,
        attendance_recorded=result.attendance_recorded,
        students=[
            StudentReportOut(
                student_id=r.student_id,
                status=r.status,
                course_status=r.course_status,
                certificate_code=r.certificate_code,
                error=r.error,
            )
            for r in result.students
        ],
    )


def _status_for(result: SessionCompletionResult) -> int:
    if isinstance(result.cause, (SessionAncestryMismatchError, EnrollmentMismatchError)):
        return status.HTTP_409_CONFLICT
    if isinstance(result.cause, (SessionNotFoundError, EnrollmentNotFoundError)):
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_422_UNPROCESSABLE_ENTITY


@router.post("/{session_id}/complete", response_model=CompleteSessionOut)
async def complete(
    session_id: UUID,
    body: CompleteSessionIn,
    principal: Annotated[Principal, Depends(require_staff)],
    repos: Annotated[Repos, Depends(get_repos)],
) -> CompleteSessionOut:
    result = await complete_session(
        repos,
        session_id,
        body.student_ids,
        body.enrollment_id,
        body.class_id,
        body.module_id,
        body.course_id,
        slot_id=body.slot_id,
        officer_id=body.officer_id,
        queue=issuance_queue(task_queue),
    )
    if not result.success:
        raise HTTPException(status_code=_status_for(result), detail=result.error)

    await repos.commit()
    await invalidate_progress(body.enrollment_id)
    logger.info(
        "Session %s completed by user=%s for %d students",
        session_id,
        principal.user_id,
        result.processed_count,
    )
    return _to_out(result)


@router.get("/{session_id}/completions", response_model=dict[UUID, bool])
async def completions(
    session_id: UUID,
    enrollment_id: UUID,
    student_ids: Annotated[list[UUID], Query()],
    _principal: Annotated[Principal, Depends(require_user)],
    repos: Annotated[Repos, Depends(get_repos)],
) -> dict[UUID, bool]:
    return await session_completion_by_student(
        repos, session_id, enrollment_id, student_ids
    )
