"""Marking a teaching session complete for a set of students.

complete_session() is the single entry point the instructor UI calls:

  1. resolve the session's content items       (none -> EmptySessionError,
                                                unknown -> SessionNotFoundError)
  2. resolve module/course from the catalog     (caller ids must agree,
                                                and so must the enrollment)
  3. upsert completion rows for every selected student x content item
  4. record today's attendance for the class    (best effort)
  5. per student: module certificate, then course certificate

Steps 1 and 2 run before any write, so a rejected call leaves nothing
behind.  Selected students who are not active members of the class are
reported as skipped and get no rows.  Step 3 errors propagate.  Step 5
isolates students from each other: inline, every student's chain runs in
its own savepoint and a failure becomes that student's report; in queue
mode the transaction is committed and each student becomes a task for
lms.worker.

Re-running with the same inputs rewrites the same completion rows and
retries whatever issuance did not succeed before.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from uuid import UUID

from lms.core.config import SETTINGS
from lms.core.metrics import STUDENT_ISSUANCE_FAILURES
from lms.models.certificate import IssuanceOutcome, IssuanceResult
from lms.models.student import Student, StudentRef
from lms.repos.registry import Repos
from lms.services.attendance_recorder import record_attendance
from lms.services.completion_store import record_completions
from lms.services.credential_issuer import issue_module_certificate_if_earned
from lms.services.errors import (
    CompletionError,
    EmptySessionError,
    EnrollmentMismatchError,
    EnrollmentNotFoundError,
    SessionAncestryMismatchError,
    SessionNotFoundError,
)
from lms.services.task_queue import CERTIFICATE_ISSUANCE_QUEUE, TaskQueue

logger = logging.getLogger(__name__)

NO_STUDENTS_ERROR = "select at least one student"
NO_ROSTER_STUDENTS_ERROR = "none of the selected students is on the class roster"
NOT_ON_ROSTER_ERROR = "not on class roster"


@dataclass(frozen=True, slots=True)
class StudentReport:
    student_id: UUID
    status: str  # issued|already_issued|not_yet_earned|missing_template|queued|skipped|failed
    course_status: str | None = None
    certificate_code: str | None = None
    error: str | None = None

    @staticmethod
    def from_result(student_id: UUID, result: IssuanceResult) -> StudentReport:
        code = result.certificate.verification_code if result.certificate else None
        return StudentReport(
            student_id=student_id,
            status=result.outcome.value,
            course_status=result.course.outcome.value if result.course else None,
            certificate_code=code,
        )


@dataclass(frozen=True, slots=True)
class SessionCompletionResult:
    success: bool
    processed_count: int
    error: str | None = None
    students: tuple[StudentReport, ...] = field(default_factory=tuple)
    attendance_recorded: bool = False
    cause: CompletionError | None = None  # why success is False, when known


async def _resolve_ancestry(
    repos: Repos,
    session_id: UUID,
    module_id: UUID | None,
    course_id: UUID | None,
) -> tuple[UUID | None, UUID | None]:
    ancestry = await repos.catalog.session_ancestry(session_id)
    if ancestry is None:
        # Orphaned session: nothing to check the caller's ids against.
        logger.warning("No module/course found for session=%s", session_id)
        return module_id, course_id
    if module_id is not None and module_id != ancestry.module_id:
        raise SessionAncestryMismatchError(
            session_id, f"belongs to module {ancestry.module_id}, not {module_id}"
        )
    if course_id is not None and course_id != ancestry.course_id:
        raise SessionAncestryMismatchError(
            session_id, f"belongs to course {ancestry.course_id}, not {course_id}"
        )
    return ancestry.module_id, ancestry.course_id


async def _check_enrollment(
    repos: Repos,
    enrollment_id: UUID,
    class_id: UUID,
    course_id: UUID | None,
) -> None:
    enrollment = await repos.roster.get_enrollment(enrollment_id)
    if enrollment is None:
        raise EnrollmentNotFoundError(enrollment_id)
    if enrollment.class_id != class_id:
        raise EnrollmentMismatchError(
            enrollment_id, f"is offered to class {enrollment.class_id}, not {class_id}"
        )
    if course_id is not None and enrollment.course_id != course_id:
        raise EnrollmentMismatchError(
            enrollment_id, f"is for course {enrollment.course_id}, not {course_id}"
        )


async def _issue_inline(
    repos: Repos,
    student: StudentRef,
    enrollment_id: UUID,
    module_id: UUID,
    course_id: UUID,
) -> StudentReport:
    try:
        async with repos.savepoint():
            result = await issue_module_certificate_if_earned(
                repos, student, enrollment_id, module_id, course_id
            )
    except Exception as exc:
        STUDENT_ISSUANCE_FAILURES.inc()
        logger.exception(
            "Certificate issuance failed for student=%s",
            student.record_id,
            extra={"student_id": str(student.record_id)},
        )
        return StudentReport(student_id=student.record_id, status="failed", error=str(exc))
    return StudentReport.from_result(student.record_id, result)


async def _enqueue(
    queue: TaskQueue,
    student: StudentRef,
    enrollment_id: UUID,
    module_id: UUID,
    course_id: UUID,
) -> StudentReport:
    payload = {
        "student_record_id": str(student.record_id),
        "student_user_id": str(student.user_id),
        "institution_id": str(student.institution_id) if student.institution_id else None,
        "enrollment_id": str(enrollment_id),
        "module_id": str(module_id),
        "course_id": str(course_id),
    }
    try:
        await queue.enqueue(CERTIFICATE_ISSUANCE_QUEUE, payload)
    except Exception as exc:
        STUDENT_ISSUANCE_FAILURES.inc()
        logger.exception("Could not enqueue issuance for student=%s", student.record_id)
        return StudentReport(student_id=student.record_id, status="failed", error=str(exc))
    return StudentReport(student_id=student.record_id, status="queued")


async def issue_for_students(
    repos: Repos,
    students: list[Student],
    enrollment_id: UUID,
    module_id: UUID,
    course_id: UUID,
    *,
    queue: TaskQueue | None = None,
) -> list[StudentReport]:
    """Run (or enqueue, when a queue is given) the issuance chain per student."""
    reports: list[StudentReport] = []
    for student in students:
        if student.user_id is None:
            logger.info("Skipping issuance: student=%s has no user account", student.id)
            reports.append(
                StudentReport(student.id, "skipped", error="no linked user account")
            )
            continue
        ref = StudentRef.of(student)
        if queue is not None:
            reports.append(await _enqueue(queue, ref, enrollment_id, module_id, course_id))
        else:
            reports.append(
                await _issue_inline(repos, ref, enrollment_id, module_id, course_id)
            )
    return reports


async def complete_session(
    repos: Repos,
    session_id: UUID,
    student_ids: list[UUID],
    enrollment_id: UUID,
    class_id: UUID,
    module_id: UUID | None = None,
    course_id: UUID | None = None,
    *,
    slot_id: UUID | None = None,
    officer_id: UUID | None = None,
    queue: TaskQueue | None = None,
) -> SessionCompletionResult:
    """Record completions, attendance and credentials for one session.

    Pass a queue to hand issuance to the worker instead of running it
    inline; the completion rows are committed before anything is queued.
    """
    student_ids = list(dict.fromkeys(student_ids))
    if not student_ids:
        return SessionCompletionResult(
            success=False, processed_count=0, error=NO_STUDENTS_ERROR
        )

    try:
        content_ids = await repos.catalog.content_ids_for_session(session_id)
        if not content_ids:
            if await repos.catalog.session_title(session_id) is None:
                raise SessionNotFoundError(session_id)
            raise EmptySessionError(session_id)
        module_id, course_id = await _resolve_ancestry(
            repos, session_id, module_id, course_id
        )
        await _check_enrollment(repos, enrollment_id, class_id, course_id)
    except CompletionError as exc:
        logger.warning(
            "Session completion rejected: %s",
            exc,
            extra={"session_id": str(session_id)},
        )
        return SessionCompletionResult(
            success=False, processed_count=0, error=str(exc), cause=exc
        )

    roster = {s.id: s for s in await repos.roster.active_students_for_class(class_id)}
    members = [roster[sid] for sid in student_ids if sid in roster]
    off_roster = {
        sid: StudentReport(sid, "skipped", error=NOT_ON_ROSTER_ERROR)
        for sid in student_ids
        if sid not in roster
    }
    if off_roster:
        logger.warning(
            "Ignoring %d students not on the roster of class=%s",
            len(off_roster),
            class_id,
            extra={"session_id": str(session_id)},
        )
    if not members:
        return SessionCompletionResult(
            success=False,
            processed_count=0,
            error=NO_ROSTER_STUDENTS_ERROR,
            students=tuple(off_roster.values()),
        )

    member_ids = [s.id for s in members]
    await record_completions(repos.completions, member_ids, content_ids, enrollment_id)
    processed = len(member_ids)

    session_title = await repos.catalog.session_title(session_id)
    snapshot = await record_attendance(
        repos,
        class_id,
        member_ids,
        session_title,
        slot_id=slot_id,
        officer_id=officer_id,
    )

    issued_reports: list[StudentReport] = []
    if module_id is not None and course_id is not None:
        if queue is not None:
            await repos.commit()
        issued_reports = await issue_for_students(
            repos, members, enrollment_id, module_id, course_id, queue=queue
        )
    by_student = {r.student_id: r for r in issued_reports} | off_roster
    reports = [by_student[sid] for sid in student_ids if sid in by_student]

    issued = sum(1 for r in reports if r.status == IssuanceOutcome.ISSUED.value)
    failed = sum(1 for r in reports if r.status == "failed")
    logger.info(
        "Session completed: %d students, %d certificates issued, %d failures",
        processed,
        issued,
        failed,
        extra={
            "session_id": str(session_id),
            "enrollment_id": str(enrollment_id),
        },
    )
    return SessionCompletionResult(
        success=True,
        processed_count=processed,
        students=tuple(reports),
        attendance_recorded=snapshot is not None,
    )


def issuance_queue(task_queue: TaskQueue) -> TaskQueue | None:
    """The queue to pass to complete_session under the configured mode."""
    return task_queue if SETTINGS.queues_issuance else None
