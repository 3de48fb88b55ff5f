from __future__ import annotations

import asyncio
from uuid import UUID, uuid4

from lms.models.attendance import AttendanceSnapshot
from lms.models.catalog import Course, Enrollment
from lms.models.certificate import Certificate
from lms.models.student import SchoolClass, Student
from lms.repos.attendance_repo import InMemoryAttendanceRepo
from lms.repos.certificate_repo import InMemoryCertificateRepo
from lms.repos.registry import Repos
from lms.services.completion_aggregator import is_module_complete
from lms.services.errors import (
    EmptySessionError,
    EnrollmentMismatchError,
    EnrollmentNotFoundError,
    SessionAncestryMismatchError,
    SessionNotFoundError,
)
from lms.services.session_completion import (
    NO_ROSTER_STUDENTS_ERROR,
    NO_STUDENTS_ERROR,
    NOT_ON_ROSTER_ERROR,
    complete_session,
)
from lms.services.task_queue import CERTIFICATE_ISSUANCE_QUEUE, InMemoryTaskQueue
from tests.conftest import World, seed_world


class FlakyCertificateRepo(InMemoryCertificateRepo):
    def __init__(self, fail_for: set[UUID]) -> None:
        super().__init__()
        self._fail_for = fail_for

    async def insert(self, certificate: Certificate) -> None:
        if certificate.student_id in self._fail_for:
            raise RuntimeError("certificate store rejected the row")
        await super().insert(certificate)


class FailingAttendanceRepo(InMemoryAttendanceRepo):
    async def upsert_snapshot(self, snapshot: AttendanceSnapshot) -> None:
        raise RuntimeError("attendance store unavailable")


def _complete(
    repos: Repos,
    world: World,
    session_index: int = 0,
    module_index: int = 0,
    student_ids: list[UUID] | None = None,
    **kwargs,
):
    session = world.session(module_index, session_index)
    return asyncio.run(
        complete_session(
            repos,
            session.id,
            world.student_ids if student_ids is None else student_ids,
            world.enrollment.id,
            world.school_class.id,
            **kwargs,
        )
    )


def test_single_session_module_completes_and_certifies(repos: Repos) -> None:
    world = seed_world(repos, layout=((2,),))
    student = world.students[0]

    result = _complete(repos, world, student_ids=[student.id])

    assert result.success
    assert result.processed_count == 1
    assert result.attendance_recorded
    assert len(repos.completions.all()) == 2  # type: ignore[attr-defined]
    (report,) = result.students
    assert report.student_id == student.id
    assert report.status == "issued"
    assert report.course_status == "issued"
    assert report.certificate_code is not None
    assert asyncio.run(
        is_module_complete(repos, student.id, world.enrollment.id, world.modules[0].id)
    )


def test_module_with_open_session_is_not_complete(repos: Repos) -> None:
    world = seed_world(repos, layout=((2, 1),))
    student = world.students[0]

    result = _complete(repos, world, session_index=0, student_ids=[student.id])

    assert result.success
    assert result.students[0].status == "not_yet_earned"
    assert result.students[0].course_status is None
    assert not asyncio.run(
        is_module_complete(repos, student.id, world.enrollment.id, world.modules[0].id)
    )

    result = _complete(repos, world, session_index=1, student_ids=[student.id])
    assert result.students[0].status == "issued"


def test_repeat_completion_writes_nothing_new(repos: Repos) -> None:
    world = seed_world(repos)
    student = world.students[0]

    _complete(repos, world, student_ids=[student.id])
    result = _complete(repos, world, student_ids=[student.id])

    assert result.success
    assert result.processed_count == 1
    assert len(repos.completions.all()) == 2  # type: ignore[attr-defined]
    certs = repos.certificates.all()  # type: ignore[attr-defined]
    assert sorted(c.activity_type for c in certs) == ["course", "module"]
    assert result.students[0].status == "already_issued"
    assert result.students[0].course_status == "already_issued"


def test_duplicate_student_ids_are_processed_once(repos: Repos) -> None:
    world = seed_world(repos, student_count=1)
    sid = world.students[0].id
    result = _complete(repos, world, student_ids=[sid, sid])
    assert result.processed_count == 1
    assert len(result.students) == 1


def test_attendance_reflects_latest_session_only(repos: Repos) -> None:
    world = seed_world(repos, layout=((1, 1),))
    s1, s2 = world.students

    _complete(repos, world, session_index=0, student_ids=[s1.id])
    _complete(repos, world, session_index=1, student_ids=[s2.id])

    (snapshot,) = repos.attendance.all()  # type: ignore[attr-defined]
    assert snapshot.status_of(s1.id) == "absent"
    assert snapshot.status_of(s2.id) == "present"
    assert snapshot.subject == "Session 1.2"


def test_no_students_is_rejected(repos: Repos) -> None:
    world = seed_world(repos)
    result = _complete(repos, world, student_ids=[])
    assert not result.success
    assert result.processed_count == 0
    assert result.error == NO_STUDENTS_ERROR
    assert repos.completions.all() == []  # type: ignore[attr-defined]


def test_empty_session_is_rejected_before_writes(repos: Repos) -> None:
    world = seed_world(repos, layout=((0,),))
    result = _complete(repos, world)
    assert not result.success
    assert isinstance(result.cause, EmptySessionError)
    assert repos.completions.all() == []  # type: ignore[attr-defined]
    assert repos.attendance.all() == []  # type: ignore[attr-defined]


def test_unknown_session_is_rejected(repos: Repos) -> None:
    world = seed_world(repos)
    result = asyncio.run(
        complete_session(
            repos, uuid4(), world.student_ids, world.enrollment.id, world.school_class.id
        )
    )
    assert not result.success
    assert isinstance(result.cause, SessionNotFoundError)
    assert repos.completions.all() == []  # type: ignore[attr-defined]


def test_mismatched_module_is_rejected_before_writes(repos: Repos) -> None:
    world = seed_world(repos, layout=((1,), (1,)))
    result = _complete(repos, world, module_index=0, module_id=world.modules[1].id)

    assert not result.success
    assert isinstance(result.cause, SessionAncestryMismatchError)
    assert repos.completions.all() == []  # type: ignore[attr-defined]
    assert repos.attendance.all() == []  # type: ignore[attr-defined]
    assert repos.certificates.all() == []  # type: ignore[attr-defined]


def test_mismatched_course_is_rejected(repos: Repos) -> None:
    world = seed_world(repos)
    result = _complete(repos, world, course_id=uuid4())
    assert not result.success
    assert isinstance(result.cause, SessionAncestryMismatchError)


def test_matching_ids_are_accepted(repos: Repos) -> None:
    world = seed_world(repos)
    result = _complete(
        repos, world, module_id=world.modules[0].id, course_id=world.course.id
    )
    assert result.success
    assert {r.status for r in result.students} == {"issued"}


def test_one_failing_student_does_not_block_the_rest(repos: Repos) -> None:
    world = seed_world(repos, student_count=3)
    broken = world.students[1]
    repos.certificates = FlakyCertificateRepo(fail_for={broken.user_id})

    result = _complete(repos, world)

    assert result.success
    assert result.processed_count == 3
    by_student = {r.student_id: r for r in result.students}
    assert by_student[broken.id].status == "failed"
    assert "rejected" in (by_student[broken.id].error or "")
    assert by_student[world.students[0].id].status == "issued"
    assert by_student[world.students[2].id].status == "issued"
    # Completion rows are written for everyone, including the failed student.
    assert len(repos.completions.all()) == 3 * 2  # type: ignore[attr-defined]


def test_student_without_account_is_skipped(repos: Repos) -> None:
    world = seed_world(repos, student_count=1)
    unlinked = Student.new(
        institution_id=world.school_class.institution_id,
        class_id=world.school_class.id,
        name="No Login",
        roll_number="02",
    )
    repos.roster.add_student(unlinked)  # type: ignore[attr-defined]

    result = _complete(repos, world, student_ids=[world.students[0].id, unlinked.id])

    assert result.success
    assert result.processed_count == 2
    by_student = {r.student_id: r for r in result.students}
    assert by_student[unlinked.id].status == "skipped"
    assert by_student[world.students[0].id].status == "issued"
    # Still marked complete and present.
    (snapshot,) = repos.attendance.all()  # type: ignore[attr-defined]
    assert snapshot.status_of(unlinked.id) == "present"


def test_unknown_student_gets_no_rows(repos: Repos) -> None:
    world = seed_world(repos, student_count=1)
    member = world.students[0]
    stranger = uuid4()

    result = _complete(repos, world, student_ids=[stranger, member.id])

    assert result.success
    assert result.processed_count == 1
    assert [r.student_id for r in result.students] == [stranger, member.id]
    assert result.students[0].status == "skipped"
    assert result.students[0].error == NOT_ON_ROSTER_ERROR
    assert result.students[1].status == "issued"
    rows = repos.completions.all()  # type: ignore[attr-defined]
    assert {r.student_id for r in rows} == {member.id}


def test_student_from_another_class_is_not_credited(repos: Repos) -> None:
    world = seed_world(repos, student_count=1)
    other_class = SchoolClass.new(
        institution_id=world.school_class.institution_id, name="Grade 8-B"
    )
    repos.roster.add_class(other_class)  # type: ignore[attr-defined]
    outsider = Student.new(
        institution_id=world.school_class.institution_id,
        class_id=other_class.id,
        name="Visitor",
        user_id=uuid4(),
    )
    repos.roster.add_student(outsider)  # type: ignore[attr-defined]

    result = _complete(repos, world, student_ids=[outsider.id, world.students[0].id])

    assert result.success
    assert result.processed_count == 1
    by_student = {r.student_id: r for r in result.students}
    assert by_student[outsider.id].status == "skipped"
    assert by_student[world.students[0].id].status == "issued"
    rows = repos.completions.all()  # type: ignore[attr-defined]
    assert outsider.id not in {r.student_id for r in rows}
    certs = repos.certificates.all()  # type: ignore[attr-defined]
    assert outsider.user_id not in {c.student_id for c in certs}
    (snapshot,) = repos.attendance.all()  # type: ignore[attr-defined]
    assert snapshot.students_present == snapshot.total_students == 1


def test_inactive_student_is_not_processed(repos: Repos) -> None:
    world = seed_world(repos, student_count=1)
    graduated = Student.new(
        institution_id=world.school_class.institution_id,
        class_id=world.school_class.id,
        name="Alumni",
        user_id=uuid4(),
        status="graduated",
    )
    repos.roster.add_student(graduated)  # type: ignore[attr-defined]

    result = _complete(repos, world, student_ids=[world.students[0].id, graduated.id])

    assert result.processed_count == 1
    assert {r.student_id: r.status for r in result.students}[graduated.id] == "skipped"


def test_selection_without_roster_members_is_rejected(repos: Repos) -> None:
    world = seed_world(repos)
    stranger = uuid4()

    result = _complete(repos, world, student_ids=[stranger])

    assert not result.success
    assert result.processed_count == 0
    assert result.error == NO_ROSTER_STUDENTS_ERROR
    assert [r.status for r in result.students] == ["skipped"]
    assert repos.completions.all() == []  # type: ignore[attr-defined]
    assert repos.attendance.all() == []  # type: ignore[attr-defined]


def test_enrollment_for_another_course_is_rejected(repos: Repos) -> None:
    world = seed_world(repos)
    other_course = Course.new(title="Drone Flight")
    repos.catalog.add_course(other_course)  # type: ignore[attr-defined]
    wrong = Enrollment.new(
        class_id=world.school_class.id,
        course_id=other_course.id,
        institution_id=world.school_class.institution_id,
    )
    repos.roster.add_enrollment(wrong)  # type: ignore[attr-defined]

    result = asyncio.run(
        complete_session(
            repos, world.session(0).id, world.student_ids, wrong.id, world.school_class.id
        )
    )

    assert not result.success
    assert isinstance(result.cause, EnrollmentMismatchError)
    assert repos.completions.all() == []  # type: ignore[attr-defined]
    assert repos.attendance.all() == []  # type: ignore[attr-defined]
    assert repos.certificates.all() == []  # type: ignore[attr-defined]


def test_enrollment_of_another_class_is_rejected(repos: Repos) -> None:
    world = seed_world(repos)
    other_class = SchoolClass.new(
        institution_id=world.school_class.institution_id, name="Grade 8-B"
    )
    repos.roster.add_class(other_class)  # type: ignore[attr-defined]

    result = asyncio.run(
        complete_session(
            repos,
            world.session(0).id,
            world.student_ids,
            world.enrollment.id,
            other_class.id,
        )
    )

    assert not result.success
    assert isinstance(result.cause, EnrollmentMismatchError)
    assert repos.completions.all() == []  # type: ignore[attr-defined]


def test_unknown_enrollment_is_rejected(repos: Repos) -> None:
    world = seed_world(repos)
    result = asyncio.run(
        complete_session(
            repos, world.session(0).id, world.student_ids, uuid4(), world.school_class.id
        )
    )
    assert not result.success
    assert isinstance(result.cause, EnrollmentNotFoundError)
    assert repos.completions.all() == []  # type: ignore[attr-defined]


def test_attendance_failure_does_not_fail_completion(repos: Repos) -> None:
    world = seed_world(repos)
    repos.attendance = FailingAttendanceRepo()

    result = _complete(repos, world)

    assert result.success
    assert not result.attendance_recorded
    assert {r.status for r in result.students} == {"issued"}


def test_queue_mode_enqueues_one_task_per_student(repos: Repos) -> None:
    world = seed_world(repos, student_count=2)
    queue = InMemoryTaskQueue()

    result = _complete(repos, world, queue=queue)

    assert result.success
    assert {r.status for r in result.students} == {"queued"}
    assert repos.certificates.all() == []  # type: ignore[attr-defined]
    assert asyncio.run(queue.queue_length(CERTIFICATE_ISSUANCE_QUEUE)) == 2
    task = asyncio.run(queue.dequeue(CERTIFICATE_ISSUANCE_QUEUE))
    assert task is not None
    assert task.payload["student_record_id"] == str(world.students[0].id)
    assert task.payload["student_user_id"] == str(world.students[0].user_id)
    assert task.payload["module_id"] == str(world.modules[0].id)
    assert task.payload["course_id"] == str(world.course.id)
    assert task.payload["enrollment_id"] == str(world.enrollment.id)
