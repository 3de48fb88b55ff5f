from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from lms.repos.completion_repo import InMemoryCompletionRepo
from lms.services.completion_store import completed_content_ids, record_completions
from lms.services.errors import ContentNotFoundError


def test_record_completions_writes_cross_product() -> None:
    repo = InMemoryCompletionRepo()
    students = [uuid4(), uuid4()]
    contents = [uuid4(), uuid4(), uuid4()]
    enrollment = uuid4()

    written = asyncio.run(record_completions(repo, students, contents, enrollment, now=100))

    assert written == 6
    assert {(r.student_id, r.content_id) for r in repo.all()} == {
        (s, c) for s in students for c in contents
    }
    assert all(r.enrollment_id == enrollment for r in repo.all())
    assert all(r.watch_percentage == 100 for r in repo.all())


def test_record_completions_is_idempotent() -> None:
    repo = InMemoryCompletionRepo()
    students, contents, enrollment = [uuid4()], [uuid4(), uuid4()], uuid4()

    asyncio.run(record_completions(repo, students, contents, enrollment, now=100))
    asyncio.run(record_completions(repo, students, contents, enrollment, now=200))

    assert len(repo.all()) == 2
    assert {r.completed_at for r in repo.all()} == {200}


def test_record_completions_dedupes_inputs() -> None:
    repo = InMemoryCompletionRepo()
    student, content = uuid4(), uuid4()
    written = asyncio.run(
        record_completions(repo, [student, student], [content, content], uuid4())
    )
    assert written == 1


def test_record_completions_without_content_raises() -> None:
    repo = InMemoryCompletionRepo()
    with pytest.raises(ContentNotFoundError):
        asyncio.run(record_completions(repo, [uuid4()], [], uuid4()))
    assert repo.all() == []


def test_record_completions_without_students_writes_nothing() -> None:
    repo = InMemoryCompletionRepo()
    assert asyncio.run(record_completions(repo, [], [uuid4()], uuid4())) == 0
    assert repo.all() == []


def test_completed_content_ids_filters_by_enrollment() -> None:
    repo = InMemoryCompletionRepo()
    student, content = uuid4(), uuid4()
    enrollment_a, enrollment_b = uuid4(), uuid4()
    asyncio.run(record_completions(repo, [student], [content], enrollment_a))

    assert asyncio.run(
        completed_content_ids(repo, student, enrollment_a, [content])
    ) == {content}
    assert asyncio.run(completed_content_ids(repo, student, enrollment_b, [content])) == set()
    assert asyncio.run(completed_content_ids(repo, student, enrollment_a, [])) == set()
