from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient

from lms.repos.registry import Repos
from lms.services.cache import cache_service
from tests.conftest import World, auth, seed_world


def _body(world: World, **overrides) -> dict:
    body = {
        "student_ids": [str(s) for s in world.student_ids],
        "enrollment_id": str(world.enrollment.id),
        "class_id": str(world.school_class.id),
    }
    body.update(overrides)
    return body


def _post(client: TestClient, world: World, token: str, session_id=None, **overrides):
    session_id = session_id or world.session(0).id
    return client.post(
        f"/v1/sessions/{session_id}/complete",
        json=_body(world, **overrides),
        headers=auth(token),
    )


def test_complete_session_requires_auth(client: TestClient, repos: Repos) -> None:
    world = seed_world(repos)
    resp = client.post(f"/v1/sessions/{world.session(0).id}/complete", json=_body(world))
    assert resp.status_code == 401


def test_students_cannot_complete_sessions(
    client: TestClient, repos: Repos, student_token: str
) -> None:
    world = seed_world(repos)
    assert _post(client, world, student_token).status_code == 403
    assert repos.completions.all() == []  # type: ignore[attr-defined]


def test_complete_session(client: TestClient, repos: Repos, instructor_token: str) -> None:
    world = seed_world(repos)
    resp = _post(client, world, instructor_token)

    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["processed_count"] == 2
    assert data["attendance_recorded"] is True
    assert {s["status"] for s in data["students"]} == {"issued"}
    assert all(s["certificate_code"].startswith("CERT-") for s in data["students"])


def test_no_students_is_422(client: TestClient, repos: Repos, instructor_token: str) -> None:
    world = seed_world(repos)
    resp = _post(client, world, instructor_token, student_ids=[])
    assert resp.status_code == 422
    assert resp.json()["detail"] == "select at least one student"


def test_empty_session_is_422(client: TestClient, repos: Repos, instructor_token: str) -> None:
    world = seed_world(repos, layout=((0,),))
    resp = _post(client, world, instructor_token)
    assert resp.status_code == 422


def test_unknown_session_is_404(
    client: TestClient, repos: Repos, instructor_token: str
) -> None:
    world = seed_world(repos)
    resp = _post(client, world, instructor_token, session_id=uuid4())
    assert resp.status_code == 404


def test_ancestry_mismatch_is_409(
    client: TestClient, repos: Repos, instructor_token: str
) -> None:
    world = seed_world(repos)
    resp = _post(client, world, instructor_token, course_id=str(uuid4()))
    assert resp.status_code == 409
    assert repos.completions.all() == []  # type: ignore[attr-defined]


def test_enrollment_for_another_course_is_409(
    client: TestClient, repos: Repos, instructor_token: str
) -> None:
    world = seed_world(repos)
    other = seed_world(repos)
    # The session belongs to `world`, the enrollment to `other`'s course.
    resp = _post(
        client,
        world,
        instructor_token,
        enrollment_id=str(other.enrollment.id),
        class_id=str(other.school_class.id),
    )
    assert resp.status_code == 409
    assert repos.certificates.all() == []  # type: ignore[attr-defined]


def test_unknown_enrollment_is_404(
    client: TestClient, repos: Repos, instructor_token: str
) -> None:
    world = seed_world(repos)
    resp = _post(client, world, instructor_token, enrollment_id=str(uuid4()))
    assert resp.status_code == 404


def test_students_off_the_roster_are_422(
    client: TestClient, repos: Repos, instructor_token: str
) -> None:
    world = seed_world(repos)
    resp = _post(client, world, instructor_token, student_ids=[str(uuid4())])
    assert resp.status_code == 422
    assert resp.json()["detail"] == "none of the selected students is on the class roster"
    assert repos.completions.all() == []  # type: ignore[attr-defined]


def test_completion_drops_cached_progress(
    client: TestClient, repos: Repos, instructor_token: str
) -> None:
    world = seed_world(repos)
    url = f"/v1/enrollments/{world.enrollment.id}/progress"
    params = {"session_ids": [str(world.session(0).id)]}

    before = client.get(url, params=params, headers=auth(instructor_token))
    assert before.json()["total_completions"] == 0
    assert any(k.startswith(f"progress:{world.enrollment.id}:") for k in cache_service.keys())

    assert _post(client, world, instructor_token).status_code == 200

    assert not any(
        k.startswith(f"progress:{world.enrollment.id}:") for k in cache_service.keys()
    )
    after = client.get(url, params=params, headers=auth(instructor_token))
    assert after.json()["total_completions"] == 2


def test_completions_map(client: TestClient, repos: Repos, instructor_token: str) -> None:
    world = seed_world(repos)
    done, pending = world.students
    _post(client, world, instructor_token, student_ids=[str(done.id)])

    resp = client.get(
        f"/v1/sessions/{world.session(0).id}/completions",
        params={
            "enrollment_id": str(world.enrollment.id),
            "student_ids": [str(done.id), str(pending.id)],
        },
        headers=auth(instructor_token),
    )

    assert resp.status_code == 200
    assert resp.json() == {str(done.id): True, str(pending.id): False}
