from __future__ import annotations

import asyncio
from uuid import UUID

import pytest
from prometheus_client import REGISTRY

from lms.models.certificate import (
    COURSE_ACTIVITY,
    MODULE_ACTIVITY,
    CertificateTemplate,
    IssuanceOutcome,
    XpTransaction,
)
from lms.models.student import StudentRef
from lms.repos.certificate_repo import InMemoryCertificateRepo
from lms.repos.registry import Repos
from lms.repos.xp_repo import InMemoryXpRepo
from lms.services.completion_store import record_completions
from lms.services.credential_issuer import (
    activity_name,
    issue_module_certificate_if_earned,
    retry_module_issuance,
)
from lms.services.errors import EmptyModuleError
from tests.conftest import World, seed_world


class RacingCertificateRepo(InMemoryCertificateRepo):
    """Yields after the existence check so two issuers both see "absent"."""

    async def exists(self, student_id: UUID, activity_type: str, activity_id: UUID) -> bool:
        found = await super().exists(student_id, activity_type, activity_id)
        await asyncio.sleep(0)
        return found


class FailingXpRepo(InMemoryXpRepo):
    async def add(self, transaction: XpTransaction) -> None:
        raise RuntimeError("xp ledger unavailable")


def _complete_module(repos: Repos, world: World, student_index: int, module_index: int):
    student = world.students[student_index]
    content = [
        cid for s in world.sessions[module_index] for cid in world.content[s.id]
    ]
    asyncio.run(
        record_completions(repos.completions, [student.id], content, world.enrollment.id)
    )


def _issue(repos: Repos, world: World, module_index: int = 0, student_index: int = 0):
    return asyncio.run(
        issue_module_certificate_if_earned(
            repos,
            StudentRef.of(world.students[student_index]),
            world.enrollment.id,
            world.modules[module_index].id,
            world.course.id,
        )
    )


def test_activity_name_defaults() -> None:
    assert activity_name("Level 1", "Robotics") == "Level 1 - Robotics"
    assert activity_name(None, None) == "Module - Course"


def test_not_yet_earned_when_module_incomplete(repos: Repos) -> None:
    world = seed_world(repos)
    result = _issue(repos, world)
    assert result.outcome is IssuanceOutcome.NOT_YET_EARNED
    assert result.course is None
    assert repos.certificates.all() == []  # type: ignore[attr-defined]


def test_issues_module_certificate_with_xp(repos: Repos) -> None:
    world = seed_world(repos, layout=((2,), (1,)))
    _complete_module(repos, world, 0, 0)

    result = _issue(repos, world)

    assert result.outcome is IssuanceOutcome.ISSUED
    assert result.xp_awarded
    cert = result.certificate
    assert cert is not None
    assert cert.student_id == world.students[0].user_id
    assert cert.activity_type == MODULE_ACTIVITY
    assert cert.activity_name == "Level 1 - Robotics Basics"
    assert cert.verification_code.startswith("CERT-")
    (xp,) = repos.xp.all()  # type: ignore[attr-defined]
    assert xp.points == 100
    assert xp.activity_type == "module_completion"
    assert xp.description == "Module completed: Level 1"
    # Second module still open, so the course is not earned.
    assert result.course is not None
    assert result.course.outcome is IssuanceOutcome.NOT_YET_EARNED


def test_second_run_is_already_issued(repos: Repos) -> None:
    world = seed_world(repos, layout=((2,), (1,)))
    _complete_module(repos, world, 0, 0)
    _issue(repos, world)

    result = _issue(repos, world)

    assert result.outcome is IssuanceOutcome.ALREADY_ISSUED
    assert len(repos.certificates.all()) == 1  # type: ignore[attr-defined]
    assert len(repos.xp.all()) == 1  # type: ignore[attr-defined]


def test_missing_template(repos: Repos) -> None:
    world = seed_world(repos, with_templates=False)
    _complete_module(repos, world, 0, 0)

    result = _issue(repos, world)

    assert result.outcome is IssuanceOutcome.MISSING_TEMPLATE
    assert result.course is None
    assert repos.certificates.all() == []  # type: ignore[attr-defined]
    assert repos.xp.all() == []  # type: ignore[attr-defined]


def test_inactive_template_is_ignored(repos: Repos) -> None:
    world = seed_world(repos, with_templates=False)
    repos.templates.add(  # type: ignore[attr-defined]
        CertificateTemplate.new(name="retired", category="module", is_active=False)
    )
    _complete_module(repos, world, 0, 0)
    assert _issue(repos, world).outcome is IssuanceOutcome.MISSING_TEMPLATE


def test_legacy_level_template_certifies_modules(repos: Repos) -> None:
    world = seed_world(repos, with_templates=False)
    level = CertificateTemplate.new(name="level template", category="level")
    repos.templates.add(level)  # type: ignore[attr-defined]
    _complete_module(repos, world, 0, 0)

    result = _issue(repos, world)

    assert result.outcome is IssuanceOutcome.ISSUED
    assert result.certificate is not None
    assert result.certificate.template_id == level.id


def test_empty_module_is_never_earned(repos: Repos) -> None:
    world = seed_world(repos, layout=((0,),))
    result = _issue(repos, world)
    assert result.outcome is IssuanceOutcome.NOT_YET_EARNED
    assert repos.certificates.all() == []  # type: ignore[attr-defined]


def test_retry_rejects_empty_module(repos: Repos) -> None:
    world = seed_world(repos, layout=((0,),))
    with pytest.raises(EmptyModuleError):
        asyncio.run(
            retry_module_issuance(
                repos,
                StudentRef.of(world.students[0]),
                world.enrollment.id,
                world.modules[0].id,
                world.course.id,
            )
        )


def test_xp_failure_keeps_certificate(repos: Repos) -> None:
    world = seed_world(repos, layout=((1,), (1,)))
    repos.xp = FailingXpRepo()
    _complete_module(repos, world, 0, 0)
    labels = {"activity_type": "module_completion"}
    before = REGISTRY.get_sample_value("xp_award_failures_total", labels) or 0.0

    result = _issue(repos, world)

    assert result.outcome is IssuanceOutcome.ISSUED
    assert not result.xp_awarded
    assert len(repos.certificates.all()) == 1  # type: ignore[attr-defined]
    after = REGISTRY.get_sample_value("xp_award_failures_total", labels) or 0.0
    assert after - before == 1


def test_single_module_course_cascades(repos: Repos) -> None:
    world = seed_world(repos)
    _complete_module(repos, world, 0, 0)

    result = _issue(repos, world)

    assert result.course is not None
    assert result.course.outcome is IssuanceOutcome.ISSUED
    course_cert = result.course.certificate
    assert course_cert is not None
    assert course_cert.activity_type == COURSE_ACTIVITY
    assert course_cert.activity_name == "Robotics Basics"
    total = asyncio.run(repos.xp.total_points(world.students[0].user_id))
    assert total == 100 + 500


def test_course_cascade_resumes_after_interrupted_run(repos: Repos) -> None:
    world = seed_world(repos, with_templates=False)
    module_template = CertificateTemplate.new(name="module", category="module")
    repos.templates.add(module_template)  # type: ignore[attr-defined]
    _complete_module(repos, world, 0, 0)

    first = _issue(repos, world)
    assert first.outcome is IssuanceOutcome.ISSUED
    assert first.course is not None
    assert first.course.outcome is IssuanceOutcome.MISSING_TEMPLATE

    repos.templates.add(  # type: ignore[attr-defined]
        CertificateTemplate.new(name="course", category="course")
    )
    second = _issue(repos, world)

    assert second.outcome is IssuanceOutcome.ALREADY_ISSUED
    assert second.course is not None
    assert second.course.outcome is IssuanceOutcome.ISSUED


def test_concurrent_issuers_produce_one_certificate(repos: Repos) -> None:
    world = seed_world(repos)
    repos.certificates = RacingCertificateRepo()
    _complete_module(repos, world, 0, 0)
    student = StudentRef.of(world.students[0])

    async def race():
        return await asyncio.gather(
            *(
                issue_module_certificate_if_earned(
                    repos, student, world.enrollment.id, world.modules[0].id, world.course.id
                )
                for _ in range(2)
            )
        )

    results = asyncio.run(race())

    assert sorted(r.outcome.value for r in results) == ["already_issued", "issued"]
    certs = repos.certificates.all()  # type: ignore[attr-defined]
    assert sorted(c.activity_type for c in certs) == ["course", "module"]
    xp = repos.xp.all()  # type: ignore[attr-defined]
    assert sorted(t.activity_type for t in xp) == ["course_completion", "module_completion"]


def test_students_are_certified_independently(repos: Repos) -> None:
    world = seed_world(repos)
    _complete_module(repos, world, 0, 0)

    assert _issue(repos, world, student_index=0).outcome is IssuanceOutcome.ISSUED
    assert _issue(repos, world, student_index=1).outcome is IssuanceOutcome.NOT_YET_EARNED
