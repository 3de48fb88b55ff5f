"""The set of repositories one unit of work runs against.

Services take a Repos bundle instead of eight separate arguments.  Two
builders exist:

- pg_repos(session): every repo shares one AsyncSession, so a request is
  a single transaction; savepoint() maps to SAVEPOINT/RELEASE.
- in_memory_repos(): a process-wide bundle used when DATABASE_URL is not
  configured (dev and tests); savepoint() and commit() are no-ops.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.engine import async_session_factory
from lms.repos.attendance_repo import AttendanceRepo, InMemoryAttendanceRepo
from lms.repos.catalog_repo import CatalogRepo, InMemoryCatalogRepo
from lms.repos.certificate_repo import CertificateRepo, InMemoryCertificateRepo
from lms.repos.completion_repo import CompletionRepo, InMemoryCompletionRepo
from lms.repos.pg_attendance_repo import PgAttendanceRepo
from lms.repos.pg_catalog_repo import PgCatalogRepo
from lms.repos.pg_certificate_repo import PgCertificateRepo
from lms.repos.pg_completion_repo import PgCompletionRepo
from lms.repos.pg_roster_repo import PgRosterRepo
from lms.repos.pg_schedule_repo import PgScheduleRepo
from lms.repos.pg_template_repo import PgTemplateRepo
from lms.repos.pg_xp_repo import PgXpRepo
from lms.repos.roster_repo import InMemoryRosterRepo, RosterRepo
from lms.repos.schedule_repo import InMemoryScheduleRepo, ScheduleRepo
from lms.repos.template_repo import InMemoryTemplateRepo, TemplateRepo
from lms.repos.xp_repo import InMemoryXpRepo, XpRepo


@dataclass(slots=True)
class Repos:
    catalog: CatalogRepo
    roster: RosterRepo
    schedule: ScheduleRepo
    templates: TemplateRepo
    completions: CompletionRepo
    attendance: AttendanceRepo
    certificates: CertificateRepo
    xp: XpRepo
    session: AsyncSession | None = None

    @asynccontextmanager
    async def savepoint(self) -> AsyncIterator[None]:
        """Roll back only this block's writes when it raises."""
        if self.session is None:
            yield
            return
        async with self.session.begin_nested():
            yield

    async def commit(self) -> None:
        if self.session is not None:
            await self.session.commit()


def pg_repos(session: AsyncSession) -> Repos:
    return Repos(
        catalog=PgCatalogRepo(session),
        roster=PgRosterRepo(session),
        schedule=PgScheduleRepo(session),
        templates=PgTemplateRepo(session),
        completions=PgCompletionRepo(session),
        attendance=PgAttendanceRepo(session),
        certificates=PgCertificateRepo(session),
        xp=PgXpRepo(session),
        session=session,
    )


def build_in_memory_repos() -> Repos:
    return Repos(
        catalog=InMemoryCatalogRepo(),
        roster=InMemoryRosterRepo(),
        schedule=InMemoryScheduleRepo(),
        templates=InMemoryTemplateRepo(),
        completions=InMemoryCompletionRepo(),
        attendance=InMemoryAttendanceRepo(),
        certificates=InMemoryCertificateRepo(),
        xp=InMemoryXpRepo(),
    )


_in_memory = build_in_memory_repos()


def in_memory_repos() -> Repos:
    return _in_memory


def reset_in_memory_repos() -> Repos:
    """Swap in a fresh in-memory bundle.  Called between tests."""
    global _in_memory
    _in_memory = build_in_memory_repos()
    return _in_memory


@asynccontextmanager
async def open_repos() -> AsyncGenerator[Repos, None]:
    """One unit of work: commit on success, roll back on exception.

    Falls back to the in-memory bundle when no database is configured.
    """
    if async_session_factory is None:
        yield in_memory_repos()
        return
    async with async_session_factory() as session:
        try:
            yield pg_repos(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
