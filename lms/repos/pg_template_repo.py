"""PostgreSQL implementation of TemplateRepo."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import CertificateTemplateRow
from lms.models.certificate import CertificateTemplate


class PgTemplateRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def active_template(
        self, categories: Sequence[str]
    ) -> CertificateTemplate | None:
        stmt = (
            select(CertificateTemplateRow)
            .where(CertificateTemplateRow.is_active.is_(True))
            .where(CertificateTemplateRow.category.in_(list(categories)))
            .limit(1)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return CertificateTemplate(
            id=row.id, name=row.name, category=row.category, is_active=row.is_active
        )
