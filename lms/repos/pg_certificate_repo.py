"""PostgreSQL implementation of CertificateRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import CertificateRow
from lms.models.certificate import Certificate
from lms.services.errors import CertificateAlreadyIssuedError


class PgCertificateRepo:
    """Satisfies the CertificateRepo Protocol using PostgreSQL.

    insert() relies on uq_student_certificates_activity: two concurrent
    issuers can both pass exists(), but only one INSERT returns a row.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def exists(
        self, student_id: UUID, activity_type: str, activity_id: UUID
    ) -> bool:
        stmt = (
            select(CertificateRow.id)
            .where(CertificateRow.student_id == student_id)
            .where(CertificateRow.activity_type == activity_type)
            .where(CertificateRow.activity_id == activity_id)
            .limit(1)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none() is not None

    async def certified_activity_ids(
        self, student_id: UUID, activity_type: str, activity_ids: list[UUID]
    ) -> set[UUID]:
        if not activity_ids:
            return set()
        stmt = (
            select(CertificateRow.activity_id)
            .where(CertificateRow.student_id == student_id)
            .where(CertificateRow.activity_type == activity_type)
            .where(CertificateRow.activity_id.in_(activity_ids))
        )
        return set((await self._session.execute(stmt)).scalars())

    async def insert(self, certificate: Certificate) -> None:
        stmt = (
            pg_insert(CertificateRow)
            .values(
                id=certificate.id,
                student_id=certificate.student_id,
                template_id=certificate.template_id,
                activity_type=certificate.activity_type,
                activity_id=certificate.activity_id,
                activity_name=certificate.activity_name,
                institution_id=certificate.institution_id,
                verification_code=certificate.verification_code,
                issued_at=certificate.issued_at,
            )
            .on_conflict_do_nothing(
                index_elements=["student_id", "activity_type", "activity_id"]
            )
            .returning(CertificateRow.id)
        )
        inserted = (await self._session.execute(stmt)).scalar_one_or_none()
        if inserted is None:
            raise CertificateAlreadyIssuedError(*certificate.key)

    async def get_by_verification_code(self, code: str) -> Certificate | None:
        stmt = select(CertificateRow).where(CertificateRow.verification_code == code)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_certificate(row)

    async def list_for_student(self, student_id: UUID) -> list[Certificate]:
        stmt = (
            select(CertificateRow)
            .where(CertificateRow.student_id == student_id)
            .order_by(CertificateRow.issued_at)
        )
        return [_row_to_certificate(r) for r in (await self._session.execute(stmt)).scalars()]


def _row_to_certificate(row: CertificateRow) -> Certificate:
    return Certificate(
        id=row.id,
        student_id=row.student_id,
        template_id=row.template_id,
        activity_type=row.activity_type,
        activity_id=row.activity_id,
        activity_name=row.activity_name,
        institution_id=row.institution_id,
        verification_code=row.verification_code,
        issued_at=row.issued_at,
    )
