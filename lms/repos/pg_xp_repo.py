"""PostgreSQL implementation of XpRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import XpTransactionRow
from lms.models.certificate import XpTransaction
from lms.services.errors import AwardAlreadyExistsError


class PgXpRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, transaction: XpTransaction) -> None:
        stmt = (
            pg_insert(XpTransactionRow)
            .values(
                id=transaction.id,
                student_id=transaction.student_id,
                institution_id=transaction.institution_id,
                activity_type=transaction.activity_type,
                activity_id=transaction.activity_id,
                points_earned=transaction.points,
                description=transaction.description,
                created_at=transaction.created_at,
            )
            .on_conflict_do_nothing(
                index_elements=["student_id", "activity_type", "activity_id"]
            )
            .returning(XpTransactionRow.id)
        )
        if (await self._session.execute(stmt)).scalar_one_or_none() is None:
            raise AwardAlreadyExistsError(*transaction.key)

    async def total_points(self, student_id: UUID) -> int:
        stmt = select(func.coalesce(func.sum(XpTransactionRow.points_earned), 0)).where(
            XpTransactionRow.student_id == student_id
        )
        return int((await self._session.execute(stmt)).scalar_one())
