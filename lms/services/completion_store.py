from __future__ import annotations

import logging
import time
from uuid import UUID

from lms.core.metrics import COMPLETION_RECORDS_WRITTEN
from lms.models.completion import CompletionRecord
from lms.repos.completion_repo import CompletionRepo
from lms.services.errors import ContentNotFoundError

logger = logging.getLogger(__name__)


def _unique(ids: list[UUID]) -> list[UUID]:
    return list(dict.fromkeys(ids))


async def record_completions(
    repo: CompletionRepo,
    student_ids: list[UUID],
    content_ids: list[UUID],
    enrollment_id: UUID,
    *,
    now: int | None = None,
) -> int:
    """Mark every content item complete for every student under one enrollment.

    Writes the cross product as upserts, so repeating a call leaves the
    same rows behind.  Returns the number of rows written.
    """
    content_ids = _unique(content_ids)
    if not content_ids:
        raise ContentNotFoundError("no content items to record completions for")
    student_ids = _unique(student_ids)
    if not student_ids:
        return 0

    completed_at = now if now is not None else int(time.time())
    records = [
        CompletionRecord(
            student_id=sid,
            content_id=cid,
            enrollment_id=enrollment_id,
            completed_at=completed_at,
        )
        for sid in student_ids
        for cid in content_ids
    ]
    written = await repo.upsert_many(records)
    COMPLETION_RECORDS_WRITTEN.inc(written)
    logger.info(
        "Recorded %d completions students=%d contents=%d",
        written,
        len(student_ids),
        len(content_ids),
        extra={"enrollment_id": str(enrollment_id)},
    )
    return written


async def completed_content_ids(
    repo: CompletionRepo,
    student_id: UUID,
    enrollment_id: UUID,
    content_ids: list[UUID],
) -> set[UUID]:
    if not content_ids:
        return set()
    return await repo.completed_content_ids(student_id, enrollment_id, content_ids)
