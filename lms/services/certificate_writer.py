"""The issuance step shared by module and course certificates.

  existence check -> template check -> insert certificate -> award XP

The existence check only saves a write in the common case.  Exactly-once
comes from the certificate table's unique key: when a concurrent issuer
wins the insert, the repo raises CertificateAlreadyIssuedError and the
result is ALREADY_ISSUED, the same as if the check had seen the row.

XP is written only after the certificate, and an XP failure is logged
and counted without undoing the certificate.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from uuid import UUID

from lms.core.metrics import CERTIFICATE_ISSUANCE, XP_AWARD_FAILURES
from lms.models.certificate import (
    Certificate,
    IssuanceOutcome,
    IssuanceResult,
    XpTransaction,
)
from lms.models.student import StudentRef
from lms.repos.registry import Repos
from lms.services.errors import AwardAlreadyExistsError, CertificateAlreadyIssuedError

logger = logging.getLogger(__name__)


def issuance_result(
    outcome: IssuanceOutcome, activity_type: str, activity_id: UUID, **kwargs
) -> IssuanceResult:
    CERTIFICATE_ISSUANCE.labels(activity_type=activity_type, outcome=outcome.value).inc()
    return IssuanceResult(
        outcome=outcome, activity_type=activity_type, activity_id=activity_id, **kwargs
    )


async def award_xp(
    repos: Repos,
    student: StudentRef,
    *,
    activity_type: str,
    activity_id: UUID,
    points: int,
    description: str,
    now: int,
) -> bool:
    """Append one XP transaction.  Returns False instead of raising."""
    transaction = XpTransaction.new(
        student_id=student.user_id,
        institution_id=student.institution_id,
        activity_type=activity_type,
        activity_id=activity_id,
        points=points,
        description=description,
        created_at=now,
    )
    try:
        async with repos.savepoint():
            await repos.xp.add(transaction)
    except AwardAlreadyExistsError:
        logger.info(
            "XP already awarded activity=%s:%s user=%s",
            activity_type,
            activity_id,
            student.user_id,
        )
        return False
    except Exception:
        XP_AWARD_FAILURES.labels(activity_type=activity_type).inc()
        logger.exception(
            "XP award failed activity=%s:%s user=%s",
            activity_type,
            activity_id,
            student.user_id,
        )
        return False
    return True


async def issue_certificate(
    repos: Repos,
    student: StudentRef,
    *,
    activity_type: str,
    activity_id: UUID,
    activity_name: str,
    template_categories: Sequence[str],
    xp_activity_type: str,
    xp_points: int,
    xp_description: str,
    now: int | None = None,
) -> IssuanceResult:
    if await repos.certificates.exists(student.user_id, activity_type, activity_id):
        return issuance_result(IssuanceOutcome.ALREADY_ISSUED, activity_type, activity_id)

    template = await repos.templates.active_template(template_categories)
    if template is None:
        logger.warning(
            "No active %s template; %s %s not issued to user=%s",
            "/".join(template_categories),
            activity_type,
            activity_id,
            student.user_id,
        )
        return issuance_result(IssuanceOutcome.MISSING_TEMPLATE, activity_type, activity_id)

    issued_at = now if now is not None else int(time.time())
    certificate = Certificate.new(
        student_id=student.user_id,
        template_id=template.id,
        activity_type=activity_type,
        activity_id=activity_id,
        activity_name=activity_name,
        institution_id=student.institution_id,
        issued_at=issued_at,
    )
    try:
        await repos.certificates.insert(certificate)
    except CertificateAlreadyIssuedError:
        logger.info(
            "Lost issuance race for %s %s user=%s",
            activity_type,
            activity_id,
            student.user_id,
        )
        return issuance_result(IssuanceOutcome.ALREADY_ISSUED, activity_type, activity_id)

    logger.info(
        "Issued %s certificate code=%s activity=%s user=%s",
        activity_type,
        certificate.verification_code,
        activity_id,
        student.user_id,
        extra={"student_id": str(student.record_id)},
    )
    xp_awarded = await award_xp(
        repos,
        student,
        activity_type=xp_activity_type,
        activity_id=activity_id,
        points=xp_points,
        description=xp_description,
        now=issued_at,
    )
    return issuance_result(
        IssuanceOutcome.ISSUED,
        activity_type,
        activity_id,
        certificate=certificate,
        xp_awarded=xp_awarded,
    )
