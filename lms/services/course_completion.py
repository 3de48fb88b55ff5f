from __future__ import annotations

import logging
from uuid import UUID

from lms.core.config import SETTINGS
from lms.models.certificate import (
    COURSE_ACTIVITY,
    COURSE_TEMPLATE_CATEGORIES,
    COURSE_XP_ACTIVITY,
    MODULE_ACTIVITY,
    IssuanceOutcome,
    IssuanceResult,
)
from lms.models.student import StudentRef
from lms.repos.registry import Repos
from lms.services.certificate_writer import issuance_result, issue_certificate
from lms.services.completion_aggregator import course_complete

logger = logging.getLogger(__name__)


async def issue_course_certificate_if_earned(
    repos: Repos,
    student: StudentRef,
    enrollment_id: UUID,
    course_id: UUID,
    *,
    now: int | None = None,
) -> IssuanceResult:
    """Issue the course certificate once every module certificate exists.

    Course completion is defined by issued module certificates, not by
    raw content completion: a module only counts after it went through
    the module issuer.
    """
    module_ids = await repos.catalog.module_ids_for_course(course_id)
    certified = await repos.certificates.certified_activity_ids(
        student.user_id, MODULE_ACTIVITY, module_ids
    )
    if not course_complete(module_ids, certified):
        logger.debug(
            "Course %s not yet earned: %d/%d modules certified user=%s",
            course_id,
            len(certified),
            len(module_ids),
            student.user_id,
            extra={"enrollment_id": str(enrollment_id)},
        )
        return issuance_result(IssuanceOutcome.NOT_YET_EARNED, COURSE_ACTIVITY, course_id)

    course_title = await repos.catalog.course_title(course_id) or "Course"
    return await issue_certificate(
        repos,
        student,
        activity_type=COURSE_ACTIVITY,
        activity_id=course_id,
        activity_name=course_title,
        template_categories=COURSE_TEMPLATE_CATEGORIES,
        xp_activity_type=COURSE_XP_ACTIVITY,
        xp_points=SETTINGS.course_completion_xp,
        xp_description=f"Course completed: {course_title}",
        now=now,
    )
