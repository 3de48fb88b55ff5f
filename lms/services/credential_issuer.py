"""Module certificate issuance and the cascade to the course.

issue_module_certificate_if_earned() runs, in this order:

  1. module complete?            no  -> NOT_YET_EARNED
  2. module certificate exists?  yes -> ALREADY_ISSUED
  3. active module template?     no  -> MISSING_TEMPLATE
  4. insert certificate, award module XP
  5. course check

Step 5 also runs when step 2 finds the certificate already issued.  A
run interrupted between the module and course certificates is then
completed by simply running it again.
"""

from __future__ import annotations

import dataclasses
import logging
from uuid import UUID

from lms.core.config import SETTINGS
from lms.models.certificate import (
    MODULE_ACTIVITY,
    MODULE_TEMPLATE_CATEGORIES,
    MODULE_XP_ACTIVITY,
    IssuanceOutcome,
    IssuanceResult,
)
from lms.models.student import StudentRef
from lms.repos.registry import Repos
from lms.services.certificate_writer import issuance_result, issue_certificate
from lms.services.completion_aggregator import is_module_complete, module_content_ids
from lms.services.course_completion import issue_course_certificate_if_earned
from lms.services.errors import EmptyModuleError

logger = logging.getLogger(__name__)


def activity_name(module_title: str | None, course_title: str | None) -> str:
    return f"{module_title or 'Module'} - {course_title or 'Course'}"


async def issue_module_certificate_if_earned(
    repos: Repos,
    student: StudentRef,
    enrollment_id: UUID,
    module_id: UUID,
    course_id: UUID,
    *,
    now: int | None = None,
) -> IssuanceResult:
    if not await is_module_complete(repos, student.record_id, enrollment_id, module_id):
        return issuance_result(IssuanceOutcome.NOT_YET_EARNED, MODULE_ACTIVITY, module_id)

    module_title, course_title = await repos.catalog.module_and_course_titles(module_id)
    result = await issue_certificate(
        repos,
        student,
        activity_type=MODULE_ACTIVITY,
        activity_id=module_id,
        activity_name=activity_name(module_title, course_title),
        template_categories=MODULE_TEMPLATE_CATEGORIES,
        xp_activity_type=MODULE_XP_ACTIVITY,
        xp_points=SETTINGS.module_completion_xp,
        xp_description=f"Module completed: {module_title or 'Module'}",
        now=now,
    )
    if result.outcome is IssuanceOutcome.MISSING_TEMPLATE:
        return result

    course = await issue_course_certificate_if_earned(
        repos, student, enrollment_id, course_id, now=now
    )
    logger.info(
        "Issuance user=%s module=%s outcome=%s course_outcome=%s",
        student.user_id,
        module_id,
        result.outcome.value,
        course.outcome.value,
        extra={
            "student_id": str(student.record_id),
            "enrollment_id": str(enrollment_id),
            "module_id": str(module_id),
            "course_id": str(course_id),
        },
    )
    return dataclasses.replace(result, course=course)


async def retry_module_issuance(
    repos: Repos,
    student: StudentRef,
    enrollment_id: UUID,
    module_id: UUID,
    course_id: UUID,
) -> IssuanceResult:
    """Manual retry of the chain for one student.

    Unlike the automatic path, asking to certify a module with no content
    is reported as EmptyModuleError rather than NOT_YET_EARNED.
    """
    if not await module_content_ids(repos, module_id):
        raise EmptyModuleError(module_id)
    return await issue_module_certificate_if_earned(
        repos, student, enrollment_id, module_id, course_id
    )
