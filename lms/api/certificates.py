"""Certificate endpoints.

- POST /v1/modules/{module_id}/certificates         re-run issuance for one student
- GET  /v1/certificates/{verification_code}/verify  public verification
- GET  /v1/users/{user_id}/certificates              a student's certificates and XP
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from lms.api.dependencies import STAFF_ROLES, get_repos, require_staff, require_user
from lms.models.certificate import Certificate
from lms.models.principal import Principal
from lms.models.student import StudentRef
from lms.repos.registry import Repos
from lms.services.credential_issuer import retry_module_issuance
from lms.services.errors import EmptyModuleError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["certificates"])


class IssueModuleCertificateIn(BaseModel):
    student_id: UUID  # student record id
    enrollment_id: UUID


class IssuanceOut(BaseModel):
    outcome: str  # issued|already_issued|not_yet_earned|missing_template
    course_outcome: str | None = None
    verification_code: str | None = None
    course_verification_code: str | None = None


class CertificateOut(BaseModel):
    id: UUID
    student_id: UUID
    activity_type: str
    activity_id: UUID
    activity_name: str
    verification_code: str
    issued_at: int


class CertificateVerifyOut(CertificateOut):
    valid: bool


class UserCertificatesOut(BaseModel):
    user_id: UUID
    total_xp: int
    certificates: list[CertificateOut]


def _cert_out(cert: Certificate) -> CertificateOut:
    return CertificateOut(
        id=cert.id,
        student_id=cert.student_id,
        activity_type=cert.activity_type,
        activity_id=cert.activity_id,
        activity_name=cert.activity_name,
        verification_code=cert.verification_code,
        issued_at=cert.issued_at,
    )


@router.post("/modules/{module_id}/certificates", response_model=IssuanceOut)
async def issue_module_certificate(
    module_id: UUID,
    body: IssueModuleCertificateIn,
    principal: Annotated[Principal, Depends(require_staff)],
    repos: Annotated[Repos, Depends(get_repos)],
) -> IssuanceOut:
    enrollment = await repos.roster.get_enrollment(body.enrollment_id)
    if enrollment is None:
        raise HTTPException(status_code=404, detail="enrollment not found")
    if module_id not in await repos.catalog.module_ids_for_course(enrollment.course_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"module {module_id} is not part of course {enrollment.course_id}",
        )

    found = await repos.roster.students_by_ids([body.student_id])
    if not found:
        raise HTTPException(status_code=404, detail="student not found")
    if found[0].user_id is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="student has no linked user account",
        )

    try:
        result = await retry_module_issuance(
            repos,
            StudentRef.of(found[0]),
            enrollment.id,
            module_id,
            enrollment.course_id,
        )
    except EmptyModuleError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        ) from None

    logger.info(
        "Manual issuance by user=%s module=%s student=%s -> %s",
        principal.user_id,
        module_id,
        body.student_id,
        result.outcome.value,
    )
    course = result.course
    return IssuanceOut(
        outcome=result.outcome.value,
        course_outcome=course.outcome.value if course else None,
        verification_code=result.certificate.verification_code if result.certificate else None,
        course_verification_code=(
            course.certificate.verification_code if course and course.certificate else None
        ),
    )


@router.get(
    "/certificates/{verification_code}/verify", response_model=CertificateVerifyOut
)
async def verify_certificate(
    verification_code: str,
    repos: Annotated[Repos, Depends(get_repos)],
) -> CertificateVerifyOut:
    cert = await repos.certificates.get_by_verification_code(verification_code)
    if cert is None:
        raise HTTPException(status_code=404, detail="certificate not found")
    return CertificateVerifyOut(**_cert_out(cert).model_dump(), valid=True)


@router.get("/users/{user_id}/certificates", response_model=UserCertificatesOut)
async def list_user_certificates(
    user_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    repos: Annotated[Repos, Depends(get_repos)],
) -> UserCertificatesOut:
    if principal.user_id != str(user_id) and not principal.has_any_role(STAFF_ROLES):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )
    certificates = await repos.certificates.list_for_student(user_id)
    return UserCertificatesOut(
        user_id=user_id,
        total_xp=await repos.xp.total_points(user_id),
        certificates=[_cert_out(c) for c in certificates],
    )
