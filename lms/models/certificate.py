from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from enum import Enum
from uuid import UUID, uuid4

# Activity types stored on certificates.  "level" is the legacy name some
# templates still carry for module certificates.
MODULE_ACTIVITY = "module"
COURSE_ACTIVITY = "course"
MODULE_TEMPLATE_CATEGORIES = ("module", "level")
COURSE_TEMPLATE_CATEGORIES = ("course",)

MODULE_XP_ACTIVITY = "module_completion"
COURSE_XP_ACTIVITY = "course_completion"

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


class IssuanceOutcome(str, Enum):
    ISSUED = "issued"
    ALREADY_ISSUED = "already_issued"
    NOT_YET_EARNED = "not_yet_earned"
    MISSING_TEMPLATE = "missing_template"


def _base36(n: int) -> str:
    out = ""
    while True:
        n, r = divmod(n, 36)
        out = _BASE36[r] + out
        if n == 0:
            return out


def new_verification_code() -> str:
    """CERT-<base36 ms timestamp>-<8 random base36 chars>.

    The storage layer also keeps verification codes unique, so a
    collision surfaces as an insert error rather than a shared code.
    """
    stamp = _base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(8))
    return f"CERT-{stamp}-{suffix}"


@dataclass(frozen=True, slots=True)
class CertificateTemplate:
    id: UUID
    name: str
    category: str  # module|level|course
    is_active: bool = True

    @staticmethod
    def new(*, name: str, category: str, is_active: bool = True) -> CertificateTemplate:
        return CertificateTemplate(
            id=uuid4(), name=name, category=category, is_active=is_active
        )


@dataclass(frozen=True, slots=True)
class Certificate:
    """Issued credential.  Unique per (student_id, activity_type, activity_id)."""

    id: UUID
    student_id: UUID  # identity (user) id, not the student record id
    template_id: UUID
    activity_type: str  # module|course
    activity_id: UUID
    activity_name: str
    institution_id: UUID | None
    verification_code: str
    issued_at: int

    @staticmethod
    def new(
        *,
        student_id: UUID,
        template_id: UUID,
        activity_type: str,
        activity_id: UUID,
        activity_name: str,
        institution_id: UUID | None,
        issued_at: int,
    ) -> Certificate:
        return Certificate(
            id=uuid4(),
            student_id=student_id,
            template_id=template_id,
            activity_type=activity_type,
            activity_id=activity_id,
            activity_name=activity_name,
            institution_id=institution_id,
            verification_code=new_verification_code(),
            issued_at=issued_at,
        )

    @property
    def key(self) -> tuple[UUID, str, UUID]:
        return (self.student_id, self.activity_type, self.activity_id)


@dataclass(frozen=True, slots=True)
class XpTransaction:
    id: UUID
    student_id: UUID
    institution_id: UUID | None
    activity_type: str  # module_completion|course_completion
    activity_id: UUID
    points: int
    description: str
    created_at: int

    @staticmethod
    def new(
        *,
        student_id: UUID,
        institution_id: UUID | None,
        activity_type: str,
        activity_id: UUID,
        points: int,
        description: str,
        created_at: int,
    ) -> XpTransaction:
        return XpTransaction(
            id=uuid4(),
            student_id=student_id,
            institution_id=institution_id,
            activity_type=activity_type,
            activity_id=activity_id,
            points=points,
            description=description,
            created_at=created_at,
        )

    @property
    def key(self) -> tuple[UUID, str, UUID]:
        return (self.student_id, self.activity_type, self.activity_id)


@dataclass(frozen=True, slots=True)
class IssuanceResult:
    """Outcome of one issuance attempt.

    course is set on a module result when the course cascade ran.
    """

    outcome: IssuanceOutcome
    activity_type: str
    activity_id: UUID
    certificate: Certificate | None = None
    xp_awarded: bool = False
    course: IssuanceResult | None = None

    @property
    def issued(self) -> bool:
        return self.outcome is IssuanceOutcome.ISSUED
