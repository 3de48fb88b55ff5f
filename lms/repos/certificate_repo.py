from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.certificate import Certificate
from lms.services.errors import CertificateAlreadyIssuedError


class CertificateRepo(Protocol):
    async def exists(
        self, student_id: UUID, activity_type: str, activity_id: UUID
    ) -> bool: ...
    async def certified_activity_ids(
        self, student_id: UUID, activity_type: str, activity_ids: list[UUID]
    ) -> set[UUID]: ...
    async def insert(self, certificate: Certificate) -> None:
        """Persist a certificate.

        Raises CertificateAlreadyIssuedError when a certificate already
        exists for (student_id, activity_type, activity_id).
        """
        ...

    async def get_by_verification_code(self, code: str) -> Certificate | None: ...
    async def list_for_student(self, student_id: UUID) -> list[Certificate]: ...


class InMemoryCertificateRepo:
    def __init__(self) -> None:
        self._by_key: dict[tuple[UUID, str, UUID], Certificate] = {}
        self._by_code: dict[str, Certificate] = {}

    async def exists(
        self, student_id: UUID, activity_type: str, activity_id: UUID
    ) -> bool:
        return (student_id, activity_type, activity_id) in self._by_key

    async def certified_activity_ids(
        self, student_id: UUID, activity_type: str, activity_ids: list[UUID]
    ) -> set[UUID]:
        return {
            aid
            for aid in activity_ids
            if (student_id, activity_type, aid) in self._by_key
        }

    async def insert(self, certificate: Certificate) -> None:
        # Check-and-set with no await in between: atomic on the event loop,
        # the in-memory stand-in for the table's unique constraint.
        if certificate.key in self._by_key:
            raise CertificateAlreadyIssuedError(*certificate.key)
        if certificate.verification_code in self._by_code:
            raise ValueError("verification code already in use")
        self._by_key[certificate.key] = certificate
        self._by_code[certificate.verification_code] = certificate

    async def get_by_verification_code(self, code: str) -> Certificate | None:
        return self._by_code.get(code)

    async def list_for_student(self, student_id: UUID) -> list[Certificate]:
        certs = [c for c in self._by_key.values() if c.student_id == student_id]
        return sorted(certs, key=lambda c: c.issued_at)

    def all(self) -> list[Certificate]:
        return list(self._by_key.values())
