"""Exceptions raised by the completion pipeline.

Outcomes that are not failures (already issued, not yet earned, missing
template) are values of IssuanceOutcome, never exceptions.
"""

from __future__ import annotations

from uuid import UUID


class CompletionError(Exception):
    pass


class ContentNotFoundError(CompletionError):
    """A completion target resolved to zero content items."""


class SessionNotFoundError(ContentNotFoundError):
    def __init__(self, session_id: UUID) -> None:
        super().__init__(f"session {session_id} not found")
        self.session_id = session_id


class EmptySessionError(ContentNotFoundError):
    def __init__(self, session_id: UUID) -> None:
        super().__init__(f"no content found in session {session_id}")
        self.session_id = session_id


class EmptyModuleError(ContentNotFoundError):
    def __init__(self, module_id: UUID) -> None:
        super().__init__(f"no content found in module {module_id}")
        self.module_id = module_id


class SessionAncestryMismatchError(CompletionError):
    def __init__(self, session_id: UUID, detail: str) -> None:
        super().__init__(f"session {session_id}: {detail}")
        self.session_id = session_id


class EnrollmentNotFoundError(CompletionError):
    def __init__(self, enrollment_id: UUID) -> None:
        super().__init__(f"enrollment {enrollment_id} not found")
        self.enrollment_id = enrollment_id


class EnrollmentMismatchError(CompletionError):
    """The session or class does not belong to the given enrollment."""

    def __init__(self, enrollment_id: UUID, detail: str) -> None:
        super().__init__(f"enrollment {enrollment_id}: {detail}")
        self.enrollment_id = enrollment_id


class AwardAlreadyExistsError(CompletionError):
    """Raised by storage when a (student, activity type, activity) key already has a row."""

    def __init__(self, student_id: UUID, activity_type: str, activity_id: UUID) -> None:
        super().__init__(
            f"{activity_type} {activity_id} already awarded to {student_id}"
        )
        self.student_id = student_id
        self.activity_type = activity_type
        self.activity_id = activity_id


class CertificateAlreadyIssuedError(AwardAlreadyExistsError):
    pass
