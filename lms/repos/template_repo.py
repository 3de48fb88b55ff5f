from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from lms.models.certificate import CertificateTemplate


class TemplateRepo(Protocol):
    async def active_template(
        self, categories: Sequence[str]
    ) -> CertificateTemplate | None: ...


class InMemoryTemplateRepo:
    def __init__(self) -> None:
        self._templates: list[CertificateTemplate] = []

    def add(self, template: CertificateTemplate) -> None:
        self._templates.append(template)

    async def active_template(
        self, categories: Sequence[str]
    ) -> CertificateTemplate | None:
        for t in self._templates:
            if t.is_active and t.category in categories:
                return t
        return None
