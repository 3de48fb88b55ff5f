from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Caller identity taken from a verified bearer token.

    user_id is the token subject, the same identity id certificates and
    XP are keyed on.  Instructors and admins act on a whole class;
    students may only read their own records.
    """

    user_id: str
    roles: frozenset[str]

    def has_any_role(self, roles: set[str]) -> bool:
        return bool(self.roles & roles)
