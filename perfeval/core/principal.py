"""
Resolve the requesting principal from an opaque claim bundle.

Resolution fails closed: a missing or unknown role claim, or a user id that is
not a positive integer, yields a principal with `role=None`. Every resolver
treats such a principal as having no access at all; nothing here raises.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Mapping

USER_ID_CLAIMS = ("user_id", "sub", "nameidentifier")
ROLE_CLAIMS = ("role", "roles")
DEPARTMENT_CLAIMS = ("department_id", "DepartmentID")


class Role(str, enum.Enum):
    ADMIN = "Admin"
    EVALUATOR = "Evaluator"
    EMPLOYEE = "Employee"

    @classmethod
    def parse(cls, raw: Any) -> "Role | None":
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            return None
        wanted = raw.strip().lower()
        for role in cls:
            if role.value.lower() == wanted:
                return role
        return None


@dataclass(frozen=True)
class Principal:
    user_id: int
    role: Role | None
    department_id: int | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_evaluator(self) -> bool:
        return self.role is Role.EVALUATOR

    @property
    def is_employee(self) -> bool:
        return self.role is Role.EMPLOYEE

    @property
    def has_access(self) -> bool:
        return self.role is not None and self.user_id > 0


ANONYMOUS = Principal(user_id=0, role=None, department_id=None)


def _first(claims: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for k in keys:
        if k in claims and claims[k] not in (None, ""):
            return claims[k]
    return None


def _positive_int(raw: Any) -> int | None:
    if isinstance(raw, bool):
        return None
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def principal_from_claims(claims: Mapping[str, Any] | None) -> Principal:
    if not claims:
        return ANONYMOUS

    user_id = _positive_int(_first(claims, USER_ID_CLAIMS))
    role_raw = _first(claims, ROLE_CLAIMS)
    if isinstance(role_raw, (list, tuple)):
        # Multiple role claims: the most privileged recognized one wins.
        parsed = {Role.parse(r) for r in role_raw} - {None}
        role = next((r for r in Role if r in parsed), None)
    else:
        role = Role.parse(role_raw)
    department_id = _positive_int(_first(claims, DEPARTMENT_CLAIMS))

    if user_id is None or role is None:
        return Principal(user_id=user_id or 0, role=None, department_id=department_id)
    return Principal(user_id=user_id, role=role, department_id=department_id)
