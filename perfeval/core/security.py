from fastapi import Header

from perfeval.core.principal import Principal, principal_from_claims


def get_current_principal(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
    x_department_id: str | None = Header(default=None),
) -> Principal:
    """
    DEV AUTH: the X-User-* headers stand in for an already-verified claim bundle.
    Example: X-User-Id: 7, X-User-Role: Evaluator, X-Department-Id: 2

    Missing or malformed claims never raise here; they resolve to a principal
    without a role, which every resolver treats as having no access.
    """
    return principal_from_claims(
        {
            "user_id": x_user_id,
            "role": x_user_role,
            "department_id": x_department_id,
        }
    )
