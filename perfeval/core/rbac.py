from fastapi import Depends, HTTPException, status

from perfeval.core.principal import Principal, Role
from perfeval.core.security import get_current_principal


def require_roles(*required: Role):
    """
    Usage:
      Depends(require_roles(Role.ADMIN))
      Depends(require_roles(Role.ADMIN, Role.EVALUATOR))  # any-of
    """
    required_set = set(required)

    def _dep(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not principal.has_access or principal.role not in required_set:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Forbidden. Requires one of: {sorted(r.value for r in required_set)}",
            )
        return principal

    return _dep
