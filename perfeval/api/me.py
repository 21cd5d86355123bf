from fastapi import APIRouter, Depends

from perfeval.api.deps import get_resolver
from perfeval.core.access import AccessResolver
from perfeval.core.principal import Principal
from perfeval.core.security import get_current_principal

router = APIRouter(tags=["auth"])


@router.get("/me")
def me(
    principal: Principal = Depends(get_current_principal),
    resolver: AccessResolver = Depends(get_resolver),
):
    """Resolved principal plus the assignment-graph view it gets (evaluators only)."""
    teams: list[int] = []
    employees: list[int] = []
    if principal.has_access and principal.is_evaluator:
        teams = sorted(resolver.graph.teams_of(principal.user_id))
        employees = sorted(resolver.graph.employees_of(principal.user_id))
    return {
        "user_id": principal.user_id,
        "role": principal.role.value if principal.role else None,
        "department_id": principal.department_id,
        "has_access": principal.has_access,
        "team_ids": teams,
        "employee_ids": employees,
    }
