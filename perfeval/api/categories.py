from fastapi import APIRouter, Depends, Query

from perfeval.api.deps import get_resolver, get_store, get_weight_validator
from perfeval.core.access import AccessResolver
from perfeval.core.http_errors import raise_for_result
from perfeval.core.principal import Principal, Role
from perfeval.core.rbac import require_roles
from perfeval.core.security import get_current_principal
from perfeval.core.weights import CategoryWeightValidator, WeightRequest
from perfeval.db.store import EntityKind, SqlStore
from perfeval.schemas.criteria import CategoryOut, RebalancePayload, WeightValidationOut

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=list[CategoryOut])
def list_categories(
    active_only: bool = Query(default=False),
    principal: Principal = Depends(get_current_principal),
    store: SqlStore = Depends(get_store),
    resolver: AccessResolver = Depends(get_resolver),
):
    """Admins see every category; everyone else only active ones."""
    predicates = [resolver.scope_filter(principal, EntityKind.CRITERIA_CATEGORY)]
    rows = store.query(EntityKind.CRITERIA_CATEGORY, *predicates)
    if active_only:
        rows = [c for c in rows if c.is_active]
    return [
        CategoryOut(id=c.id, name=c.name, description=c.description, weight=c.weight, is_active=c.is_active)
        for c in rows
    ]


@router.get("/weights", response_model=WeightValidationOut)
def validate_weights(
    _: Principal = Depends(require_roles(Role.ADMIN, Role.EVALUATOR, Role.EMPLOYEE)),
    validator: CategoryWeightValidator = Depends(get_weight_validator),
):
    v = validator.validate()
    return WeightValidationOut(is_valid=v.is_valid, total_weight=v.total_weight)


@router.post("/rebalance", response_model=WeightValidationOut)
def rebalance_weights(
    payload: RebalancePayload,
    admin: Principal = Depends(require_roles(Role.ADMIN)),
    validator: CategoryWeightValidator = Depends(get_weight_validator),
):
    result = raise_for_result(
        validator.rebalance(
            [WeightRequest(item.category_id, item.weight) for item in payload.weights],
            actor_id=admin.user_id,
        )
    )
    return WeightValidationOut(is_valid=result.value.is_valid, total_weight=result.value.total_weight)
