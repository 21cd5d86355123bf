from fastapi import APIRouter, Depends

from perfeval.api.deps import get_cascade
from perfeval.core.cascade import CascadeDeactivator
from perfeval.core.http_errors import raise_for_result
from perfeval.core.principal import Principal, Role
from perfeval.core.rbac import require_roles
from perfeval.db.store import EntityKind

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/{kind}/{entity_id}/deactivate")
def deactivate(
    kind: EntityKind,
    entity_id: int,
    admin: Principal = Depends(require_roles(Role.ADMIN)),
    cascade: CascadeDeactivator = Depends(get_cascade),
):
    result = raise_for_result(cascade.cascade_deactivate(kind, entity_id, actor_id=admin.user_id))
    return {"status": "ok", "kind": kind.value, "id": entity_id, "dependents_deactivated": result.value}


@router.post("/{kind}/{entity_id}/reactivate")
def reactivate(
    kind: EntityKind,
    entity_id: int,
    admin: Principal = Depends(require_roles(Role.ADMIN)),
    cascade: CascadeDeactivator = Depends(get_cascade),
):
    raise_for_result(cascade.reactivate(kind, entity_id, actor_id=admin.user_id))
    return {"status": "ok", "kind": kind.value, "id": entity_id}


@router.delete("/{kind}/{entity_id}", status_code=204)
def hard_delete(
    kind: EntityKind,
    entity_id: int,
    admin: Principal = Depends(require_roles(Role.ADMIN)),
    cascade: CascadeDeactivator = Depends(get_cascade),
):
    raise_for_result(cascade.hard_delete(kind, entity_id, actor_id=admin.user_id))
