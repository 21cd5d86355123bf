from typing import Any

from perfeval.db.store import Mutation
from perfeval.models.audit_event import AuditEvent


def audit_mutation(
    *,
    actor_id: int | None,
    action: str,
    entity_type: str,
    entity_id: int,
    metadata: dict[str, Any] | None = None,
) -> Mutation:
    """Audit row to be saved in the same atomic unit as the change it records."""
    event = AuditEvent(
        actor_user_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        event_metadata=metadata,
    )
    return Mutation.insert(event)
