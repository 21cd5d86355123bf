"""
Point-access and list-scope decisions for every entity kind.

The whole role x entity matrix lives in two lookup tables (RULES for point
access, SCOPES for list predicates) of small pure functions so it can be read
and audited in one place. Any (role, kind) pair missing from a table denies.

Ownership facts are plain values; the resolver never cares how they were
loaded. `facts_for` is the bridge from a stored entity to those facts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from sqlalchemy import false, or_, select, true

from perfeval.core.assignment_graph import AssignmentGraph
from perfeval.core.principal import Principal, Role
from perfeval.db.store import EntityKind, Store, model_for
from perfeval.models import Comment, Evaluation, EvaluationScore, Team, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OwnershipFacts:
    entity_id: int | None = None
    owner_id: int | None = None
    evaluator_id: int | None = None
    employee_id: int | None = None
    department_id: int | None = None
    team_id: int | None = None
    is_active: bool = True


# Personal data: visibility follows evaluator/employee ownership
PERSONAL_KINDS = frozenset({EntityKind.EVALUATION, EntityKind.USER, EntityKind.COMMENT, EntityKind.SCORE})

# Shared reference data: no ownership, non-admins only see active rows
REFERENCE_KINDS = frozenset({
    EntityKind.CRITERIA_CATEGORY,
    EntityKind.CRITERIA,
    EntityKind.ROLE,
    EntityKind.ROLE_CRITERIA_DESCRIPTION,
})

Rule = Callable[[AssignmentGraph, Principal, OwnershipFacts], bool]


def _evaluator_personal(graph: AssignmentGraph, p: Principal, f: OwnershipFacts) -> bool:
    if f.evaluator_id is not None and f.evaluator_id == p.user_id:
        return True
    return graph.is_reachable(p.user_id, f.employee_id)


def _evaluator_team(graph: AssignmentGraph, p: Principal, f: OwnershipFacts) -> bool:
    return f.team_id is not None and f.team_id in graph.teams_of(p.user_id)


def _employee_personal(graph: AssignmentGraph, p: Principal, f: OwnershipFacts) -> bool:
    # No transitive reach: teammates' data is never visible to an employee.
    return f.employee_id is not None and f.employee_id == p.user_id


def _employee_team(graph: AssignmentGraph, p: Principal, f: OwnershipFacts) -> bool:
    return f.team_id is not None and f.team_id in graph.teams_as_employee(p.user_id)


def _own_department(graph: AssignmentGraph, p: Principal, f: OwnershipFacts) -> bool:
    return f.department_id is not None and f.department_id == p.department_id


def _active_only(graph: AssignmentGraph, p: Principal, f: OwnershipFacts) -> bool:
    return bool(f.is_active)


RULES: dict[tuple[Role, EntityKind], Rule] = {}
for _kind in PERSONAL_KINDS:
    RULES[(Role.EVALUATOR, _kind)] = _evaluator_personal
    RULES[(Role.EMPLOYEE, _kind)] = _employee_personal
for _kind in REFERENCE_KINDS:
    RULES[(Role.EVALUATOR, _kind)] = _active_only
    RULES[(Role.EMPLOYEE, _kind)] = _active_only
RULES[(Role.EVALUATOR, EntityKind.TEAM)] = _evaluator_team
RULES[(Role.EMPLOYEE, EntityKind.TEAM)] = _employee_team
RULES[(Role.EVALUATOR, EntityKind.DEPARTMENT)] = _own_department
RULES[(Role.EMPLOYEE, EntityKind.DEPARTMENT)] = _own_department


# --- list scopes -------------------------------------------------------------

def _evaluation_scope_for_evaluator(graph: AssignmentGraph, p: Principal):
    return or_(
        Evaluation.evaluator_id == p.user_id,
        Evaluation.employee_id.in_(graph.reachable_employee_ids(p.user_id)),
    )


def _evaluation_scope_for_employee(graph: AssignmentGraph, p: Principal):
    return Evaluation.employee_id == p.user_id


def _score_scope(evaluation_scope):
    def _scope(graph: AssignmentGraph, p: Principal):
        return EvaluationScore.evaluation_id.in_(select(Evaluation.id).where(evaluation_scope(graph, p)))
    return _scope


def _comment_scope(evaluation_scope):
    def _scope(graph: AssignmentGraph, p: Principal):
        return Comment.score_id.in_(
            select(EvaluationScore.id).where(_score_scope(evaluation_scope)(graph, p))
        )
    return _scope


def _department_scope(graph: AssignmentGraph, p: Principal):
    if p.department_id is None:
        return false()
    return model_for(EntityKind.DEPARTMENT).id == p.department_id


def _active_scope(kind: EntityKind):
    def _scope(graph: AssignmentGraph, p: Principal):
        return model_for(kind).is_active.is_(True)
    return _scope


Scope = Callable[[AssignmentGraph, Principal], object]

SCOPES: dict[tuple[Role, EntityKind], Scope] = {
    (Role.EVALUATOR, EntityKind.EVALUATION): _evaluation_scope_for_evaluator,
    (Role.EVALUATOR, EntityKind.SCORE): _score_scope(_evaluation_scope_for_evaluator),
    (Role.EVALUATOR, EntityKind.COMMENT): _comment_scope(_evaluation_scope_for_evaluator),
    (Role.EVALUATOR, EntityKind.USER): lambda graph, p: or_(
        User.id == p.user_id, User.id.in_(graph.reachable_employee_ids(p.user_id))
    ),
    (Role.EVALUATOR, EntityKind.TEAM): lambda graph, p: Team.id.in_(graph.evaluator_team_ids(p.user_id)),
    (Role.EVALUATOR, EntityKind.DEPARTMENT): _department_scope,
    (Role.EMPLOYEE, EntityKind.EVALUATION): _evaluation_scope_for_employee,
    (Role.EMPLOYEE, EntityKind.SCORE): _score_scope(_evaluation_scope_for_employee),
    (Role.EMPLOYEE, EntityKind.COMMENT): _comment_scope(_evaluation_scope_for_employee),
    (Role.EMPLOYEE, EntityKind.USER): lambda graph, p: User.id == p.user_id,
    (Role.EMPLOYEE, EntityKind.TEAM): lambda graph, p: Team.id.in_(graph.employee_team_ids(p.user_id)),
    (Role.EMPLOYEE, EntityKind.DEPARTMENT): _department_scope,
}
for _kind in REFERENCE_KINDS:
    SCOPES[(Role.EVALUATOR, _kind)] = _active_scope(_kind)
    SCOPES[(Role.EMPLOYEE, _kind)] = _active_scope(_kind)


class AccessResolver:
    def __init__(self, store: Store, graph: AssignmentGraph | None = None):
        self.store = store
        self.graph = graph or AssignmentGraph(store)

    def can_access(self, principal: Principal, kind: EntityKind, facts: OwnershipFacts | None) -> bool:
        allowed = self._decide(principal, kind, facts)
        self._log_decision(principal, kind, facts, allowed)
        return allowed

    def _decide(self, principal: Principal, kind: EntityKind, facts: OwnershipFacts | None) -> bool:
        if facts is None or not principal.has_access:
            return False
        if principal.is_admin:
            return True
        rule = RULES.get((principal.role, kind))
        if rule is None:
            return False
        return rule(self.graph, principal, facts)

    def scope_filter(self, principal: Principal, kind: EntityKind):
        """Boolean clause restricting a list query of `kind` to what the principal may see."""
        if not principal.has_access:
            return false()
        if principal.is_admin:
            return true()
        scope = SCOPES.get((principal.role, kind))
        if scope is None:
            return false()
        return scope(self.graph, principal)

    def can_access_entity(self, principal: Principal, kind: EntityKind, entity_id: int) -> bool:
        return self.can_access(principal, kind, self.facts_for(kind, entity_id))

    def facts_for(self, kind: EntityKind, entity_id: int) -> OwnershipFacts | None:
        entity = self.store.find_by_id(kind, entity_id)
        if entity is None:
            return None
        return facts_of(kind, entity)

    def _log_decision(self, principal: Principal, kind: EntityKind, facts: OwnershipFacts | None, allowed: bool):
        extra = {
            "principal_id": principal.user_id,
            "role": principal.role.value if principal.role else None,
            "entity_kind": kind.value,
            "entity_id": facts.entity_id if facts else None,
            "decision": "allow" if allowed else "deny",
        }
        if allowed:
            logger.info("Access granted", extra=extra)
        else:
            logger.warning("Access denied", extra=extra)


def facts_of(kind: EntityKind, entity) -> OwnershipFacts:
    if kind is EntityKind.EVALUATION:
        return OwnershipFacts(
            entity_id=entity.id,
            owner_id=entity.evaluator_id,
            evaluator_id=entity.evaluator_id,
            employee_id=entity.employee_id,
            is_active=entity.is_active,
        )
    if kind is EntityKind.SCORE:
        parent = facts_of(EntityKind.EVALUATION, entity.evaluation)
        return OwnershipFacts(
            entity_id=entity.id,
            owner_id=parent.owner_id,
            evaluator_id=parent.evaluator_id,
            employee_id=parent.employee_id,
            is_active=entity.is_active,
        )
    if kind is EntityKind.COMMENT:
        parent = facts_of(EntityKind.SCORE, entity.score)
        return OwnershipFacts(
            entity_id=entity.id,
            owner_id=parent.owner_id,
            evaluator_id=parent.evaluator_id,
            employee_id=parent.employee_id,
            is_active=entity.is_active,
        )
    if kind is EntityKind.USER:
        # A user record is owned by that user on both sides.
        return OwnershipFacts(
            entity_id=entity.id,
            owner_id=entity.id,
            evaluator_id=entity.id,
            employee_id=entity.id,
            department_id=entity.department_id,
            is_active=entity.is_active,
        )
    if kind is EntityKind.TEAM:
        return OwnershipFacts(entity_id=entity.id, team_id=entity.id, is_active=entity.is_active)
    if kind is EntityKind.DEPARTMENT:
        return OwnershipFacts(entity_id=entity.id, department_id=entity.id, is_active=entity.is_active)
    if kind is EntityKind.EVALUATOR_ASSIGNMENT:
        return OwnershipFacts(
            entity_id=entity.id,
            evaluator_id=entity.evaluator_id,
            employee_id=entity.employee_id,
            team_id=entity.team_id,
            is_active=entity.is_active,
        )
    return OwnershipFacts(entity_id=entity.id, is_active=getattr(entity, "is_active", True))
