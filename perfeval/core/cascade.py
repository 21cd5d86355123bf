"""
Soft deactivation with dependents, reactivation, and guarded hard delete.

A cascade is one atomic unit: dependents are listed leaf-first and the root
comes last, and the whole list goes to the store in a single save. If any row
fails, nothing changes.

Reactivation flips only the root's flag. Dependents stay as they are and no
relationship is re-derived.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from sqlalchemy import or_, select

from perfeval.core.audit import audit_mutation
from perfeval.core.errors import OpResult
from perfeval.db.store import EntityKind, Mutation, Store, mutations_for
from perfeval.models import (
    Comment,
    Criteria,
    Evaluation,
    EvaluationScore,
    EvaluatorAssignment,
    RoleAssignment,
    RoleCriteriaDescription,
    User,
)

logger = logging.getLogger(__name__)

DependentsFn = Callable[[Store, int], list[Any]]


def _active(model):
    return model.is_active.is_(True)


def _department_users(store: Store, department_id: int) -> list[Any]:
    return store.query(EntityKind.USER, User.department_id == department_id, _active(User))


def _team_assignments(store: Store, team_id: int) -> list[Any]:
    return store.query(
        EntityKind.EVALUATOR_ASSIGNMENT,
        EvaluatorAssignment.team_id == team_id,
        _active(EvaluatorAssignment),
    )


def _role_assignments(store: Store, role_id: int) -> list[Any]:
    return store.query(EntityKind.ROLE_ASSIGNMENT, RoleAssignment.role_id == role_id, _active(RoleAssignment))


def _criteria_descriptions(store: Store, criteria_id: int) -> list[Any]:
    # Historical EvaluationScores on the criterion are kept for audit.
    return store.query(
        EntityKind.ROLE_CRITERIA_DESCRIPTION,
        RoleCriteriaDescription.criteria_id == criteria_id,
        _active(RoleCriteriaDescription),
    )


def _evaluation_scores_and_comments(store: Store, evaluation_id: int) -> list[Any]:
    score_ids = select(EvaluationScore.id).where(EvaluationScore.evaluation_id == evaluation_id)
    comments = store.query(EntityKind.COMMENT, Comment.score_id.in_(score_ids), _active(Comment))
    scores = store.query(
        EntityKind.SCORE,
        EvaluationScore.evaluation_id == evaluation_id,
        _active(EvaluationScore),
    )
    return comments + scores


def _user_links(store: Store, user_id: int) -> list[Any]:
    assignments = store.query(
        EntityKind.EVALUATOR_ASSIGNMENT,
        or_(EvaluatorAssignment.evaluator_id == user_id, EvaluatorAssignment.employee_id == user_id),
        _active(EvaluatorAssignment),
    )
    roles = store.query(EntityKind.ROLE_ASSIGNMENT, RoleAssignment.user_id == user_id, _active(RoleAssignment))
    return assignments + roles


CASCADES: dict[EntityKind, DependentsFn] = {
    EntityKind.DEPARTMENT: _department_users,
    EntityKind.TEAM: _team_assignments,
    EntityKind.ROLE: _role_assignments,
    EntityKind.CRITERIA: _criteria_descriptions,
    EntityKind.EVALUATION: _evaluation_scores_and_comments,
    EntityKind.USER: _user_links,
    EntityKind.CRITERIA_CATEGORY: lambda store, _id: [],
}


# Rows (in any state) that block a physical delete of the root.
BLOCKERS: dict[EntityKind, list[tuple[EntityKind, Callable[[int], Any]]]] = {
    EntityKind.DEPARTMENT: [(EntityKind.USER, lambda i: User.department_id == i)],
    EntityKind.TEAM: [(EntityKind.EVALUATOR_ASSIGNMENT, lambda i: EvaluatorAssignment.team_id == i)],
    EntityKind.ROLE: [
        (EntityKind.ROLE_ASSIGNMENT, lambda i: RoleAssignment.role_id == i),
        (EntityKind.ROLE_CRITERIA_DESCRIPTION, lambda i: RoleCriteriaDescription.role_id == i),
    ],
    EntityKind.CRITERIA_CATEGORY: [(EntityKind.CRITERIA, lambda i: Criteria.category_id == i)],
    EntityKind.CRITERIA: [
        (EntityKind.ROLE_CRITERIA_DESCRIPTION, lambda i: RoleCriteriaDescription.criteria_id == i),
        (EntityKind.SCORE, lambda i: EvaluationScore.criteria_id == i),
    ],
    EntityKind.EVALUATION: [(EntityKind.SCORE, lambda i: EvaluationScore.evaluation_id == i)],
    EntityKind.SCORE: [(EntityKind.COMMENT, lambda i: Comment.score_id == i)],
    EntityKind.USER: [
        (EntityKind.EVALUATOR_ASSIGNMENT, lambda i: or_(
            EvaluatorAssignment.evaluator_id == i, EvaluatorAssignment.employee_id == i
        )),
        (EntityKind.ROLE_ASSIGNMENT, lambda i: RoleAssignment.user_id == i),
        (EntityKind.EVALUATION, lambda i: or_(Evaluation.evaluator_id == i, Evaluation.employee_id == i)),
    ],
}


# Rows a reactivated entity hangs off; each must be active first.
PARENTS: dict[EntityKind, list[tuple[EntityKind, str]]] = {
    EntityKind.USER: [(EntityKind.DEPARTMENT, "department_id")],
    EntityKind.ROLE_ASSIGNMENT: [(EntityKind.USER, "user_id"), (EntityKind.ROLE, "role_id")],
    EntityKind.EVALUATOR_ASSIGNMENT: [
        (EntityKind.TEAM, "team_id"),
        (EntityKind.USER, "evaluator_id"),
        (EntityKind.USER, "employee_id"),
    ],
    EntityKind.CRITERIA: [(EntityKind.CRITERIA_CATEGORY, "category_id")],
    EntityKind.ROLE_CRITERIA_DESCRIPTION: [(EntityKind.CRITERIA, "criteria_id"), (EntityKind.ROLE, "role_id")],
    EntityKind.SCORE: [(EntityKind.EVALUATION, "evaluation_id")],
    EntityKind.COMMENT: [(EntityKind.SCORE, "score_id")],
}


def _inactive_parent(store: Store, kind: EntityKind, entity) -> tuple[EntityKind, int] | None:
    for parent_kind, fk in PARENTS.get(kind, []):
        parent_id = getattr(entity, fk)
        parent = store.find_by_id(parent_kind, parent_id)
        if parent is None or not parent.is_active:
            return parent_kind, parent_id
    return None


def _is_protected(kind: EntityKind, entity) -> bool:
    return kind is EntityKind.ROLE and entity.is_protected


class CascadeDeactivator:
    def __init__(self, store: Store):
        self.store = store

    def cascade_deactivate(self, root_kind: EntityKind, root_id: int, *, actor_id: int | None = None) -> OpResult:
        dependents_of = CASCADES.get(root_kind)
        if dependents_of is None:
            return OpResult.validation_failed(f"{root_kind.value} cannot be deactivated")

        root = self.store.find_by_id(root_kind, root_id)
        if root is None or not root.is_active:
            return OpResult.invalid_state(f"{root_kind.value} {root_id} not found or already inactive")
        if _is_protected(root_kind, root):
            return OpResult.invalid_state(f"System role '{root.name}' cannot be deactivated")

        dependents = dependents_of(self.store, root_id)
        mutations = mutations_for(dependents, is_active=False)
        mutations.append(Mutation.update(root, is_active=False))
        mutations.append(
            audit_mutation(
                actor_id=actor_id,
                action="CASCADE_DEACTIVATED",
                entity_type=root_kind.value,
                entity_id=root_id,
                metadata={"dependents": len(dependents)},
            )
        )
        self.store.save_atomic(mutations)
        logger.info("%s %s deactivated with %d dependent(s)", root_kind.value, root_id, len(dependents))
        return OpResult.ok(len(dependents))

    def reactivate(self, kind: EntityKind, entity_id: int, *, actor_id: int | None = None) -> OpResult:
        entity = self.store.find_by_id(kind, entity_id)
        if entity is None or not hasattr(entity, "is_active") or entity.is_active:
            return OpResult.invalid_state(f"{kind.value} {entity_id} not found or already active")
        blocked = _inactive_parent(self.store, kind, entity)
        if blocked is not None:
            parent_kind, parent_id = blocked
            return OpResult.invalid_state(
                f"Cannot reactivate {kind.value} {entity_id} while {parent_kind.value} {parent_id} is inactive"
            )

        self.store.save_atomic([
            Mutation.update(entity, is_active=True),
            audit_mutation(
                actor_id=actor_id,
                action="REACTIVATED",
                entity_type=kind.value,
                entity_id=entity_id,
            ),
        ])
        logger.info("%s %s reactivated", kind.value, entity_id)
        return OpResult.ok(entity)

    def hard_delete(self, kind: EntityKind, entity_id: int, *, actor_id: int | None = None) -> OpResult:
        entity = self.store.find_by_id(kind, entity_id)
        if entity is None:
            return OpResult.invalid_state(f"{kind.value} {entity_id} not found")
        if _is_protected(kind, entity):
            return OpResult.invalid_state(f"System role '{entity.name}' cannot be deleted")

        for dep_kind, predicate in BLOCKERS.get(kind, []):
            if self.store.exists(dep_kind, predicate(entity_id)):
                return OpResult.invalid_state(
                    f"{kind.value} {entity_id} still has {dep_kind.value} rows; deactivate instead"
                )

        self.store.save_atomic([
            Mutation.remove(entity),
            audit_mutation(
                actor_id=actor_id,
                action="HARD_DELETED",
                entity_type=kind.value,
                entity_id=entity_id,
            ),
        ])
        logger.info("%s %s hard-deleted", kind.value, entity_id)
        return OpResult.ok()
