"""
Storage contract consumed by the core engines.

The engines never build sessions or run ad-hoc SQL; they ask the store for
entities by id, for lists restricted by composed predicates (SQLAlchemy boolean
clauses), and hand back a batch of mutations that must land all-or-nothing.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from perfeval.core.errors import UnrecoverableError
from perfeval.models import (
    Comment,
    Criteria,
    CriteriaCategory,
    Department,
    Evaluation,
    EvaluationScore,
    EvaluatorAssignment,
    Role,
    RoleAssignment,
    RoleCriteriaDescription,
    Team,
    User,
)

logger = logging.getLogger(__name__)


class EntityKind(str, enum.Enum):
    DEPARTMENT = "department"
    USER = "user"
    ROLE = "role"
    ROLE_ASSIGNMENT = "role_assignment"
    TEAM = "team"
    EVALUATOR_ASSIGNMENT = "evaluator_assignment"
    CRITERIA_CATEGORY = "criteria_category"
    CRITERIA = "criteria"
    ROLE_CRITERIA_DESCRIPTION = "role_criteria_description"
    EVALUATION = "evaluation"
    SCORE = "score"
    COMMENT = "comment"


MODEL_FOR_KIND: dict[EntityKind, type] = {
    EntityKind.DEPARTMENT: Department,
    EntityKind.USER: User,
    EntityKind.ROLE: Role,
    EntityKind.ROLE_ASSIGNMENT: RoleAssignment,
    EntityKind.TEAM: Team,
    EntityKind.EVALUATOR_ASSIGNMENT: EvaluatorAssignment,
    EntityKind.CRITERIA_CATEGORY: CriteriaCategory,
    EntityKind.CRITERIA: Criteria,
    EntityKind.ROLE_CRITERIA_DESCRIPTION: RoleCriteriaDescription,
    EntityKind.EVALUATION: Evaluation,
    EntityKind.SCORE: EvaluationScore,
    EntityKind.COMMENT: Comment,
}


def model_for(kind: EntityKind) -> type:
    return MODEL_FOR_KIND[kind]


@dataclass
class Mutation:
    """
    A single row change inside an atomic batch.

    - new entity (transient): inserted, then `changes` applied
    - loaded entity: `changes` applied as attribute updates
    - delete=True: row removed
    """
    entity: Any
    changes: dict[str, Any] = field(default_factory=dict)
    delete: bool = False

    @classmethod
    def insert(cls, entity: Any) -> "Mutation":
        return cls(entity=entity)

    @classmethod
    def update(cls, entity: Any, **changes: Any) -> "Mutation":
        return cls(entity=entity, changes=changes)

    @classmethod
    def remove(cls, entity: Any) -> "Mutation":
        return cls(entity=entity, delete=True)


class Store(Protocol):
    def find_by_id(self, kind: EntityKind, entity_id: int) -> Any | None: ...

    def query(self, kind: EntityKind, *predicates, order_by=None) -> list[Any]: ...

    def count(self, kind: EntityKind, *predicates) -> int: ...

    def exists(self, kind: EntityKind, *predicates) -> bool: ...

    def scalars(self, statement) -> list[Any]: ...

    def rows(self, statement) -> list[tuple]: ...

    def save_atomic(self, mutations: Sequence[Mutation]) -> bool: ...


class SqlStore:
    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, kind: EntityKind, entity_id: int) -> Any | None:
        if entity_id is None:
            return None
        return self.db.get(model_for(kind), entity_id)

    def query(self, kind: EntityKind, *predicates, order_by=None) -> list[Any]:
        model = model_for(kind)
        q = self.db.query(model)
        if predicates:
            q = q.filter(*predicates)
        q = q.order_by(order_by if order_by is not None else model.id)
        return q.all()

    def count(self, kind: EntityKind, *predicates) -> int:
        model = model_for(kind)
        stmt = select(func.count()).select_from(model)
        if predicates:
            stmt = stmt.where(*predicates)
        return self.db.execute(stmt).scalar_one()

    def exists(self, kind: EntityKind, *predicates) -> bool:
        return self.count(kind, *predicates) > 0

    def scalars(self, statement) -> list[Any]:
        return list(self.db.execute(statement).scalars().all())

    def rows(self, statement) -> list[tuple]:
        return [tuple(r) for r in self.db.execute(statement).all()]

    def save_atomic(self, mutations: Sequence[Mutation]) -> bool:
        """
        Apply every mutation inside one SAVEPOINT. Any failure rolls the whole
        batch back (objects touched inside it are expired and reload their
        stored state) and surfaces as UnrecoverableError.
        """
        if not mutations:
            return True
        try:
            with self.db.begin_nested():
                for m in mutations:
                    self._apply(m)
                self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Atomic save of %d mutation(s) failed", len(mutations), exc_info=True)
            raise UnrecoverableError("Atomic save failed", cause=e) from e
        return True

    def _apply(self, mutation: Mutation) -> None:
        if mutation.delete:
            self.db.delete(mutation.entity)
            return
        if mutation.entity not in self.db:
            self.db.add(mutation.entity)
        for attr, value in mutation.changes.items():
            setattr(mutation.entity, attr, value)
        self.db.flush()


def mutations_for(entities: Iterable[Any], **changes: Any) -> list[Mutation]:
    return [Mutation.update(e, **changes) for e in entities]
