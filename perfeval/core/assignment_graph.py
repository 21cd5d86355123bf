"""
Read-only view over evaluator/employee/team assignment rows.

Reachability is recomputed on every call and never cached: assignments are
toggled independently per team, and a stale answer could widen access. Every
lookup is scoped by the principal's id first so the cost is proportional to that
principal's own assignments, not to the whole table.
"""

from __future__ import annotations

from sqlalchemy import Select, select

from perfeval.db.store import EntityKind, Store
from perfeval.models import EvaluatorAssignment


class AssignmentGraph:
    def __init__(self, store: Store):
        self.store = store

    def teams_of(self, evaluator_id: int) -> set[int]:
        """Teams where the user sits on the evaluator side of an active row."""
        stmt = select(EvaluatorAssignment.team_id).where(
            EvaluatorAssignment.evaluator_id == evaluator_id,
            EvaluatorAssignment.is_active.is_(True),
        )
        return set(self.store.scalars(stmt))

    def teams_as_employee(self, employee_id: int) -> set[int]:
        stmt = select(EvaluatorAssignment.team_id).where(
            EvaluatorAssignment.employee_id == employee_id,
            EvaluatorAssignment.is_active.is_(True),
        )
        return set(self.store.scalars(stmt))

    def is_teammate(self, evaluator_id: int, employee_id: int | None) -> bool:
        if employee_id is None:
            return False
        teams = self.teams_of(evaluator_id)
        if not teams:
            return False
        return self.store.exists(
            EntityKind.EVALUATOR_ASSIGNMENT,
            EvaluatorAssignment.employee_id == employee_id,
            EvaluatorAssignment.team_id.in_(teams),
            EvaluatorAssignment.is_active.is_(True),
        )

    def directly_assigned(self, evaluator_id: int, employee_id: int | None) -> bool:
        if employee_id is None:
            return False
        return self.store.exists(
            EntityKind.EVALUATOR_ASSIGNMENT,
            EvaluatorAssignment.evaluator_id == evaluator_id,
            EvaluatorAssignment.employee_id == employee_id,
            EvaluatorAssignment.is_active.is_(True),
        )

    def is_reachable(self, evaluator_id: int, employee_id: int | None) -> bool:
        return self.directly_assigned(evaluator_id, employee_id) or self.is_teammate(evaluator_id, employee_id)

    # An evaluation may only be opened on a directly assigned employee.
    can_evaluate = directly_assigned

    def employees_of(self, evaluator_id: int) -> set[int]:
        teams = self.teams_of(evaluator_id)
        if not teams:
            return set()
        stmt = select(EvaluatorAssignment.employee_id).where(
            EvaluatorAssignment.team_id.in_(teams),
            EvaluatorAssignment.is_active.is_(True),
        )
        return set(self.store.scalars(stmt))

    def reachable_employee_ids(self, evaluator_id: int) -> Select:
        """
        Correlatable subquery of employee ids reachable from the evaluator, for
        use inside list-scope predicates.
        """
        return select(EvaluatorAssignment.employee_id).where(
            EvaluatorAssignment.team_id.in_(self.evaluator_team_ids(evaluator_id)),
            EvaluatorAssignment.is_active.is_(True),
        )

    def evaluator_team_ids(self, evaluator_id: int) -> Select:
        return select(EvaluatorAssignment.team_id).where(
            EvaluatorAssignment.evaluator_id == evaluator_id,
            EvaluatorAssignment.is_active.is_(True),
        )

    def employee_team_ids(self, employee_id: int) -> Select:
        return select(EvaluatorAssignment.team_id).where(
            EvaluatorAssignment.employee_id == employee_id,
            EvaluatorAssignment.is_active.is_(True),
        )
