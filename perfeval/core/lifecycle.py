"""
Evaluation status machine: Draft -> InProgress -> Completed -> Approved.

- InProgress is implicit: the first score written to a Draft moves it there.
- Submit (assigned Evaluator or Admin) requires every required criterion scored.
- Approve is Admin-only and only from Completed.
- Scores and comments are frozen once Approved.
- Deactivated evaluations and scores accept no writes until reactivated.

Every operation first checks visibility through the AccessResolver. An unknown
evaluation and an invisible one both come back as NOT_AUTHORIZED; role and
status guard failures come back as NOT_PERMITTED / INVALID_STATE.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from perfeval.core.access import AccessResolver
from perfeval.core.audit import audit_mutation
from perfeval.core.config import settings
from perfeval.core.errors import OpResult
from perfeval.core.principal import Principal
from perfeval.core.scoring import ScoreAggregator
from perfeval.db.store import EntityKind, Mutation, Store
from perfeval.models import (
    Comment,
    Evaluation,
    EvaluationScore,
    EvaluationStatus,
)

logger = logging.getLogger(__name__)

EDITABLE_STATUSES = frozenset({
    EvaluationStatus.DRAFT.value,
    EvaluationStatus.IN_PROGRESS.value,
    EvaluationStatus.COMPLETED.value,
})
SUBMITTABLE_STATUSES = frozenset({EvaluationStatus.DRAFT.value, EvaluationStatus.IN_PROGRESS.value})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EvaluationLifecycle:
    def __init__(
        self,
        store: Store,
        resolver: AccessResolver | None = None,
        aggregator: ScoreAggregator | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.resolver = resolver or AccessResolver(store)
        self.aggregator = aggregator or ScoreAggregator(store)
        self.clock = clock

    # --- guards ---------------------------------------------------------------

    def _load_visible(self, principal: Principal, evaluation_id: int) -> Evaluation | None:
        evaluation = self.store.find_by_id(EntityKind.EVALUATION, evaluation_id)
        if evaluation is None:
            self.resolver.can_access(principal, EntityKind.EVALUATION, None)
            return None
        if not self.resolver.can_access_entity(principal, EntityKind.EVALUATION, evaluation_id):
            return None
        return evaluation

    @staticmethod
    def _may_mutate(principal: Principal, evaluation: Evaluation) -> bool:
        if principal.is_admin:
            return True
        return principal.is_evaluator and evaluation.evaluator_id == principal.user_id

    # --- creation -------------------------------------------------------------

    def create_evaluation(
        self,
        principal: Principal,
        *,
        evaluator_id: int,
        employee_id: int,
        period: str = "",
    ) -> OpResult:
        if not principal.has_access:
            return OpResult.not_authorized()
        if not (principal.is_admin or principal.is_evaluator):
            return OpResult.not_permitted("Only evaluators and admins can create evaluations")
        if principal.is_evaluator:
            if evaluator_id != principal.user_id:
                return OpResult.not_permitted("Evaluators can only create their own evaluations")
            if not self.resolver.graph.can_evaluate(evaluator_id, employee_id):
                return OpResult.not_authorized()

        for user_id in (evaluator_id, employee_id):
            user = self.store.find_by_id(EntityKind.USER, user_id)
            if user is None or not user.is_active:
                return OpResult.validation_failed(f"User {user_id} not found or inactive")
        if evaluator_id == employee_id:
            return OpResult.validation_failed("An employee cannot evaluate themselves")

        evaluation = Evaluation(
            evaluator_id=evaluator_id,
            employee_id=employee_id,
            period=period,
            status=EvaluationStatus.DRAFT.value,
            created_at=self.clock(),
        )
        self.store.save_atomic([Mutation.insert(evaluation)])
        logger.info("Evaluation %s created for employee %s", evaluation.id, employee_id)
        return OpResult.ok(evaluation)

    # --- scoring --------------------------------------------------------------

    def update_score(self, evaluation_id: int, criteria_id: int, score, principal: Principal) -> OpResult:
        evaluation = self._load_visible(principal, evaluation_id)
        if evaluation is None:
            return OpResult.not_authorized()
        if not self._may_mutate(principal, evaluation):
            return OpResult.not_permitted("Only the assigned evaluator or an admin can score")
        if not evaluation.is_active:
            return OpResult.invalid_state(f"Evaluation {evaluation.id} is inactive")
        if evaluation.status not in EDITABLE_STATUSES:
            return OpResult.invalid_state(f"Evaluation is {evaluation.status}; scores are frozen")

        if isinstance(score, bool) or not isinstance(score, int):
            return OpResult.validation_failed("Score must be an integer")
        if score < settings.SCORE_MIN or score > settings.SCORE_MAX:
            return OpResult.validation_failed(
                f"Score must be between {settings.SCORE_MIN} and {settings.SCORE_MAX}"
            )
        if criteria_id not in self.aggregator.required_criteria_ids():
            return OpResult.validation_failed(f"Criteria {criteria_id} is not active for evaluation")

        existing = self.store.query(
            EntityKind.SCORE,
            EvaluationScore.evaluation_id == evaluation.id,
            EvaluationScore.criteria_id == criteria_id,
        )
        now = self.clock()
        mutations: list[Mutation] = []
        if existing:
            row = existing[0]
            # A deactivated score is only brought back through reactivate.
            if not row.is_active:
                return OpResult.invalid_state(f"Score {row.id} is inactive")
            mutations.append(Mutation.update(row, score=score))
        else:
            row = EvaluationScore(evaluation_id=evaluation.id, criteria_id=criteria_id, score=score, created_at=now)
            mutations.append(Mutation.insert(row))

        if evaluation.status == EvaluationStatus.DRAFT.value:
            mutations.append(Mutation.update(evaluation, status=EvaluationStatus.IN_PROGRESS.value))
            mutations.append(
                audit_mutation(
                    actor_id=principal.user_id,
                    action="EVALUATION_STARTED",
                    entity_type=EntityKind.EVALUATION.value,
                    entity_id=evaluation.id,
                    metadata={"from": EvaluationStatus.DRAFT.value, "to": EvaluationStatus.IN_PROGRESS.value},
                )
            )

        self.store.save_atomic(mutations)
        return OpResult.ok(row)

    def add_comment(self, score_id: int, description: str, principal: Principal) -> OpResult:
        score = self.store.find_by_id(EntityKind.SCORE, score_id)
        if score is None:
            self.resolver.can_access(principal, EntityKind.SCORE, None)
            return OpResult.not_authorized()
        evaluation = self._load_visible(principal, score.evaluation_id)
        if evaluation is None:
            return OpResult.not_authorized()
        if not self._may_mutate(principal, evaluation):
            return OpResult.not_permitted("Only the assigned evaluator or an admin can comment")
        if not evaluation.is_active:
            return OpResult.invalid_state(f"Evaluation {evaluation.id} is inactive")
        if not score.is_active:
            return OpResult.invalid_state(f"Score {score.id} is inactive")
        if evaluation.status not in EDITABLE_STATUSES:
            return OpResult.invalid_state(f"Evaluation is {evaluation.status}; comments are frozen")
        if description is None or not description.strip():
            return OpResult.validation_failed("Comment description cannot be empty")

        comment = Comment(score_id=score.id, description=description.strip(), created_at=self.clock())
        self.store.save_atomic([Mutation.insert(comment)])
        return OpResult.ok(comment)

    # --- transitions ----------------------------------------------------------

    def submit(self, evaluation_id: int, principal: Principal) -> OpResult:
        evaluation = self._load_visible(principal, evaluation_id)
        if evaluation is None:
            return OpResult.not_authorized()
        if not self._may_mutate(principal, evaluation):
            return OpResult.not_permitted("Only the assigned evaluator or an admin can submit")
        if not evaluation.is_active:
            return OpResult.invalid_state(f"Evaluation {evaluation.id} is inactive")
        if evaluation.status not in SUBMITTABLE_STATUSES:
            return OpResult.invalid_state(f"Cannot submit an evaluation that is {evaluation.status}")
        if not self.aggregator.has_all_required_scores(evaluation.id):
            missing = sorted(self.aggregator.missing_criteria_ids(evaluation.id))
            return OpResult.invalid_state(f"Evaluation is missing scores for criteria {missing}")

        total = self.aggregator.total_for_evaluation(evaluation.id)
        old_status = evaluation.status
        self.store.save_atomic([
            Mutation.update(
                evaluation,
                status=EvaluationStatus.COMPLETED.value,
                completed_at=self.clock(),
                total_score=total,
            ),
            audit_mutation(
                actor_id=principal.user_id,
                action="EVALUATION_SUBMITTED",
                entity_type=EntityKind.EVALUATION.value,
                entity_id=evaluation.id,
                metadata={"from": old_status, "to": EvaluationStatus.COMPLETED.value, "total_score": str(total)},
            ),
        ])
        logger.info(
            "Evaluation %s status changed from %s to %s by user %s",
            evaluation.id, old_status, EvaluationStatus.COMPLETED.value, principal.user_id,
        )
        return OpResult.ok(evaluation)

    def approve(self, evaluation_id: int, principal: Principal) -> OpResult:
        evaluation = self._load_visible(principal, evaluation_id)
        if evaluation is None:
            return OpResult.not_authorized()
        if not principal.is_admin:
            return OpResult.not_permitted("Only admins can approve evaluations")
        if not evaluation.is_active:
            return OpResult.invalid_state(f"Evaluation {evaluation.id} is inactive")
        if evaluation.status != EvaluationStatus.COMPLETED.value:
            return OpResult.invalid_state(f"Only Completed evaluations can be approved (is {evaluation.status})")

        self.store.save_atomic([
            Mutation.update(evaluation, status=EvaluationStatus.APPROVED.value),
            audit_mutation(
                actor_id=principal.user_id,
                action="EVALUATION_APPROVED",
                entity_type=EntityKind.EVALUATION.value,
                entity_id=evaluation.id,
                metadata={"from": EvaluationStatus.COMPLETED.value, "to": EvaluationStatus.APPROVED.value},
            ),
        ])
        logger.info("Evaluation %s approved by user %s", evaluation.id, principal.user_id)
        return OpResult.ok(evaluation)
