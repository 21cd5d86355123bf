"""
Weighted evaluation scoring.

The total is the weight-normalized mean of per-category averages:

    total = sum(avg_c * weight_c) / sum(weight_c)

where the sums run only over categories that actually have scores. A partially
scored evaluation therefore still lands on the 1..5 scale, but it is not
comparable with a fully scored one until every category is represented.
Weights are read at computation time; stored totals are not recomputed when
weights change later.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from sqlalchemy import select

from perfeval.core.config import settings
from perfeval.core.weights import to_decimal
from perfeval.db.store import EntityKind, Store
from perfeval.models import Criteria, CriteriaCategory, EvaluationScore

ZERO = Decimal("0")


@dataclass(frozen=True)
class ScoreInput:
    criteria_id: int
    score: int
    category_id: int
    category_weight: Decimal


@dataclass(frozen=True)
class CategoryBreakdown:
    category_id: int
    average: Decimal
    weight: Decimal
    count: int


def quantize_total(value: Decimal) -> Decimal:
    exp = Decimal(1).scaleb(-settings.TOTAL_SCORE_PLACES)
    return value.quantize(exp, rounding=ROUND_HALF_UP)


class ScoreAggregator:
    def __init__(self, store: Store):
        self.store = store

    @staticmethod
    def category_breakdown(scores: Iterable[ScoreInput]) -> list[CategoryBreakdown]:
        groups: "OrderedDict[int, list[ScoreInput]]" = OrderedDict()
        for s in scores:
            groups.setdefault(s.category_id, []).append(s)

        out: list[CategoryBreakdown] = []
        for category_id, rows in groups.items():
            total = sum((Decimal(r.score) for r in rows), ZERO)
            out.append(
                CategoryBreakdown(
                    category_id=category_id,
                    average=total / Decimal(len(rows)),
                    # every row of a category carries the same current weight
                    weight=to_decimal(rows[0].category_weight),
                    count=len(rows),
                )
            )
        return out

    @classmethod
    def calculate_total(cls, scores: Iterable[ScoreInput]) -> Decimal:
        breakdown = cls.category_breakdown(scores)
        if not breakdown:
            return quantize_total(ZERO)

        weighted = sum((b.average * b.weight for b in breakdown), ZERO)
        weight_sum = sum((b.weight for b in breakdown), ZERO)
        if weight_sum == ZERO:
            return quantize_total(ZERO)
        return quantize_total(weighted / weight_sum)

    def scores_for_evaluation(self, evaluation_id: int) -> list[ScoreInput]:
        """Active scores of the evaluation, each paired with its category's current weight."""
        stmt = (
            select(EvaluationScore, Criteria.category_id, CriteriaCategory.weight)
            .join(Criteria, Criteria.id == EvaluationScore.criteria_id)
            .join(CriteriaCategory, CriteriaCategory.id == Criteria.category_id)
            .where(
                EvaluationScore.evaluation_id == evaluation_id,
                EvaluationScore.is_active.is_(True),
            )
            .order_by(Criteria.category_id, EvaluationScore.criteria_id)
        )
        rows = self.store.rows(stmt)
        return [
            ScoreInput(
                criteria_id=score.criteria_id,
                score=score.score,
                category_id=category_id,
                category_weight=to_decimal(weight),
            )
            for score, category_id, weight in rows
        ]

    def total_for_evaluation(self, evaluation_id: int) -> Decimal:
        return self.calculate_total(self.scores_for_evaluation(evaluation_id))

    def required_criteria_ids(self) -> set[int]:
        """Criteria that are active and sit under an active category."""
        stmt = (
            select(Criteria.id)
            .join(CriteriaCategory, CriteriaCategory.id == Criteria.category_id)
            .where(Criteria.is_active.is_(True), CriteriaCategory.is_active.is_(True))
        )
        return set(self.store.scalars(stmt))

    def scored_criteria_ids(self, evaluation_id: int) -> set[int]:
        stmt = select(EvaluationScore.criteria_id).where(
            EvaluationScore.evaluation_id == evaluation_id,
            EvaluationScore.is_active.is_(True),
        )
        return set(self.store.scalars(stmt))

    def has_all_required_scores(self, evaluation_id: int) -> bool:
        required = self.required_criteria_ids()
        scored = self.scored_criteria_ids(evaluation_id)
        # Scores on since-retired criteria must not stand in for missing ones.
        return len(required & scored) == len(required)

    def missing_criteria_ids(self, evaluation_id: int) -> set[int]:
        return self.required_criteria_ids() - self.scored_criteria_ids(evaluation_id)
