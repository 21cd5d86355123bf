"""
Category weight bookkeeping.

Active category weights are meant to sum to 100. That is only checked on demand
(`validate`) and by `rebalance`, which refuses any batch whose end state would
break it. Plain category edits can leave a transient imbalance; validation
reports it and never corrects it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from perfeval.core.audit import audit_mutation
from perfeval.core.config import settings
from perfeval.core.errors import OpResult
from perfeval.db.store import EntityKind, Mutation, Store
from perfeval.models import CriteriaCategory

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")
MIN_WEIGHT = Decimal("0.01")


@dataclass(frozen=True)
class WeightValidation:
    is_valid: bool
    total_weight: Decimal


@dataclass(frozen=True)
class WeightRequest:
    category_id: int
    new_weight: Decimal


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so floats keep their printed value instead of binary noise
    return Decimal(str(value))


def is_hundred(total: Decimal) -> bool:
    return abs(total - HUNDRED) < settings.WEIGHT_TOLERANCE


def _coerce_request(raw: WeightRequest | Mapping[str, Any] | tuple) -> WeightRequest:
    if isinstance(raw, WeightRequest):
        return WeightRequest(raw.category_id, to_decimal(raw.new_weight))
    if isinstance(raw, Mapping):
        weight = raw.get("new_weight", raw.get("weight"))
        return WeightRequest(int(raw["category_id"]), to_decimal(weight))
    category_id, weight = raw
    return WeightRequest(int(category_id), to_decimal(weight))


class CategoryWeightValidator:
    def __init__(self, store: Store):
        self.store = store

    def _active_categories(self) -> list[CriteriaCategory]:
        return self.store.query(EntityKind.CRITERIA_CATEGORY, CriteriaCategory.is_active.is_(True))

    def total_active_weight(self) -> Decimal:
        return sum((to_decimal(c.weight) for c in self._active_categories()), Decimal("0"))

    def validate(self) -> WeightValidation:
        total = self.total_active_weight()
        return WeightValidation(is_valid=is_hundred(total), total_weight=total)

    def rebalance(self, requests: Iterable, *, actor_id: int | None = None) -> OpResult:
        """
        Apply every requested weight as one atomic unit, or nothing.

        The batch is checked against the state it would produce: all active
        categories, with requested weights substituted, must sum to 100.
        """
        try:
            batch = [_coerce_request(r) for r in requests]
        except (KeyError, TypeError, ValueError, InvalidOperation):
            return OpResult.validation_failed("Malformed weight request")

        if not batch:
            return OpResult.validation_failed("No weights supplied")

        new_weights: dict[int, Decimal] = {}
        for req in batch:
            if req.new_weight < MIN_WEIGHT or req.new_weight > HUNDRED:
                return OpResult.validation_failed(
                    f"Weight for category {req.category_id} must be between {MIN_WEIGHT} and {HUNDRED}"
                )
            new_weights[req.category_id] = req.new_weight

        targets: dict[int, CriteriaCategory] = {}
        for category_id in new_weights:
            category = self.store.find_by_id(EntityKind.CRITERIA_CATEGORY, category_id)
            if category is None:
                return OpResult.validation_failed(f"Category {category_id} not found")
            targets[category_id] = category

        projected = sum(
            (new_weights.get(c.id, to_decimal(c.weight)) for c in self._active_categories()),
            Decimal("0"),
        )
        if not is_hundred(projected):
            logger.info("Weight rebalance rejected: projected total %s", projected)
            return OpResult.validation_failed(f"Active category weights would total {projected}, expected 100")

        mutations = [Mutation.update(targets[cid], weight=w) for cid, w in new_weights.items()]
        mutations.append(
            audit_mutation(
                actor_id=actor_id,
                action="WEIGHTS_REBALANCED",
                entity_type=EntityKind.CRITERIA_CATEGORY.value,
                entity_id=batch[0].category_id,
                metadata={"weights": {str(cid): str(w) for cid, w in new_weights.items()}},
            )
        )
        self.store.save_atomic(mutations)
        logger.info("Category weights rebalanced for %d categories", len(new_weights))
        return OpResult.ok(self.validate())
