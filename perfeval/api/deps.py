from fastapi import Depends
from sqlalchemy.orm import Session

from perfeval.core.access import AccessResolver
from perfeval.core.cascade import CascadeDeactivator
from perfeval.core.lifecycle import EvaluationLifecycle
from perfeval.core.scoring import ScoreAggregator
from perfeval.core.weights import CategoryWeightValidator
from perfeval.db.session import get_db
from perfeval.db.store import SqlStore


def get_store(db: Session = Depends(get_db)) -> SqlStore:
    return SqlStore(db)


def get_resolver(store: SqlStore = Depends(get_store)) -> AccessResolver:
    return AccessResolver(store)


def get_aggregator(store: SqlStore = Depends(get_store)) -> ScoreAggregator:
    return ScoreAggregator(store)


def get_lifecycle(
    store: SqlStore = Depends(get_store),
    resolver: AccessResolver = Depends(get_resolver),
    aggregator: ScoreAggregator = Depends(get_aggregator),
) -> EvaluationLifecycle:
    return EvaluationLifecycle(store, resolver=resolver, aggregator=aggregator)


def get_weight_validator(store: SqlStore = Depends(get_store)) -> CategoryWeightValidator:
    return CategoryWeightValidator(store)


def get_cascade(store: SqlStore = Depends(get_store)) -> CascadeDeactivator:
    return CascadeDeactivator(store)
