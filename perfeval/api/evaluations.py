from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from perfeval.api.deps import get_aggregator, get_lifecycle, get_resolver, get_store
from perfeval.core.access import AccessResolver
from perfeval.core.http_errors import raise_for_result
from perfeval.core.lifecycle import EvaluationLifecycle
from perfeval.core.principal import Principal
from perfeval.core.scoring import ScoreAggregator
from perfeval.core.security import get_current_principal
from perfeval.db.session import get_db
from perfeval.db.store import EntityKind, SqlStore
from perfeval.models import Comment, Evaluation, EvaluationScore
from perfeval.schemas.evaluation import (
    CategoryScoreOut,
    CommentCreate,
    CommentOut,
    CreateEvaluationPayload,
    EvaluationOut,
    EvaluationWithScoresOut,
    ScoreOut,
    ScoreUpsert,
)
from perfeval.schemas.pagination import PaginatedResponse, PaginationMeta

router = APIRouter(tags=["evaluations"])


def eval_to_out(e: Evaluation) -> EvaluationOut:
    return EvaluationOut(
        id=e.id,
        evaluator_id=e.evaluator_id,
        employee_id=e.employee_id,
        period=e.period,
        status=e.status,
        total_score=e.total_score,
        is_active=e.is_active,
        created_at=e.created_at,
        completed_at=e.completed_at,
    )


def score_to_out(s: EvaluationScore) -> ScoreOut:
    return ScoreOut(
        id=s.id,
        evaluation_id=s.evaluation_id,
        criteria_id=s.criteria_id,
        score=s.score,
        created_at=s.created_at,
    )


def comment_to_out(c: Comment) -> CommentOut:
    return CommentOut(id=c.id, score_id=c.score_id, description=c.description, created_at=c.created_at)


@router.get("/evaluations")
def list_evaluations(
    status: str | None = Query(default=None, description="Filter by status (Draft, InProgress, Completed, Approved)"),
    employee_id: int | None = Query(default=None, description="Filter by employee ID"),
    include_inactive: bool = Query(default=False),
    limit: int = Query(default=100, ge=1, le=500, description="Maximum number of results"),
    offset: int = Query(default=0, ge=0, description="Number of results to skip"),
    include_pagination: bool = Query(default=False, description="Include pagination metadata"),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    resolver: AccessResolver = Depends(get_resolver),
):
    """
    List the evaluations visible to the caller.
    Admins see everything; evaluators see their own and their teams'; employees see their own.
    """
    query = db.query(Evaluation).filter(resolver.scope_filter(principal, EntityKind.EVALUATION))

    if status:
        query = query.filter(Evaluation.status == status)
    if employee_id:
        query = query.filter(Evaluation.employee_id == employee_id)
    if not include_inactive:
        query = query.filter(Evaluation.is_active.is_(True))

    total = query.count()
    rows = query.order_by(Evaluation.created_at.desc(), Evaluation.id.desc()).offset(offset).limit(limit).all()
    items = [eval_to_out(e) for e in rows]

    if include_pagination:
        return PaginatedResponse(
            items=items,
            pagination=PaginationMeta(
                total=total,
                limit=limit,
                offset=offset,
                has_more=(offset + len(items) < total),
            ),
        )
    return items


@router.get("/evaluations/{evaluation_id}", response_model=EvaluationWithScoresOut)
def get_evaluation(
    evaluation_id: int,
    principal: Principal = Depends(get_current_principal),
    store: SqlStore = Depends(get_store),
    resolver: AccessResolver = Depends(get_resolver),
    aggregator: ScoreAggregator = Depends(get_aggregator),
):
    if not resolver.can_access_entity(principal, EntityKind.EVALUATION, evaluation_id):
        raise HTTPException(status_code=404, detail="Evaluation not found")

    e = store.find_by_id(EntityKind.EVALUATION, evaluation_id)
    scores = store.query(
        EntityKind.SCORE,
        EvaluationScore.evaluation_id == e.id,
        EvaluationScore.is_active.is_(True),
    )
    inputs = aggregator.scores_for_evaluation(e.id)
    return EvaluationWithScoresOut(
        **eval_to_out(e).model_dump(),
        scores=[score_to_out(s) for s in scores],
        categories=[
            CategoryScoreOut(category_id=b.category_id, average=b.average, weight=b.weight, count=b.count)
            for b in aggregator.category_breakdown(inputs)
        ],
        current_total=aggregator.calculate_total(inputs),
    )


@router.post("/evaluations", response_model=EvaluationOut, status_code=201)
def create_evaluation(
    payload: CreateEvaluationPayload,
    principal: Principal = Depends(get_current_principal),
    lifecycle: EvaluationLifecycle = Depends(get_lifecycle),
):
    result = raise_for_result(
        lifecycle.create_evaluation(
            principal,
            evaluator_id=payload.evaluator_id,
            employee_id=payload.employee_id,
            period=payload.period,
        )
    )
    return eval_to_out(result.value)


@router.put("/evaluations/{evaluation_id}/scores", response_model=ScoreOut)
def upsert_score(
    evaluation_id: int,
    payload: ScoreUpsert,
    principal: Principal = Depends(get_current_principal),
    lifecycle: EvaluationLifecycle = Depends(get_lifecycle),
):
    result = raise_for_result(lifecycle.update_score(evaluation_id, payload.criteria_id, payload.score, principal))
    return score_to_out(result.value)


@router.post("/scores/{score_id}/comments", response_model=CommentOut, status_code=201)
def add_comment(
    score_id: int,
    payload: CommentCreate,
    principal: Principal = Depends(get_current_principal),
    lifecycle: EvaluationLifecycle = Depends(get_lifecycle),
):
    result = raise_for_result(lifecycle.add_comment(score_id, payload.description, principal))
    return comment_to_out(result.value)


@router.post("/evaluations/{evaluation_id}/submit", response_model=EvaluationOut)
def submit_evaluation(
    evaluation_id: int,
    principal: Principal = Depends(get_current_principal),
    lifecycle: EvaluationLifecycle = Depends(get_lifecycle),
):
    result = raise_for_result(lifecycle.submit(evaluation_id, principal))
    return eval_to_out(result.value)


@router.post("/evaluations/{evaluation_id}/approve", response_model=EvaluationOut)
def approve_evaluation(
    evaluation_id: int,
    principal: Principal = Depends(get_current_principal),
    lifecycle: EvaluationLifecycle = Depends(get_lifecycle),
):
    result = raise_for_result(lifecycle.approve(evaluation_id, principal))
    return eval_to_out(result.value)
