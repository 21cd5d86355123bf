from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field


class EvaluationOut(BaseModel):
    id: int
    evaluator_id: int
    employee_id: int
    period: str
    status: str
    total_score: Decimal
    is_active: bool
    created_at: datetime
    completed_at: datetime | None


class CreateEvaluationPayload(BaseModel):
    evaluator_id: int = Field(gt=0)
    employee_id: int = Field(gt=0)
    period: str = Field(default="", max_length=100)


class ScoreUpsert(BaseModel):
    criteria_id: int = Field(gt=0)
    # 1..5 range is checked by the lifecycle
    score: int


class ScoreOut(BaseModel):
    id: int
    evaluation_id: int
    criteria_id: int
    score: int
    created_at: datetime


class CommentCreate(BaseModel):
    description: str = Field(max_length=500)


class CommentOut(BaseModel):
    id: int
    score_id: int
    description: str
    created_at: datetime


class CategoryScoreOut(BaseModel):
    category_id: int
    average: Decimal
    weight: Decimal
    count: int


class EvaluationWithScoresOut(EvaluationOut):
    scores: list[ScoreOut]
    categories: list[CategoryScoreOut]
    current_total: Decimal
