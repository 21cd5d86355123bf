from decimal import Decimal
from pydantic import BaseModel, Field


class CategoryOut(BaseModel):
    id: int
    name: str
    description: str | None
    weight: Decimal
    is_active: bool


class RebalanceItem(BaseModel):
    category_id: int = Field(gt=0)
    weight: Decimal


class RebalancePayload(BaseModel):
    weights: list[RebalanceItem] = Field(min_length=1)


class WeightValidationOut(BaseModel):
    is_valid: bool
    total_weight: Decimal
