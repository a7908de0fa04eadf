from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BalanceResponse(BaseModel):
    id: int
    product_id: int
    location_id: int
    available: int
    reserved: int
    free: int
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MovementResponse(BaseModel):
    id: int
    product_id: int
    location_id: int
    movement_type: str
    quantity: int
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    notes: Optional[str] = None
    created_by_user_id: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AdjustmentCreate(BaseModel):
    product_id: int
    location_id: int
    delta_qty: int = Field(..., description="Signed change in base units; negative for shrinkage.")
    reason: Optional[str] = None


class AdjustmentResponse(BaseModel):
    balance: BalanceResponse
    movement: MovementResponse


class ReconciliationResponse(BaseModel):
    product_id: int
    location_id: int
    available: int
    reserved: int
    movement_total: int
    difference: int
    is_consistent: bool

    model_config = ConfigDict(from_attributes=True)
