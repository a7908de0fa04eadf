from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, condecimal


DecimalValue = condecimal(max_digits=14, decimal_places=2)


class ConsignmentLineCreate(BaseModel):
    sku_id: int
    qty: int = Field(..., gt=0)
    unit_price: Optional[DecimalValue] = Field(default=None, ge=0)


class ConsignmentCreate(BaseModel):
    location_id: int
    customer_id: Optional[int] = None
    ship_date: Optional[date] = None
    notes: Optional[str] = None
    lines: List[ConsignmentLineCreate] = Field(..., min_length=1)


class ConsignmentClose(BaseModel):
    notes: Optional[str] = None


class ConsignmentLineResponse(BaseModel):
    id: int
    presentation_id: int
    product_id: int
    qty_sale_units: int
    qty_base: int
    estimated_unit_price: DecimalValue
    estimated_subtotal: DecimalValue

    model_config = ConfigDict(from_attributes=True)


class ConsignmentResponse(BaseModel):
    id: int
    customer_id: Optional[int] = None
    location_id: int
    ship_date: date
    status: str
    estimated_subtotal: DecimalValue
    notes: Optional[str] = None
    created_at: datetime
    lines: List[ConsignmentLineResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)
