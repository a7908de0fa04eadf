from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, condecimal


DecimalValue = condecimal(max_digits=14, decimal_places=2)


class PurchaseLineCreate(BaseModel):
    sku_id: int
    qty: int = Field(..., gt=0)
    unit_cost: DecimalValue = Field(..., ge=0)
    reference_price: Optional[DecimalValue] = Field(default=None, ge=0)
    expiry_date: Optional[date] = None


class PurchaseCreate(BaseModel):
    supplier_id: int
    location_id: int
    purchase_date: Optional[date] = Field(default=None, alias="date")
    document_number: Optional[str] = None
    tax: Optional[DecimalValue] = Field(default=None, ge=0)
    extra_costs: Optional[DecimalValue] = Field(default=None, ge=0)
    notes: Optional[str] = None
    lines: List[PurchaseLineCreate] = Field(..., min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class PurchaseLineResponse(BaseModel):
    id: int
    presentation_id: int
    product_id: int
    qty_sale_units: int
    qty_base: int
    unit_cost: DecimalValue
    base_unit_cost: condecimal(max_digits=14, decimal_places=4)
    line_subtotal: DecimalValue
    reference_price: Optional[DecimalValue] = None
    expiry_date: Optional[date] = None

    model_config = ConfigDict(from_attributes=True)


class PurchaseResponse(BaseModel):
    id: int
    supplier_id: int
    location_id: int
    purchase_date: date
    document_number: Optional[str] = None
    subtotal: DecimalValue
    tax: DecimalValue
    extra_costs: DecimalValue
    total: DecimalValue
    notes: Optional[str] = None
    created_at: datetime
    lines: List[PurchaseLineResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)
