from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, condecimal, model_validator


DecimalValue = condecimal(max_digits=14, decimal_places=2)


class SaleLineCreate(BaseModel):
    sku_id: int
    qty: int = Field(..., gt=0)
    unit_price: Optional[DecimalValue] = Field(default=None, ge=0)


class SaleCreate(BaseModel):
    """Either ``order_id`` (settle a pending order) or ``location_id`` plus ``lines`` (direct sale)."""

    order_id: Optional[int] = None
    location_id: Optional[int] = None
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    sale_date: Optional[date] = None
    payment_terms: str = "CASH"
    tax: Optional[DecimalValue] = Field(default=None, ge=0)
    shipping_fee: Optional[DecimalValue] = Field(default=None, ge=0)
    discount: Optional[DecimalValue] = Field(default=None, ge=0)
    notes: Optional[str] = None
    lines: List[SaleLineCreate] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_shape(self):
        if self.order_id is not None:
            if self.lines:
                raise ValueError("Lines cannot be sent when selling an existing order.")
            return self
        if self.location_id is None or not self.lines:
            raise ValueError("A direct sale requires location_id and at least one line.")
        return self


class SaleLineResponse(BaseModel):
    id: int
    presentation_id: int
    product_id: int
    qty_sale_units: int
    qty_base: int
    unit_price: DecimalValue
    base_unit_price: condecimal(max_digits=14, decimal_places=4)
    is_manual_price: bool
    line_subtotal: DecimalValue

    model_config = ConfigDict(from_attributes=True)


class SaleResponse(BaseModel):
    id: int
    order_id: Optional[int] = None
    customer_id: Optional[int] = None
    location_id: int
    customer_name: Optional[str] = None
    sale_date: date
    subtotal: DecimalValue
    tax: DecimalValue
    shipping_fee: DecimalValue
    discount: DecimalValue
    grand_total: DecimalValue
    payment_terms: str
    payment_status: str
    status: str
    notes: Optional[str] = None
    created_at: datetime
    lines: List[SaleLineResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)
