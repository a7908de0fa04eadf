from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, condecimal, model_validator


DecimalValue = condecimal(max_digits=14, decimal_places=2)


class OrderLineCreate(BaseModel):
    sku_id: int
    qty: int = Field(..., gt=0)
    unit_price: Optional[DecimalValue] = Field(default=None, ge=0, description="Honored for staff only.")


class OrderCreate(BaseModel):
    location_id: int
    customer_id: Optional[int] = None
    delivery_type: Literal["PICKUP", "HOME_DELIVERY"] = "PICKUP"
    address: Optional[str] = None
    invoice_required: bool = False
    invoice_nit: Optional[str] = None
    invoice_name: Optional[str] = None
    shipping_fee: Optional[DecimalValue] = Field(default=None, ge=0)
    discount: Optional[DecimalValue] = Field(default=None, ge=0)
    customer_notes: Optional[str] = None
    internal_notes: Optional[str] = None
    lines: List[OrderLineCreate] = Field(..., min_length=1)

    @model_validator(mode="after")
    def validate_unique_presentations(self):
        seen = set()
        for line in self.lines:
            if line.sku_id in seen:
                raise ValueError(f"Presentation {line.sku_id} appears more than once.")
            seen.add(line.sku_id)
        return self


class OrderLineResponse(BaseModel):
    id: int
    presentation_id: int
    product_id: int
    qty_sale_units: int
    units_per_sale_unit: int
    qty_base: int
    unit_price: DecimalValue
    price_origin: str
    line_subtotal: DecimalValue

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    id: int
    customer_id: Optional[int] = None
    location_id: int
    source: str
    status: str
    order_date: date
    delivery_type: str
    delivery_address: Optional[str] = None
    invoice_required: bool
    invoice_nit: str
    invoice_name: Optional[str] = None
    subtotal: DecimalValue
    shipping_fee: DecimalValue
    discount: DecimalValue
    grand_total: DecimalValue
    customer_notes: Optional[str] = None
    created_at: datetime
    lines: List[OrderLineResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)
