from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, condecimal


DecimalValue = condecimal(max_digits=14, decimal_places=2)


class CartItemCreate(BaseModel):
    sku_id: int
    qty: int = Field(..., gt=0)
    notes: Optional[str] = None


class CartItemUpdate(BaseModel):
    qty: int = Field(..., description="New quantity in sale units; zero or less removes the item.")


class CartItemResponse(BaseModel):
    id: int
    presentation_id: int
    qty_sale_units: int
    unit_price: DecimalValue
    line_subtotal: DecimalValue
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class CartResponse(BaseModel):
    id: int
    customer_id: int
    status: str
    items: List[CartItemResponse] = Field(default_factory=list)
    subtotal: DecimalValue = Decimal("0")


class CartConfirm(BaseModel):
    location_id: int
    shipping_fee: Optional[DecimalValue] = Field(default=None, ge=0)
    discount: Optional[DecimalValue] = Field(default=None, ge=0)
    notes: Optional[str] = None


class CartConfirmResponse(BaseModel):
    order_id: int
    grand_total: DecimalValue
