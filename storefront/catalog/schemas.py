from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, condecimal


DecimalValue = condecimal(max_digits=14, decimal_places=2)


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    brand: Optional[str] = Field(default=None, max_length=100)
    min_stock: int = Field(default=0, ge=0)
    is_active: bool = True


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    brand: Optional[str] = Field(default=None, max_length=100)
    min_stock: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class PresentationBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    barcode: Optional[str] = Field(default=None, max_length=100)
    units_per_sale_unit: int = Field(default=1, ge=1)
    default_sale_price: Optional[DecimalValue] = Field(default=None, ge=0)
    min_price: Optional[DecimalValue] = Field(default=None, ge=0)
    is_active: bool = True


class PresentationCreate(PresentationBase):
    pass


class PresentationUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    barcode: Optional[str] = Field(default=None, max_length=100)
    units_per_sale_unit: Optional[int] = Field(default=None, ge=1)
    default_sale_price: Optional[DecimalValue] = Field(default=None, ge=0)
    min_price: Optional[DecimalValue] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class PresentationResponse(PresentationBase):
    id: int
    product_id: int

    model_config = ConfigDict(from_attributes=True)


class ProductResponse(ProductBase):
    id: int
    created_at: datetime
    presentations: List[PresentationResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class CatalogProductResponse(BaseModel):
    """Storefront view: active presentations only, with the sellable price range."""

    id: int
    name: str
    description: Optional[str] = None
    brand: Optional[str] = None
    price_from: Optional[DecimalValue] = None
    price_to: Optional[DecimalValue] = None
    presentations: List[PresentationResponse]
