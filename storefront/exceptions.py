"""
Errors raised by the storefront services.

Every error carries a machine-readable ``code``, a human-readable message and
a ``data`` dict with diagnostic context. Routers translate them into HTTP
responses through ``to_http_exception``.
"""

from decimal import Decimal
from typing import Any

from fastapi import HTTPException


class StoreError(Exception):
    code = "STORE_ERROR"
    status_code = 400
    default_message = "Request could not be processed."

    def __init__(self, message: str | None = None, **data: Any):
        self.message = message or self.default_message
        self.data = data
        super().__init__(self.message)

    def as_dict(self) -> dict[str, Any]:
        detail: dict[str, Any] = {"code": self.code, "message": self.message}
        for key, value in self.data.items():
            detail[key] = str(value) if isinstance(value, Decimal) else value
        return detail

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.as_dict())


class ValidationError(StoreError):
    code = "VALIDATION_ERROR"
    default_message = "Invalid request."


class NotFound(StoreError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found."


class Forbidden(StoreError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "Not allowed."


class InvalidTransition(StoreError):
    code = "INVALID_TRANSITION"
    default_message = "Operation not allowed in the current state."


class Conflict(StoreError):
    code = "CONFLICT"
    status_code = 409
    default_message = "Resource already exists."


class StockError(StoreError):
    """Base for stock precondition failures on one (product, location) balance."""

    code = "STOCK_ERROR"
    label = "stock"

    def __init__(self, *, product_id: int, location_id: int, requested: int, available: int):
        shortfall = requested - available
        message = (
            f"Insufficient {self.label} for product {product_id} at location {location_id}: "
            f"available {available}, requested {requested}."
        )
        super().__init__(
            message,
            product_id=product_id,
            location_id=location_id,
            requested=requested,
            available=available,
            shortfall=shortfall,
        )

    @property
    def product_id(self) -> int:
        return self.data["product_id"]

    @property
    def requested(self) -> int:
        return self.data["requested"]

    @property
    def available(self) -> int:
        return self.data["available"]

    @property
    def shortfall(self) -> int:
        return self.data["shortfall"]


class InsufficientStock(StockError):
    code = "INSUFFICIENT_STOCK"
    label = "free stock"


class ReservationShortfall(StockError):
    code = "RESERVATION_SHORTFALL"
    label = "reserved stock"


class PhysicalStockShortfall(StockError):
    code = "PHYSICAL_STOCK_SHORTFALL"
    label = "physical stock"
