"""Cart models for the storefront engine"""

from decimal import Decimal
from pydantic import BaseModel, Field, computed_field, field_validator
from typing import Optional
from datetime import datetime


class CartLine(BaseModel):
    """One product's presence in the cart"""
    product_id: str
    name: str
    image: Optional[str] = None
    unit_price: Decimal = Field(ge=0)
    original_unit_price: Optional[Decimal] = None
    quantity: int = Field(ge=1)
    stock_ceiling: int = Field(ge=1)
    variant: Optional[str] = None

    class Config:
        frozen = True

    @field_validator("product_id", mode="before")
    @classmethod
    def _id_as_str(cls, value):
        if isinstance(value, int):
            return str(value)
        return value

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def line_savings(self) -> Decimal:
        if self.original_unit_price is None:
            return Decimal("0")
        return (self.original_unit_price - self.unit_price) * self.quantity


class CartState(BaseModel):
    """
    Snapshot of the cart as seen by a reader.

    Aggregates are computed from ``lines`` on every access and are never
    stored alongside them.
    """
    lines: tuple[CartLine, ...] = ()
    revision: int = 0

    class Config:
        frozen = True

    @computed_field
    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    @computed_field
    @property
    def subtotal(self) -> Decimal:
        return sum((line.line_total for line in self.lines), Decimal("0"))

    @computed_field
    @property
    def total_savings(self) -> Decimal:
        return sum((line.line_savings for line in self.lines), Decimal("0"))

    @property
    def is_empty(self) -> bool:
        return not self.lines


class AddItemResult(BaseModel):
    """Outcome of adding a product to the cart"""
    line: CartLine
    requested_quantity: int
    granted_quantity: int

    @computed_field
    @property
    def clamped(self) -> bool:
        """True when fewer units were added than requested"""
        return self.granted_quantity < self.requested_quantity


class StoredCart(BaseModel):
    """Serialized cart as kept by a cart storage backend"""
    key: str
    revision: int = 0
    lines: list[CartLine] = []
    updated_at: datetime


class AddToCartRequest(BaseModel):
    """Request to add item to cart"""
    product_id: str
    quantity: int = Field(default=1, gt=0)


class UpdateCartItemRequest(BaseModel):
    """Request to update cart item quantity; zero or less removes the item"""
    quantity: int


class CartResponse(BaseModel):
    """Cart API response"""
    cart: CartState
    message: Optional[str] = None
    clamped: bool = False
