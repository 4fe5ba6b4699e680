"""Product models as supplied by the product source"""

from decimal import Decimal
from pydantic import BaseModel, Field, field_validator
from typing import Optional


class Product(BaseModel):
    """Product record from the store API"""
    id: str
    name: str
    image: Optional[str] = None
    price: Decimal = Field(ge=0)
    compare_at_price: Optional[Decimal] = Field(default=None, alias="compareAtPrice")
    # Units in stock
    quantity: int = Field(ge=0, default=0)
    variant: Optional[str] = None

    class Config:
        populate_by_name = True
        from_attributes = True

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value):
        if isinstance(value, int):
            return str(value)
        return value

    @property
    def in_stock(self) -> bool:
        return self.quantity > 0
