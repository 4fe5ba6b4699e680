"""Checkout models for the storefront engine"""

import re
from decimal import Decimal
from pydantic import AliasChoices, BaseModel, Field, PlainSerializer, computed_field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import Annotated, Optional
from datetime import datetime
from enum import Enum

from .cart import CartLine

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
EXPIRY_PATTERN = re.compile(r"^\d{2}/\d{2}$")

# Money goes over the wire as a JSON number
WireMoney = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CheckoutState(str, Enum):
    IDLE = "idle"
    REVIEWING = "reviewing"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    CARD = "card"
    PAYPAL = "paypal"
    MOBILE_MONEY = "mobile_money"
    CASH_ON_DELIVERY = "cash_on_delivery"


class ShippingAddress(BaseModel):
    """Destination (or billing) address for an order"""
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: str
    phone: str
    address: str = Field(min_length=1)
    address2: Optional[str] = None
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    postal_code: Optional[str] = None
    country: str = Field(default="Rwanda", min_length=1)

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        str_strip_whitespace = True

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if not EMAIL_PATTERN.match(value):
            raise ValueError("Please enter a valid email address")
        return value

    @field_validator("phone")
    @classmethod
    def _check_phone(cls, value: str) -> str:
        digits = re.sub(r"[^0-9]", "", value)
        if not 7 <= len(digits) <= 15:
            raise ValueError("Please enter a valid phone number")
        return value


class PaymentDetails(BaseModel):
    """Payment selection collected during checkout"""
    method: PaymentMethod = PaymentMethod.CARD
    card_number: Optional[str] = Field(default=None, repr=False)
    cardholder_name: Optional[str] = None
    expiry_date: Optional[str] = None
    cvv: Optional[str] = Field(default=None, repr=False)

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        str_strip_whitespace = True

    @model_validator(mode="after")
    def _check_card(self):
        if self.method != PaymentMethod.CARD:
            return self

        missing = [
            name for name in ("card_number", "cardholder_name", "expiry_date", "cvv")
            if not getattr(self, name)
        ]
        if missing:
            raise ValueError(f"Please fill in all required payment fields: {', '.join(missing)}")
        if len(re.sub(r"\D", "", self.card_number)) < 16:
            raise ValueError("Please enter a valid card number")
        if not EXPIRY_PATTERN.match(self.expiry_date):
            raise ValueError("Please enter expiry date in MM/YY format")
        if len(self.cvv) < 3 or not self.cvv.isdigit():
            raise ValueError("Please enter a valid CVV")
        return self

    @property
    def last_four(self) -> Optional[str]:
        if not self.card_number:
            return None
        return re.sub(r"\D", "", self.card_number)[-4:]

    def to_order_details(self) -> dict:
        """Details safe to send to the order API (never the full card or CVV)"""
        if self.method != PaymentMethod.CARD:
            return {}
        return {
            "cardLastFour": self.last_four,
            "cardholderName": self.cardholder_name,
            "expiryDate": self.expiry_date,
        }


class CouponResult(BaseModel):
    """Result of evaluating a coupon code"""
    code: str
    accepted: bool
    discount_amount: Decimal = Decimal("0")


class CouponApplication(BaseModel):
    """The coupon currently applied to a checkout attempt"""
    code: str
    discount_amount: Decimal

    class Config:
        frozen = True


class OrderTotals(BaseModel):
    """Priced summary of a set of cart lines"""
    subtotal: Decimal
    savings: Decimal
    discount: Decimal
    shipping_fee: Decimal
    grand_total: Decimal
    currency: str
    coupon_code: Optional[str] = None
    free_shipping_remaining: Decimal = Decimal("0")

    class Config:
        frozen = True

    @computed_field
    @property
    def total_saved(self) -> Decimal:
        """Sale savings plus coupon discount"""
        return self.savings + self.discount


class CheckoutSnapshot(BaseModel):
    """Immutable copy of the cart and its prices taken when checkout begins"""
    lines: tuple[CartLine, ...]
    subtotal: Decimal
    savings: Decimal
    discount: Decimal
    coupon_code: Optional[str] = None
    shipping_fee: Decimal
    grand_total: Decimal
    currency: str
    taken_at: datetime

    class Config:
        frozen = True

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)


class OrderLine(BaseModel):
    """Line of an order submission"""
    product_id: str
    name: str
    quantity: int
    unit_price: WireMoney
    line_total: WireMoney
    variant: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class OrderRequest(BaseModel):
    """Body of the order submission sent to the order API"""
    lines: list[OrderLine]
    subtotal: WireMoney
    discount: WireMoney
    shipping_fee: WireMoney
    grand_total: WireMoney
    currency: str
    coupon_code: Optional[str] = None
    address: ShippingAddress
    billing_address: ShippingAddress
    payment_method: PaymentMethod
    payment_details: dict = {}

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class OrderConfirmation(BaseModel):
    """Order API reply for an accepted order"""
    order_id: str = Field(validation_alias=AliasChoices("orderId", "order_id", "id"))
    order_number: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("orderNumber", "order_number")
    )
    status: Optional[str] = None

    @field_validator("order_id", mode="before")
    @classmethod
    def _id_as_str(cls, value):
        if isinstance(value, int):
            return str(value)
        return value


class ApplyCouponRequest(BaseModel):
    """Request to apply a coupon code"""
    code: str


class CheckoutDetailsRequest(BaseModel):
    """Address and payment collected while reviewing"""
    shipping_address: ShippingAddress
    billing_address: Optional[ShippingAddress] = None
    payment: PaymentDetails


class CheckoutResponse(BaseModel):
    """Checkout API response"""
    state: CheckoutState
    snapshot: Optional[CheckoutSnapshot] = None
    totals: Optional[OrderTotals] = None
    coupon: Optional[CouponApplication] = None
    confirmation: Optional[OrderConfirmation] = None
    last_error: Optional[str] = None
    message: Optional[str] = None
