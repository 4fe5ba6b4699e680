import json
from decimal import Decimal
from typing import Optional

import httpx
import pytest

from storefront.database.carts import InMemoryCartStorage
from storefront.models.checkout import PaymentDetails, ShippingAddress
from storefront.models.product import Product
from storefront.services.cart_store import CartStore
from storefront.services.checkout_session import CheckoutSession
from storefront.services.coupons import CouponEvaluator
from storefront.services.shipping import ShippingPolicy
from storefront.services.store_client import StoreApiClient

STORE_URL = "http://store.test"


class FakeStoreBackend:
    """Stands in for the store API behind an httpx.MockTransport."""

    def __init__(self):
        self.products: dict[str, dict] = {}
        self.orders: list[dict] = []
        # Queued replies for POST /api/orders: httpx.Response or an exception to raise
        self.order_outcomes: list = []
        # When set, order requests wait on this event before answering
        self.gate = None

    def add_product(self, product_id, price, quantity, name=None, compare_at_price=None):
        record = {
            "id": product_id,
            "name": name or f"Product {product_id}",
            "image": f"/images/{product_id}.jpg",
            "price": price,
            "quantity": quantity,
        }
        if compare_at_price is not None:
            record["compareAtPrice"] = compare_at_price
        self.products[str(product_id)] = record
        return record

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path

        if request.method == "GET" and path.startswith("/api/products/"):
            product_id = path.rsplit("/", 1)[-1]
            if product_id not in self.products:
                return httpx.Response(404, json={"detail": "Product not found"})
            return httpx.Response(200, json=self.products[product_id])

        if request.method == "POST" and path == "/api/orders":
            self.orders.append({
                "headers": dict(request.headers),
                "body": json.loads(request.content),
            })
            if self.gate is not None:
                await self.gate.wait()
            if self.order_outcomes:
                outcome = self.order_outcomes.pop(0)
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome
            number = len(self.orders)
            return httpx.Response(201, json={
                "orderId": f"ord-{number}",
                "orderNumber": f"ORD-{number:05d}",
                "status": "pending",
            })

        return httpx.Response(404, json={"detail": "Not found"})


def make_product(
    product_id="1",
    price=10000,
    quantity=3,
    compare_at_price: Optional[int] = None,
    name=None,
) -> Product:
    return Product(
        id=product_id,
        name=name or f"Product {product_id}",
        image=f"/images/{product_id}.jpg",
        price=Decimal(price),
        compare_at_price=Decimal(compare_at_price) if compare_at_price is not None else None,
        quantity=quantity,
    )


@pytest.fixture
def product_factory():
    return make_product


@pytest.fixture
def storage():
    return InMemoryCartStorage()


@pytest.fixture
def cart(storage):
    return CartStore(storage, "session-1")


@pytest.fixture
def backend():
    return FakeStoreBackend()


@pytest.fixture
def store_client(backend):
    return StoreApiClient(STORE_URL, transport=httpx.MockTransport(backend.handler))


@pytest.fixture
def shipping():
    return ShippingPolicy(free_shipping_threshold=Decimal("5000"), flat_fee=Decimal("149"))


@pytest.fixture
def coupons():
    return CouponEvaluator.from_config({
        "SAVE10": {"kind": "percent", "value": 10},
        "FLAT500": {"kind": "fixed", "value": 500, "min_subtotal": 3000},
    })


@pytest.fixture
def checkout(cart, store_client, coupons, shipping):
    return CheckoutSession(
        cart=cart,
        client=store_client,
        coupons=coupons,
        shipping=shipping,
        currency="RWF",
        revalidate_coupon=False,
    )


@pytest.fixture
def address():
    return ShippingAddress(
        first_name="Aline",
        last_name="Uwase",
        email="aline@example.com",
        phone="+250 788 123 456",
        address="KG 7 Ave",
        city="Kigali",
        state="Kigali",
    )


@pytest.fixture
def card():
    return PaymentDetails(
        method="card",
        card_number="4111 1111 1111 1234",
        cardholder_name="Aline Uwase",
        expiry_date="12/29",
        cvv="123",
    )
