"""
Store API Client

HTTP client for the remote product source and order API.
"""

import logging
from typing import Optional, Any

import httpx
from pydantic import ValidationError

from ..exceptions import ProductNotFoundError, StoreApiError
from ..models.checkout import OrderConfirmation, OrderRequest
from ..models.product import Product

logger = logging.getLogger(__name__)


class StoreApiClient:
    """
    Client for the store backend.

    The engine only reads products (to seed cart lines) and creates orders.
    Transport failures surface as ``httpx.HTTPError``; replies that cannot be
    understood surface as ``StoreApiError``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize store client.

        Args:
            base_url: Base URL of the store API
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used to fake the backend)
        """
        self.base_url = base_url.rstrip("/")
        self._http_client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def close(self) -> None:
        """Close HTTP client"""
        await self._http_client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """Make an HTTP request and decode the JSON reply"""
        url = f"{self.base_url}{path}"
        request_headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if headers:
            request_headers.update(headers)

        response = await self._http_client.request(
            method=method,
            url=url,
            headers=request_headers,
            content=body,
        )

        if response.status_code >= 400:
            logger.error(f"Request failed: {method} {path} {response.status_code} - {response.text}")
            response.raise_for_status()

        try:
            return response.json()
        except ValueError:
            raise StoreApiError(
                f"Store API returned a non-JSON reply for {method} {path}",
                upstream_status=response.status_code,
            )

    # ==================== Product APIs ====================

    async def get_product(self, product_id: str) -> Product:
        """Get product details, including current stock"""
        try:
            data = await self._request("GET", f"/api/products/{product_id}")
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise ProductNotFoundError(product_id)
            raise

        try:
            return Product.model_validate(data)
        except ValidationError as e:
            raise StoreApiError(f"Invalid product record for {product_id}: {e}")

    # ==================== Order APIs ====================

    async def create_order(self, order: OrderRequest, idempotency_key: str) -> OrderConfirmation:
        """
        Submit an order.

        The idempotency key identifies one checkout attempt; retries of the
        same attempt reuse it so the backend can refuse to charge twice.
        """
        data = await self._request(
            "POST",
            "/api/orders",
            body=order.model_dump_json(by_alias=True),
            headers={"Idempotency-Key": idempotency_key},
        )

        # Accept both a bare order and an {"data": {"order": ...}} envelope
        if isinstance(data, dict) and isinstance(data.get("data"), dict):
            data = data["data"].get("order", data["data"])

        try:
            return OrderConfirmation.model_validate(data)
        except ValidationError as e:
            raise StoreApiError(f"Invalid order confirmation: {e}")
