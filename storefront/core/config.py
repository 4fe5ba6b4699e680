"""Storefront Engine Configuration"""

import os
from decimal import Decimal
from typing import Literal, Optional
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment"""

    # Application
    app_name: str = "Storefront Engine"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # Store API (product source + order API)
    store_api_base_url: str = "http://localhost:8001"
    store_api_timeout: float = 30.0

    # Money
    currency: str = "RWF"
    currency_decimals: int = 0

    # Shipping policy
    free_shipping_threshold: Decimal = Decimal("5000")
    flat_shipping_fee: Decimal = Decimal("149")

    # Coupons: code -> {"kind": "percent" | "fixed", "value": ..., "min_subtotal": ...}
    coupon_rules: dict[str, dict] = {
        "SAVE10": {"kind": "percent", "value": 10},
    }
    revalidate_coupon_on_checkout: bool = False

    # Cart persistence
    cart_storage_backend: Literal["memory", "file"] = "memory"
    cart_storage_dir: str = ".carts"

    # Sessions
    session_max_age_hours: int = 24

    class Config:
        env_file = os.path.join(os.path.dirname(__file__), "..", "..", "config", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False

    def get_cart_storage_dir(self) -> Optional[str]:
        """Cart storage directory, only meaningful for the file backend"""
        if self.cart_storage_backend != "file":
            return None
        return os.path.abspath(self.cart_storage_dir)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
