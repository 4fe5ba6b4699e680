# Database modules

from .carts import CartStorage, InMemoryCartStorage, FileCartStorage, create_cart_storage

__all__ = [
    "CartStorage",
    "InMemoryCartStorage",
    "FileCartStorage",
    "create_cart_storage",
]
