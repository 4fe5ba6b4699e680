"""Cart persistence for the storefront engine"""

import os
import hashlib
import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from ..models.cart import CartLine, StoredCart

logger = logging.getLogger(__name__)


class CartStorage:
    """
    Key/value store for serialized carts.

    Keys are the shopper identity (user id when logged in, session id
    otherwise). Every write bumps a revision counter. Concurrent writers
    (two tabs on the same cart) resolve as last writer wins; a write based on
    an older revision than the stored one is logged and still applied.
    """

    def load(self, key: str) -> Optional[StoredCart]:
        """Load a stored cart, or None if nothing is stored under key"""
        raw = self._read(key)
        if raw is None:
            return None
        return StoredCart.model_validate_json(raw)

    def save(self, key: str, lines: Iterable[CartLine], base_revision: int) -> StoredCart:
        """
        Store cart lines under key.

        Args:
            key: Shopper identity
            lines: Cart lines in display order
            base_revision: Revision the writer last loaded or wrote

        Returns:
            The stored cart with its new revision
        """
        current = self.load(key)
        current_revision = current.revision if current else 0

        if current_revision > base_revision:
            logger.warning(
                f"Stale cart write for {key}: based on revision {base_revision}, "
                f"stored revision is {current_revision}; overwriting"
            )

        stored = StoredCart(
            key=key,
            revision=max(current_revision, base_revision) + 1,
            lines=list(lines),
            updated_at=datetime.now(timezone.utc),
        )
        self._write(key, stored.model_dump_json())
        return stored

    def delete(self, key: str) -> bool:
        """Delete a stored cart"""
        return self._delete(key)

    def _read(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def _write(self, key: str, payload: str) -> None:
        raise NotImplementedError

    def _delete(self, key: str) -> bool:
        raise NotImplementedError


class InMemoryCartStorage(CartStorage):
    """In-memory cart storage"""

    def __init__(self):
        # Serialized payloads so readers never share line objects with writers
        self.carts: dict[str, str] = {}

    def _read(self, key: str) -> Optional[str]:
        return self.carts.get(key)

    def _write(self, key: str, payload: str) -> None:
        self.carts[key] = payload

    def _delete(self, key: str) -> bool:
        if key in self.carts:
            del self.carts[key]
            return True
        return False


class FileCartStorage(CartStorage):
    """Cart storage backed by one JSON file per shopper"""

    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def _path(self, key: str) -> str:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return os.path.join(self.directory, f"cart-{digest}.json")

    def _read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def _write(self, key: str, payload: str) -> None:
        path = self._path(key)
        tmp_path = f"{path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_path, path)

    def _delete(self, key: str) -> bool:
        path = self._path(key)
        if os.path.exists(path):
            os.remove(path)
            return True
        return False


def create_cart_storage(backend: str = "memory", directory: Optional[str] = None) -> CartStorage:
    """Build the configured cart storage backend"""
    if backend == "file":
        if not directory:
            raise ValueError("File cart storage requires a directory")
        logger.info(f"Using file cart storage in {directory}")
        return FileCartStorage(directory)
    if backend == "memory":
        return InMemoryCartStorage()
    raise ValueError(f"Unknown cart storage backend: {backend}")
