"""Session management for shoppers"""

import uuid
import logging
from datetime import datetime, timezone
from typing import Optional
from dataclasses import dataclass

from ..database.carts import CartStorage
from ..exceptions import SessionNotFoundError
from ..services.cart_store import CartStore
from ..services.checkout_session import CheckoutSession
from ..services.coupons import CouponEvaluator
from ..services.shipping import ShippingPolicy
from ..services.store_client import StoreApiClient

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ShoppingSession:
    """One shopper's cart and checkout, wired together"""
    session_id: str
    created_at: datetime
    updated_at: datetime
    cart: CartStore
    checkout: CheckoutSession
    user_id: Optional[str] = None

    def touch(self) -> None:
        self.updated_at = _now()


class SessionManager:
    """
    Creates and tears down shopping sessions.

    A cart is stored under the user id for logged-in shoppers and under the
    session id for guests. Logging out clears the cart rather than handing
    it to whoever logs in next.
    """

    def __init__(
        self,
        storage: CartStorage,
        client: StoreApiClient,
        coupons: Optional[CouponEvaluator] = None,
        shipping: Optional[ShippingPolicy] = None,
        max_age_hours: int = 24,
    ):
        self.storage = storage
        self.client = client
        self.coupons = coupons
        self.shipping = shipping
        self.max_age_hours = max_age_hours
        self.sessions: dict[str, ShoppingSession] = {}

    def create_session(self, user_id: Optional[str] = None) -> ShoppingSession:
        """Create a new session, loading any cart persisted for the shopper"""
        self.cleanup_old_sessions()
        now = _now()
        session_id = str(uuid.uuid4())
        cart = CartStore(self.storage, user_id or session_id)
        checkout = CheckoutSession(
            cart=cart,
            client=self.client,
            coupons=self.coupons,
            shipping=self.shipping,
        )
        session = ShoppingSession(
            session_id=session_id,
            created_at=now,
            updated_at=now,
            cart=cart,
            checkout=checkout,
            user_id=user_id,
        )
        self.sessions[session_id] = session
        logger.info(
            f"Session {session_id} started "
            f"({'user ' + user_id if user_id else 'guest'}, {cart.get_state().item_count} items restored)"
        )
        return session

    def get_session(self, session_id: str) -> Optional[ShoppingSession]:
        """Get session by ID"""
        return self.sessions.get(session_id)

    def require_session(self, session_id: Optional[str]) -> ShoppingSession:
        """Get session by ID or raise SessionNotFoundError"""
        session = self.sessions.get(session_id) if session_id else None
        if session is None:
            raise SessionNotFoundError(session_id)
        session.touch()
        return session

    def end_session(self, session_id: str) -> bool:
        """Log out: clear the cart, forget it in storage and drop the session"""
        session = self.sessions.pop(session_id, None)
        if session is None:
            return False
        session.cart.clear_cart()
        self.storage.delete(session.cart.cart_key)
        logger.info(f"Session {session_id} ended")
        return True

    def cleanup_old_sessions(self, max_age_hours: Optional[int] = None) -> int:
        """Drop in-memory sessions idle for longer than max_age_hours; carts stay persisted"""
        if max_age_hours is None:
            max_age_hours = self.max_age_hours
        now = _now()
        old_sessions = [
            sid for sid, session in self.sessions.items()
            if (now - session.updated_at).total_seconds() > max_age_hours * 3600
        ]
        for sid in old_sessions:
            del self.sessions[sid]
        if old_sessions:
            logger.info(f"Dropped {len(old_sessions)} idle sessions")
        return len(old_sessions)
