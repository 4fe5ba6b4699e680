"""Shopping session routes"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..core.session import SessionManager
from ..exceptions import SessionNotFoundError
from ..models.cart import CartState
from .dependencies import get_session_id, get_session_manager

router = APIRouter(prefix="/api/session", tags=["Session"])


class StartSessionRequest(BaseModel):
    """Request to start a shopping session"""
    user_id: Optional[str] = None


class SessionResponse(BaseModel):
    """Session API response"""
    session_id: str
    user_id: Optional[str] = None
    cart: CartState


@router.post("", response_model=SessionResponse)
async def start_session(
    request: Optional[StartSessionRequest] = None,
    manager: SessionManager = Depends(get_session_manager),
):
    """
    Start a shopping session.

    A logged-in shopper gets back the cart persisted under their user id.
    """
    user_id = request.user_id if request else None
    session = manager.create_session(user_id=user_id)
    return SessionResponse(
        session_id=session.session_id,
        user_id=session.user_id,
        cart=session.cart.get_state(),
    )


@router.delete("")
async def end_session(
    session_id: Optional[str] = Depends(get_session_id),
    manager: SessionManager = Depends(get_session_manager),
):
    """Log out: the cart is cleared, not kept for the next shopper"""
    if not session_id or not manager.end_session(session_id):
        raise SessionNotFoundError(session_id)
    return {"message": "Session ended"}
