"""Request dependencies shared by the API routes"""

from typing import Optional

from fastapi import Depends, Header, Request

from ..core.session import SessionManager, ShoppingSession
from ..services.store_client import StoreApiClient


def get_session_manager(request: Request) -> SessionManager:
    """Session manager created by the application factory"""
    return request.app.state.session_manager


def get_store_client(request: Request) -> StoreApiClient:
    """Store API client created by the application factory"""
    return request.app.state.store_client


def get_session_id(x_session_id: Optional[str] = Header(None)) -> Optional[str]:
    """Extract session ID from header"""
    return x_session_id


def current_session(
    session_id: Optional[str] = Depends(get_session_id),
    manager: SessionManager = Depends(get_session_manager),
) -> ShoppingSession:
    """Resolve the caller's shopping session (404 if unknown)"""
    return manager.require_session(session_id)
