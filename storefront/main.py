"""
Storefront Engine Application

Serves the cart and checkout engine to storefront pages: one cart and one
checkout session per shopper, priced locally and submitted to the store
backend.
"""

import os
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

# Load environment variables
load_dotenv(os.path.join(os.path.dirname(__file__), "..", "config", ".env"))

from .core.config import Settings, settings as default_settings
from .core.session import SessionManager
from .database.carts import CartStorage, create_cart_storage
from .exceptions import StorefrontError
from .routes import session_router, cart_router, checkout_router
from .services.store_client import StoreApiClient

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if default_settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[CartStorage] = None,
    client: Optional[StoreApiClient] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use (environment settings if omitted)
        storage: Cart storage backend (configured backend if omitted)
        client: Store API client (configured base URL if omitted)
    """
    settings = settings or default_settings
    storage = storage or create_cart_storage(
        settings.cart_storage_backend,
        settings.get_cart_storage_dir(),
    )
    client = client or StoreApiClient(
        base_url=settings.store_api_base_url,
        timeout=settings.store_api_timeout,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events"""
        logger.info("Storefront engine starting up...")
        logger.info(f"Store API: {settings.store_api_base_url}")
        logger.info(f"Cart storage: {settings.cart_storage_backend}")
        yield
        logger.info("Storefront engine shutting down...")
        await client.close()

    app = FastAPI(
        title=settings.app_name,
        description="Cart and checkout engine for the storefront",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store_client = client
    app.state.session_manager = SessionManager(
        storage=storage,
        client=client,
        max_age_hours=settings.session_max_age_hours,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, restrict this
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StorefrontError)
    async def storefront_error_handler(request: Request, exc: StorefrontError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    app.include_router(session_router)
    app.include_router(cart_router)
    app.include_router(checkout_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "service": "storefront-engine"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "storefront.main:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=default_settings.debug,
    )
