"""FastAPI application for the Store Service."""

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from libs.common.config import Settings, get_settings
from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import limiter, rate_limit_exceeded_handler
from services.store_service.routers import (
    admin_orders_router,
    ai_router,
    analytics_router,
    auth_router,
    cart_router,
    catalog_router,
    orders_router,
)
from services.store_service.services.text_generation import TextGenerator
from slowapi.errors import RateLimitExceeded


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the Store Service FastAPI app."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Swaad Sagar Store Service",
        version="0.1.0",
        description="Indian snack store - catalog, cart, Cash on Delivery orders, admin analytics.",
    )

    # Built once; read-only for the life of the process
    app.state.settings = settings
    app.state.text_generator = TextGenerator.from_settings(settings)

    # Add rate limiter state to app
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add observability (structured logging + request tracing)
    add_observability_middleware(app)

    # Add global exception handlers for consistent error responses
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": settings.SERVICE_NAME}

    # Shopper routes
    app.include_router(auth_router)
    app.include_router(catalog_router)
    app.include_router(cart_router)
    app.include_router(orders_router)

    # Staff routes
    app.include_router(admin_orders_router)
    app.include_router(analytics_router)
    app.include_router(ai_router)

    return app


app = create_app()
