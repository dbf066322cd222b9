"""Store service routers package."""

from services.store_service.routers.admin_orders import router as admin_orders_router
from services.store_service.routers.ai import router as ai_router
from services.store_service.routers.analytics import router as analytics_router
from services.store_service.routers.auth import router as auth_router
from services.store_service.routers.cart import router as cart_router
from services.store_service.routers.catalog import router as catalog_router
from services.store_service.routers.orders import router as orders_router

__all__ = [
    "admin_orders_router",
    "ai_router",
    "analytics_router",
    "auth_router",
    "cart_router",
    "catalog_router",
    "orders_router",
]
