from app.routers.health import router as health_router
from app.routers.indicators import router as indicators_router
from app.routers.inventory import router as inventory_router
from app.routers.inventory_public import router as inventory_public_router

__all__ = [
    "health_router",
    "indicators_router",
    "inventory_public_router",
    "inventory_router",
]
