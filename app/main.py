from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import Settings, get_settings
from app.core.error_handlers import register_error_handlers
from app.core.logging import setup_logging
from app.database import Base, engine
from app.models import import_all_models
from app.routers import (
    health_router,
    indicators_router,
    inventory_public_router,
    inventory_router,
)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    import_all_models()
    Base.metadata.create_all(bind=engine)
    yield


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    application = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    register_error_handlers(application)

    application.include_router(health_router)
    application.include_router(inventory_router)
    application.include_router(inventory_public_router)
    application.include_router(indicators_router)
    return application


setup_logging()
app = create_app()


__all__ = ["app", "create_app"]
