from contextlib import asynccontextmanager

from fastapi import FastAPI

from shopdesk.config import Settings, get_settings
from shopdesk.core.logging import setup_logging
from shopdesk.routers import (
    clients_router,
    health_router,
    products_router,
    reports_router,
    sales_router,
)
from shopdesk.storage import Storage, build_storage


def create_app(storage: Storage | None = None, settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    storage = storage if storage is not None else build_storage(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        storage.initialize()
        try:
            yield
        finally:
            storage.close()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.settings = settings
    app.state.storage = storage

    app.include_router(health_router)
    app.include_router(clients_router)
    app.include_router(products_router)
    app.include_router(sales_router)
    app.include_router(reports_router)
    return app


setup_logging()
app = create_app()


__all__ = ["app", "create_app"]
