from shopdesk.storage.base import (
    DailySummary,
    SaleHeader,
    SaleItemRow,
    SaleLine,
    Storage,
)
from shopdesk.storage.memory import InMemoryStorage
from shopdesk.storage.sql import SqlStorage


def build_storage(settings):
    """Pick the store named by ``STORAGE_BACKEND``."""
    backend = settings.STORAGE_BACKEND.strip().lower()
    if backend == "memory":
        return InMemoryStorage(stamp_order_on_create=settings.CLIENT_STAMP_ORDER_ON_CREATE)
    if backend == "database":
        return SqlStorage(
            database_url=settings.DATABASE_URL,
            stamp_order_on_create=settings.CLIENT_STAMP_ORDER_ON_CREATE,
        )
    raise ValueError("Unknown STORAGE_BACKEND: {}".format(settings.STORAGE_BACKEND))


__all__ = [
    "DailySummary",
    "InMemoryStorage",
    "SaleHeader",
    "SaleItemRow",
    "SaleLine",
    "SqlStorage",
    "Storage",
    "build_storage",
]
