from shopdesk.routers.clients import router as clients_router
from shopdesk.routers.health import router as health_router
from shopdesk.routers.products import router as products_router
from shopdesk.routers.reports import router as reports_router
from shopdesk.routers.sales import router as sales_router

__all__ = [
    "clients_router",
    "health_router",
    "products_router",
    "reports_router",
    "sales_router",
]
