import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from shopdesk.config import Settings
from shopdesk.core.constants import API_PREFIX
from shopdesk.core.dates import utcnow
from shopdesk.core.errors import ShopDeskError
from shopdesk.dependencies import get_app_settings, get_storage, http_error, resolve_window_or_400
from shopdesk.schemas.report import (
    DashboardRead,
    InventoryReportRead,
    PeriodSummaryRead,
    TopProductRead,
)
from shopdesk.services.report_service import (
    dashboard_summary,
    group_summary_by_period,
    inventory_report,
    summarize_by_day,
    top_products,
)
from shopdesk.storage.base import Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix=API_PREFIX + "/reports", tags=["Reports"])


@router.get("/sales", response_model=List[PeriodSummaryRead])
def sales_by_period(
    period: str = Query("day", description="day | week | month"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    start, end = resolve_window_or_400(start_date, end_date, settings.SUMMARY_DEFAULT_DAYS)
    try:
        daily = summarize_by_day(storage, start, end)
        return group_summary_by_period(daily, period.strip().lower())
    except ShopDeskError as exc:
        logger.warning("Sales report failed: %s", exc.message)
        raise http_error(exc) from exc


@router.get("/top-products", response_model=List[TopProductRead])
def top_selling_products(
    limit: Optional[int] = Query(None, description="Number of products to return"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    start, end = resolve_window_or_400(start_date, end_date, settings.SUMMARY_DEFAULT_DAYS)
    if limit is None:
        limit = settings.TOP_PRODUCTS_LIMIT
    try:
        items = storage.sales.sale_items_between(start, end)
        return top_products(items, limit)
    except ShopDeskError as exc:
        logger.warning("Top products report failed: %s", exc.message)
        raise http_error(exc) from exc


@router.get("/inventory", response_model=InventoryReportRead)
def inventory_valuation(
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    try:
        report = inventory_report(storage.products.list(), settings.DEFAULT_MIN_STOCK)
        return InventoryReportRead.model_validate(report)
    except ShopDeskError as exc:
        logger.exception("Inventory report failed")
        raise http_error(exc) from exc


@router.get("/dashboard", response_model=DashboardRead)
def dashboard(
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    try:
        return dashboard_summary(storage, utcnow().date(), settings.DEFAULT_MIN_STOCK)
    except ShopDeskError as exc:
        logger.exception("Dashboard summary failed")
        raise http_error(exc) from exc


__all__ = ["router"]
