import logging
from typing import List, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse

from shopdesk.config import Settings
from shopdesk.core.constants import API_PREFIX
from shopdesk.core.dates import parse_datetime
from shopdesk.core.errors import InvalidArgument, ShopDeskError, StorageError
from shopdesk.dependencies import get_app_settings, get_storage, http_error, resolve_window_or_400
from shopdesk.schemas.product import ProductRead
from shopdesk.schemas.report import DailySummaryRead
from shopdesk.schemas.sale import (
    SaleDetail,
    SaleItemRead,
    SaleItemRowRead,
    SaleItemWithProduct,
    SaleRead,
)
from shopdesk.services.report_service import summarize_by_day
from shopdesk.services.sales_service import record_sale
from shopdesk.storage.base import Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix=API_PREFIX, tags=["Sales"])


@router.get("/sales", response_model=List[SaleRead])
def list_sales(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    storage: Storage = Depends(get_storage),
):
    try:
        start = parse_datetime(start_date)
        end = parse_datetime(end_date, end_of_day=True)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    try:
        return storage.sales.list_sales(start, end)
    except ShopDeskError as exc:
        logger.exception("Error fetching sales")
        raise http_error(exc) from exc


@router.post("/sales", response_model=SaleRead, status_code=201)
def create_sale(
    payload: dict = Body(...),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    try:
        return record_sale(storage, payload, policy=settings.SALE_TOTAL_POLICY)
    except InvalidArgument as exc:
        logger.warning("Rejected sale: %s", exc.message, extra={"details": exc.details})
        raise http_error(exc) from exc
    except StorageError as exc:
        logger.exception("Storage failure while creating sale")
        raise http_error(exc) from exc
    except ShopDeskError as exc:
        logger.warning("Rejected sale: %s", exc.message, extra={"details": exc.details})
        raise http_error(exc) from exc


@router.get("/sales/summary/daily", response_model=List[DailySummaryRead])
def daily_sales_summary(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    start, end = resolve_window_or_400(start_date, end_date, settings.SUMMARY_DEFAULT_DAYS)
    try:
        return summarize_by_day(storage, start, end)
    except ShopDeskError as exc:
        logger.exception("Error fetching sales summary")
        raise http_error(exc) from exc


@router.get("/sales/items")
def legacy_sale_items(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
):
    params = {}
    if start_date:
        params["startDate"] = start_date
    if end_date:
        params["endDate"] = end_date
    url = API_PREFIX + "/sale-items"
    if params:
        url += "?" + urlencode(params)
    return RedirectResponse(url=url, status_code=302)


@router.get("/sales/{sale_id}", response_model=SaleDetail)
def get_sale(sale_id: int, storage: Storage = Depends(get_storage)):
    try:
        found = storage.sales.get_sale_with_items(sale_id)
    except ShopDeskError as exc:
        logger.exception("Error fetching sale %s", sale_id)
        raise http_error(exc) from exc
    if found is None:
        raise HTTPException(status_code=404, detail="Sale not found")

    sale, items = found
    return SaleDetail(
        sale=SaleRead.model_validate(sale),
        items=[
            SaleItemWithProduct(
                **SaleItemRead.model_validate(item).model_dump(),
                product=ProductRead.model_validate(product) if product is not None else None,
            )
            for item, product in items
        ],
    )


@router.get("/sale-items", response_model=List[SaleItemRowRead])
def list_sale_items(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    start, end = resolve_window_or_400(start_date, end_date, settings.SUMMARY_DEFAULT_DAYS)
    try:
        return storage.sales.sale_items_between(start, end)
    except ShopDeskError as exc:
        logger.exception("Error fetching sale items")
        raise http_error(exc) from exc


__all__ = ["router"]
