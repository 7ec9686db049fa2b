import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from shopdesk.config import Settings
from shopdesk.core.constants import API_PREFIX
from shopdesk.core.errors import ReferentialConflict, ShopDeskError
from shopdesk.dependencies import get_app_settings, get_storage, http_error
from shopdesk.schemas.product import ProductCreate, ProductRead
from shopdesk.storage.base import Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix=API_PREFIX + "/products", tags=["Products"])


@router.get("", response_model=List[ProductRead])
def list_products(
    search: Optional[str] = Query(None, description="Matches name, description, category or SKU"),
    storage: Storage = Depends(get_storage),
):
    try:
        return storage.products.list(search)
    except ShopDeskError as exc:
        logger.exception("Error fetching products")
        raise http_error(exc) from exc


@router.get("/low-stock", response_model=List[ProductRead])
def list_low_stock_products(
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    try:
        return storage.products.low_stock(settings.DEFAULT_MIN_STOCK)
    except ShopDeskError as exc:
        logger.exception("Error fetching low-stock products")
        raise http_error(exc) from exc


@router.get("/{product_id}", response_model=ProductRead)
def get_product(product_id: int, storage: Storage = Depends(get_storage)):
    try:
        product = storage.products.get(product_id)
    except ShopDeskError as exc:
        logger.exception("Error fetching product %s", product_id)
        raise http_error(exc) from exc
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.post("", response_model=ProductRead, status_code=201)
def create_product(payload: ProductCreate, storage: Storage = Depends(get_storage)):
    try:
        return storage.products.create(payload.model_dump())
    except ShopDeskError as exc:
        logger.exception("Error creating product")
        raise http_error(exc) from exc


@router.put("/{product_id}", response_model=ProductRead)
def update_product(product_id: int, payload: ProductCreate, storage: Storage = Depends(get_storage)):
    try:
        product = storage.products.update(product_id, payload.model_dump())
    except ShopDeskError as exc:
        logger.exception("Error updating product %s", product_id)
        raise http_error(exc) from exc
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.delete("/{product_id}")
def delete_product(product_id: int, storage: Storage = Depends(get_storage)):
    try:
        removed = storage.products.delete(product_id)
    except ReferentialConflict as exc:
        logger.warning(
            "Refused to delete product %s: %s", product_id, exc.message, extra={"details": exc.details}
        )
        raise http_error(exc) from exc
    except ShopDeskError as exc:
        logger.exception("Error deleting product %s", product_id)
        raise http_error(exc) from exc
    if not removed:
        raise HTTPException(status_code=404, detail="Product not found")
    return {"success": True}


__all__ = ["router"]
