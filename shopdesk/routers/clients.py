import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from shopdesk.core.constants import API_PREFIX
from shopdesk.core.errors import ShopDeskError
from shopdesk.dependencies import get_storage, http_error
from shopdesk.schemas.client import ClientCreate, ClientRead
from shopdesk.storage.base import Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix=API_PREFIX + "/clients", tags=["Clients"])


@router.get("", response_model=List[ClientRead])
def list_clients(
    search: Optional[str] = Query(None, description="Matches name, email, phone, address or city"),
    storage: Storage = Depends(get_storage),
):
    try:
        return storage.clients.list(search)
    except ShopDeskError as exc:
        logger.exception("Error fetching clients")
        raise http_error(exc) from exc


@router.get("/{client_id}", response_model=ClientRead)
def get_client(client_id: int, storage: Storage = Depends(get_storage)):
    try:
        client = storage.clients.get(client_id)
    except ShopDeskError as exc:
        logger.exception("Error fetching client %s", client_id)
        raise http_error(exc) from exc
    if client is None:
        raise HTTPException(status_code=404, detail="Client not found")
    return client


@router.post("", response_model=ClientRead, status_code=201)
def create_client(payload: ClientCreate, storage: Storage = Depends(get_storage)):
    try:
        return storage.clients.create(payload.model_dump())
    except ShopDeskError as exc:
        logger.exception("Error creating client")
        raise http_error(exc) from exc


@router.put("/{client_id}", response_model=ClientRead)
def update_client(client_id: int, payload: ClientCreate, storage: Storage = Depends(get_storage)):
    try:
        client = storage.clients.update(client_id, payload.model_dump())
    except ShopDeskError as exc:
        logger.exception("Error updating client %s", client_id)
        raise http_error(exc) from exc
    if client is None:
        raise HTTPException(status_code=404, detail="Client not found")
    return client


@router.delete("/{client_id}")
def delete_client(client_id: int, storage: Storage = Depends(get_storage)):
    try:
        removed = storage.clients.delete(client_id)
    except ShopDeskError as exc:
        logger.exception("Error deleting client %s", client_id)
        raise http_error(exc) from exc
    if not removed:
        raise HTTPException(status_code=404, detail="Client not found")
    return {"success": True}


__all__ = ["router"]
