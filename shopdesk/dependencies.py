from fastapi import HTTPException, Request

from shopdesk.config import Settings
from shopdesk.core.dates import resolve_window
from shopdesk.core.errors import (
    InsufficientStock,
    InvalidArgument,
    NotFound,
    ReferentialConflict,
    ShopDeskError,
)
from shopdesk.storage.base import Storage


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def http_error(exc: ShopDeskError) -> HTTPException:
    """Map a domain error onto the HTTP status the boundary reports."""
    if isinstance(exc, NotFound):
        status_code = 404
    elif isinstance(exc, (InsufficientStock, ReferentialConflict)):
        status_code = 409
    elif isinstance(exc, InvalidArgument):
        status_code = 400
    else:
        status_code = 500
    detail = exc.message
    if exc.details:
        detail = {"message": exc.message, "details": exc.details}
    return HTTPException(status_code=status_code, detail=detail)


def resolve_window_or_400(start_date, end_date, default_days):
    try:
        return resolve_window(start_date, end_date, default_days)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


__all__ = ["get_app_settings", "get_storage", "http_error", "resolve_window_or_400"]
