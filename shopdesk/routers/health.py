from datetime import datetime, timezone

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request):
    settings = request.app.state.settings
    return {
        "status": "ok",
        "app": settings.APP_NAME,
        "environment": settings.ENVIRONMENT,
        "storage": request.app.state.storage.name,
        "time": datetime.now(timezone.utc).isoformat(),
    }
