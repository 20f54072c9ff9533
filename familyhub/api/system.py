"""System status API endpoints."""

from fastapi import APIRouter, Request

from familyhub.config import settings
from familyhub.store import COLLECTIONS

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/ping")
def system_ping():
    """Lightweight health check."""
    return {"status": "ok"}


@router.get("/status")
def system_status(request: Request):
    """Store backend and document counts."""
    store = request.app.state.store
    return {
        "name": settings.server_name,
        "store_backend": type(store).__name__,
        "documents": {name: len(store.list(name)) for name in COLLECTIONS},
        "assistant_configured": request.app.state.assistant.configured,
    }
