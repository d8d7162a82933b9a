"""Health check endpoint."""

from fastapi import APIRouter

from src.api.response import success_response
from src.services.template_store import get_template_store

router = APIRouter(tags=["System"])


@router.get("/health")
async def health_check() -> dict:
    """Return system health status and the number of loaded templates."""
    return success_response({"status": "ok", "templates": len(get_template_store().list())})
