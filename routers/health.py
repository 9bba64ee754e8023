# routers/health.py

from fastapi import APIRouter, Depends

from dependencies.auth import get_upstream_client
from core.config import settings
from core.upstream_client import UpstreamClient

router = APIRouter(
    prefix="/health",
    tags=["Health"],
)


# -----------------------------------------------------
# GET /health/upstream
# Checks the society backend + a few list endpoints
# No auth required
# -----------------------------------------------------
@router.get("/upstream", summary="Upstream backend health check")
async def health_upstream(client: UpstreamClient = Depends(get_upstream_client)):
    """
    Verifies connectivity to the society backend.
    - Attempts to load several list endpoints
    - Returns row-count + error details per collection

    Safe for external health monitors (no auth required).
    """
    try:
        status = await client.ping()
        return {
            "service": "Upstream",
            "status": status.get("status", "unknown"),
            "details": status,
        }

    except Exception as e:
        return {
            "service": "Upstream",
            "status": "error",
            "error": str(e),
        }


# -----------------------------------------------------
# GET /health/app
# Simple API health check
# -----------------------------------------------------
@router.get("/app", summary="App health check")
async def health_app():
    """
    Lightweight health check for uptime monitors.
    """
    return {
        "service": settings.PROJECT_NAME,
        "status": "ok",
    }
