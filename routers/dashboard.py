# routers/dashboard.py

from fastapi import APIRouter, Depends

from dependencies.auth import get_security_context, get_upstream_client
from core.security_context import SecurityContext
from core.upstream_client import UpstreamClient
from models.stats import DashboardRead
from services.dashboard_service import DashboardService

router = APIRouter(
    prefix="/dashboard",
    tags=["Dashboard"],
)


# -----------------------------------------------------
# GET /dashboard/stats
# One aggregation cycle for the viewer's scope
# -----------------------------------------------------
@router.get("/stats", response_model=DashboardRead, summary="Dashboard statistics")
async def get_dashboard_stats(
    ctx: SecurityContext = Depends(get_security_context),
    client: UpstreamClient = Depends(get_upstream_client),
):
    """
    Fetches every financial collection, scopes them to the viewer and
    returns the totals.

    If any financial collection fails to load the response is 503 with
    `status: stats_unavailable`; partial totals are never returned.
    """
    snapshot = await DashboardService(client).run_cycle(ctx)
    return snapshot.to_dict()
