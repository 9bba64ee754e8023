# routers/reports.py

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from dependencies.auth import get_security_context, get_upstream_client
from core.logging_config import logger
from core.security_context import SecurityContext
from core.upstream_client import UpstreamClient
from services.dashboard_service import DashboardService
from services.report_generator import DateRange, build_complete_report, build_parking_report

router = APIRouter(
    prefix="/reports",
    tags=["Reports"],
)


# -----------------------------------------------------
# GET /reports/complete
# -----------------------------------------------------
@router.get("/complete", summary="Complete financial report")
async def get_complete_report(
    start_date: Optional[date] = Query(None, description="Start date (YYYY-MM-DD)"),
    end_date: Optional[date] = Query(None, description="End date (YYYY-MM-DD), whole day included"),
    ctx: SecurityContext = Depends(get_security_context),
    client: UpstreamClient = Depends(get_upstream_client),
):
    """
    Money in and out grouped by payment mode (Cash, UPI, Bank Transfer,
    Other or the raw label), with maintenance, activity and grand balances.

    The date filter applies only when both ends are given.
    """
    if start_date and end_date and start_date > end_date:
        raise HTTPException(400, "start_date must be on or before end_date")

    scoped = await DashboardService(client).load_scoped(ctx)
    report = build_complete_report(scoped, DateRange(start_date, end_date))

    logger.info(f"Complete report for {ctx.role.value} (wing={ctx.wing_id}): {len(report.modes)} payment modes")
    return {
        "period": {
            "start_date": start_date.isoformat() if start_date else None,
            "end_date": end_date.isoformat() if end_date else None,
        },
        **report.to_dict(),
    }


# -----------------------------------------------------
# GET /reports/parking
# -----------------------------------------------------
@router.get("/parking", summary="Parking report")
async def get_parking_report(
    search: str = Query("", description="Matches owner/tenant name, vehicle type or number"),
    page: int = Query(1, ge=1),
    rental_page: int = Query(1, ge=1),
    ctx: SecurityContext = Depends(get_security_context),
    client: UpstreamClient = Depends(get_upstream_client),
):
    scoped = await DashboardService(client).load_scoped(ctx)
    return build_parking_report(scoped, search=search, page=page, rental_page=rental_page)
