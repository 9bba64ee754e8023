import os
import sys
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Ensure local imports resolve
sys.path.append(os.path.dirname(__file__))

# Core
from core.config import settings
from core.errors import StateTransitionError, UpstreamFetchError
from core.logging_config import logger
from core.scheduler import get_scheduler, shutdown_scheduler
from core.upstream_client import UpstreamClient
from jobs import monthly_reminder_job
from services.live_views import LiveViewRegistry

# -------------------------------------------------
# Routers
# -------------------------------------------------
from routers.dashboard import router as dashboard_router
from routers.reports import router as reports_router
from routers.notifications import router as notifications_router
from routers.permissions import router as permissions_router
from routers.views import router as views_router
from routers.health import router as health_router


# -------------------------------------------------
# Create the Application
# -------------------------------------------------
def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="Wing Console API — scoped dashboards, reports and notifications for a residential society",
    )

    # -------------------------------------------------
    # CORS
    # -------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------
    # Startup / shutdown
    # -------------------------------------------------
    @app.on_event("startup")
    async def on_startup():
        logger.info("🚀 Starting Wing Console API")
        scheduler = get_scheduler()
        app.state.upstream_client = UpstreamClient()
        app.state.live_views = LiveViewRegistry(app.state.upstream_client, scheduler)

        if settings.MONTHLY_REMINDERS_ENABLED:
            monthly_reminder_job.schedule(scheduler, app.state.upstream_client)
            logger.info("Monthly maintenance reminders scheduled")

    @app.on_event("shutdown")
    async def on_shutdown():
        registry = getattr(app.state, "live_views", None)
        if registry is not None:
            registry.teardown_all()
        shutdown_scheduler()

        client = getattr(app.state, "upstream_client", None)
        if client is not None:
            await client.aclose()
        app.state.upstream_client = None
        app.state.live_views = None
        logger.info("Wing Console API stopped")

    # -------------------------------------------------
    # Error handling
    # -------------------------------------------------
    @app.exception_handler(UpstreamFetchError)
    async def handle_upstream_fetch(request: Request, exc: UpstreamFetchError):
        logger.warning(f"Upstream fetch failed at {request.url} — {exc}")
        return JSONResponse(
            status_code=503,
            content={"detail": str(exc), "status": "stats_unavailable", "collection": exc.collection},
        )

    @app.exception_handler(StateTransitionError)
    async def handle_state_transition(request: Request, exc: StateTransitionError):
        logger.warning(f"State transition rolled back at {request.url} — {exc}")
        return JSONResponse(
            status_code=409,
            content={"detail": str(exc), "operation": exc.operation},
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (401, 403, 500):
            logger.warning(
                f"HTTP {exc.status_code} at {request.url} — {exc.detail}"
            )
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.exception_handler(Exception)
    async def handle_unhandled(request: Request, exc: Exception):
        logger.error("Unhandled error at %s", request.url, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    # -------------------------------------------------
    # Register Routers
    # -------------------------------------------------
    app.include_router(dashboard_router)
    app.include_router(reports_router)
    app.include_router(notifications_router)
    app.include_router(permissions_router)
    app.include_router(views_router)
    app.include_router(health_router)

    return app


# Create the global FastAPI instance
app = create_app()
