# routers/views.py

from fastapi import APIRouter, Depends, HTTPException, Request

from dependencies.auth import get_security_context
from core.coercion import to_id_or_none
from core.security_context import SecurityContext
from models.view import LiveViewRead
from services.live_views import LiveView, LiveViewRegistry


router = APIRouter(
    prefix="/views",
    tags=["Live Views"],
)


def get_registry(request: Request) -> LiveViewRegistry:
    registry = getattr(request.app.state, "live_views", None)
    if registry is None:
        raise HTTPException(503, "Live views are not running")
    return registry


def _owned_view(registry: LiveViewRegistry, view_id: str, ctx: SecurityContext) -> LiveView:
    view = registry.get(view_id)
    # a view is only visible to the viewer that mounted it
    if view is None or view.ctx.user_id != ctx.user_id:
        raise HTTPException(404, "View not found")
    return view


# -----------------------------------------------------
# POST /views/dashboard, /views/notifications
# Mount: first cycle runs immediately, then on the interval
# -----------------------------------------------------
@router.post("/dashboard", response_model=LiveViewRead, status_code=201)
async def mount_dashboard_view(
    ctx: SecurityContext = Depends(get_security_context),
    registry: LiveViewRegistry = Depends(get_registry),
):
    return registry.mount_dashboard(ctx).to_dict()


@router.post("/notifications", response_model=LiveViewRead, status_code=201)
async def mount_notification_view(
    ctx: SecurityContext = Depends(get_security_context),
    registry: LiveViewRegistry = Depends(get_registry),
):
    return registry.mount_notifications(ctx).to_dict()


@router.get("/{view_id}", response_model=LiveViewRead)
async def get_view(
    view_id: str,
    ctx: SecurityContext = Depends(get_security_context),
    registry: LiveViewRegistry = Depends(get_registry),
):
    """
    Last good snapshot. `stale` is true when the latest cycle failed;
    `last_error` says why.
    """
    return _owned_view(registry, view_id, ctx).to_dict()


@router.post("/{view_id}/refresh", response_model=LiveViewRead)
async def refresh_view(
    view_id: str,
    ctx: SecurityContext = Depends(get_security_context),
    registry: LiveViewRegistry = Depends(get_registry),
):
    """Manual reload. Any cycle still in flight is discarded."""
    view = _owned_view(registry, view_id, ctx)
    if view.ctx != ctx:
        # wing or role changed since mount
        view.update_context(ctx)
    await view.refresh()
    return view.to_dict()


# -----------------------------------------------------
# POST /views/{view_id}/notifications/read-all
# POST /views/{view_id}/notifications/{notification_id}/read
# Marks go through the view's own feed, so the snapshot changes at once
# and a 409 leaves it as it was.
# -----------------------------------------------------
def _notification_view(registry: LiveViewRegistry, view_id: str, ctx: SecurityContext) -> LiveView:
    view = _owned_view(registry, view_id, ctx)
    if view.feed is None:
        raise HTTPException(404, "Not a notification view")
    return view


@router.post("/{view_id}/notifications/read-all", response_model=LiveViewRead)
async def mark_all_read_in_view(
    view_id: str,
    ctx: SecurityContext = Depends(get_security_context),
    registry: LiveViewRegistry = Depends(get_registry),
):
    view = _notification_view(registry, view_id, ctx)
    await view.mark_all_read()
    return view.to_dict()


@router.post("/{view_id}/notifications/{notification_id}/read", response_model=LiveViewRead)
async def mark_read_in_view(
    view_id: str,
    notification_id: str,
    ctx: SecurityContext = Depends(get_security_context),
    registry: LiveViewRegistry = Depends(get_registry),
):
    """
    - 400 for a malformed id
    - 404 when the id is not in the view's current list
    - 409 when upstream rejects the change (the snapshot is restored)
    """
    if to_id_or_none(notification_id) is None:
        raise HTTPException(400, "Invalid notification id")

    view = _notification_view(registry, view_id, ctx)
    if view.feed.state.find(notification_id) is None:
        raise HTTPException(404, "Notification not found")

    await view.mark_read(notification_id)
    return view.to_dict()


@router.delete("/{view_id}", status_code=204)
async def teardown_view(
    view_id: str,
    ctx: SecurityContext = Depends(get_security_context),
    registry: LiveViewRegistry = Depends(get_registry),
):
    _owned_view(registry, view_id, ctx)
    registry.teardown(view_id)
