# routers/notifications.py

from fastapi import APIRouter, Depends, HTTPException

from dependencies.auth import get_security_context, get_upstream_client
from core.coercion import to_id_or_none
from core.security_context import SecurityContext
from core.upstream_client import UpstreamClient
from models.notification import MarkReadResult, NotificationList
from services.notification_service import NotificationFeed

router = APIRouter(
    prefix="/notifications",
    tags=["Notifications"],
)


@router.get("", response_model=NotificationList)
async def list_notifications(
    ctx: SecurityContext = Depends(get_security_context),
    client: UpstreamClient = Depends(get_upstream_client),
):
    """
    Notifications visible to the viewer and the unread counter.
    The counter never exceeds the number of visible unread items.
    """
    feed = NotificationFeed(client, ctx)
    await feed.refresh()
    return feed.to_dict()


@router.post("/{notification_id}/read", response_model=MarkReadResult)
async def mark_notification_read(
    notification_id: str,
    ctx: SecurityContext = Depends(get_security_context),
    client: UpstreamClient = Depends(get_upstream_client),
):
    """
    Mark one notification as read.

    - 404 when the id is not among the viewer's visible notifications
    - 409 when upstream rejects the change (nothing is left marked)
    - already-read items are a no-op with `changed: 0`
    """
    if to_id_or_none(notification_id) is None:
        raise HTTPException(400, "Invalid notification id")

    feed = NotificationFeed(client, ctx)
    await feed.refresh()
    if feed.state.find(notification_id) is None:
        raise HTTPException(404, "Notification not found")

    changed = await feed.mark_one(notification_id)
    return {"changed": 1 if changed else 0, "unread_count": feed.state.unread_count}


@router.post("/read-all", response_model=MarkReadResult)
async def mark_all_notifications_read(
    ctx: SecurityContext = Depends(get_security_context),
    client: UpstreamClient = Depends(get_upstream_client),
):
    feed = NotificationFeed(client, ctx)
    await feed.refresh()
    changed = await feed.mark_all()
    return {"changed": changed, "unread_count": feed.state.unread_count}
