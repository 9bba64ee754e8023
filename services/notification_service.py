# services/notification_service.py

from datetime import date
from typing import Any, Dict, Optional

from core.errors import StateTransitionError, UpstreamFetchError
from core.logging_config import logger
from core.notifications import NotificationState, filter_visible
from core.security_context import SecurityContext
from core.upstream_client import UpstreamClient, identity_payload


class NotificationFeed:
    """
    One viewer's notification list and unread counter.

    Mark-read transitions are applied locally first, then sent upstream.
    If the upstream call fails the local change is rolled back and
    StateTransitionError is raised.
    """

    def __init__(self, client: UpstreamClient, ctx: SecurityContext):
        self.client = client
        self.ctx = ctx
        self.state = NotificationState()
        self.loaded = False

    async def refresh(self) -> NotificationState:
        """Poll upstream and merge into the local state. Raises UpstreamFetchError."""
        notifications, server_unread = await self.client.fetch_notifications(identity_payload(self.ctx))
        visible = filter_visible(self.ctx, notifications)

        if self.loaded:
            self.state.merge_refresh(visible, server_unread)
        else:
            self.state.replace(visible, server_unread)
            self.loaded = True
        return self.state

    async def mark_one(self, notification_id: Any) -> bool:
        """Returns False when the item is unknown or already read."""
        token = self.state.mark_one(notification_id)
        if token is None:
            return False

        try:
            await self.client.mark_notification_read(token.read_ids[0], self.ctx.user_id)
        except UpstreamFetchError as e:
            self.state.rollback(token)
            logger.warning(f"Mark-read of notification {notification_id} rolled back: {e.detail}")
            raise StateTransitionError("mark_read", e.detail)

        self.state.confirm(token)
        return True

    async def mark_all(self) -> int:
        """Returns how many items changed."""
        token = self.state.mark_all()

        try:
            await self.client.mark_all_notifications_read(identity_payload(self.ctx))
        except UpstreamFetchError as e:
            self.state.rollback(token)
            logger.warning(f"Mark-all-read rolled back ({len(token.read_ids)} items): {e.detail}")
            raise StateTransitionError("mark_all_read", e.detail)

        self.state.confirm(token)
        return len(token.read_ids)

    def to_dict(self, today: Optional[date] = None) -> Dict[str, Any]:
        return {
            "notifications": self.state.to_list(today),
            "unread_count": self.state.unread_count,
        }
