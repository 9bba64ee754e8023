# services/live_views.py

"""
Mounted views that keep themselves fresh.

A LiveView owns one RefreshJob. On success the snapshot is swapped in
whole; on failure the previous snapshot stays and the view is flagged
stale with the error text.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from core.config import settings
from core.errors import extract_upstream_error
from core.logging_config import logger
from core.scheduler import RefreshJob
from core.security_context import SecurityContext
from core.upstream_client import UpstreamClient
from services.dashboard_service import DashboardService
from services.notification_service import NotificationFeed


class LiveView:
    def __init__(
        self,
        kind: str,
        ctx: SecurityContext,
        cycle_factory: Callable[[SecurityContext], Callable[[], Awaitable[Any]]],
        interval_seconds: float,
    ):
        self.view_id = str(uuid.uuid4())
        self.kind = kind
        self.ctx = ctx
        self.cycle_factory = cycle_factory

        self.snapshot: Optional[Dict[str, Any]] = None
        # notification views only; holds read state across polls
        self.feed: Optional[NotificationFeed] = None
        self.stale = False
        self.last_error: Optional[str] = None
        self.updated_at: Optional[datetime] = None

        self.job = RefreshJob(
            name=f"{kind}:{self.view_id}",
            cycle=self._cycle,
            interval_seconds=interval_seconds,
            on_result=self._apply,
            on_error=self._fail,
        )

    async def _cycle(self):
        # bound late so update_context takes effect on the next cycle
        return await self.cycle_factory(self.ctx)()

    def _apply(self, snapshot: Dict[str, Any]):
        self.snapshot = snapshot
        self.stale = False
        self.last_error = None
        self.updated_at = datetime.now(timezone.utc)

    def _fail(self, error: BaseException):
        self.stale = True
        self.last_error = extract_upstream_error(error)

    def start(self, scheduler=None):
        self.job.start(scheduler)

    def stop(self):
        self.job.stop()

    async def refresh(self) -> bool:
        return await self.job.refresh_now()

    def update_context(self, ctx: SecurityContext):
        """Viewer scope changed; any cycle still running for the old scope is discarded."""
        self.ctx = ctx
        self.job.supersede()

    # -----------------------------------------------------
    # Read-state transitions (notification views)
    # -----------------------------------------------------
    async def mark_read(self, notification_id: Any) -> bool:
        """Raises StateTransitionError after rolling back when upstream rejects it."""
        return await self.feed.mark_one(notification_id)

    async def mark_all_read(self) -> int:
        return await self.feed.mark_all()

    def current_snapshot(self) -> Optional[Dict[str, Any]]:
        # optimistic marks show up before the next poll
        if self.feed is not None and self.feed.loaded:
            return self.feed.to_dict()
        return self.snapshot

    def to_dict(self) -> Dict[str, Any]:
        return {
            "view_id": self.view_id,
            "kind": self.kind,
            "snapshot": self.current_snapshot(),
            "stale": self.stale,
            "last_error": self.last_error,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class LiveViewRegistry:
    def __init__(self, client: UpstreamClient, scheduler=None):
        self.client = client
        self.scheduler = scheduler
        self.views: Dict[str, LiveView] = {}

    # -----------------------------------------------------
    # Cycle factories
    # -----------------------------------------------------
    def _dashboard_cycle(self, ctx: SecurityContext):
        service = DashboardService(self.client)

        async def cycle():
            snapshot = await service.run_cycle(ctx)
            return snapshot.to_dict()

        return cycle

    def _notification_cycle(self, feed: NotificationFeed):
        async def cycle():
            await feed.refresh()
            return feed.to_dict()

        return cycle

    # -----------------------------------------------------
    # Mount / lookup / teardown
    # -----------------------------------------------------
    def _mount(self, view: LiveView) -> LiveView:
        self.views[view.view_id] = view
        view.start(self.scheduler)
        logger.info(f"Mounted {view.kind} view {view.view_id} (wing={view.ctx.wing_id})")
        return view

    def mount_dashboard(self, ctx: SecurityContext) -> LiveView:
        return self._mount(LiveView(
            "dashboard", ctx, self._dashboard_cycle, settings.DASHBOARD_REFRESH_SECONDS,
        ))

    def mount_notifications(self, ctx: SecurityContext) -> LiveView:
        def factory(current: SecurityContext):
            # the feed lives as long as the view; a new scope starts a new one
            if view.feed is None or view.feed.ctx != current:
                view.feed = NotificationFeed(self.client, current)
            return self._notification_cycle(view.feed)

        view = LiveView("notifications", ctx, factory, settings.NOTIFICATION_REFRESH_SECONDS)
        view.feed = NotificationFeed(self.client, ctx)
        return self._mount(view)

    def get(self, view_id: str) -> Optional[LiveView]:
        return self.views.get(view_id)

    async def refresh(self, view_id: str) -> Optional[LiveView]:
        view = self.get(view_id)
        if view is None:
            return None
        await view.refresh()
        return view

    def teardown(self, view_id: str) -> bool:
        view = self.views.pop(view_id, None)
        if view is None:
            return False
        view.stop()
        logger.info(f"Tore down {view.kind} view {view_id}")
        return True

    def teardown_all(self):
        for view_id in list(self.views):
            self.teardown(view_id)
