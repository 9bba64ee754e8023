# core/notifications.py

"""
Notification visibility and per-viewer read state.

NotificationState is a small state machine: each visible notification is
either unread or read, and the unread counter mirrors that. Transitions
are applied optimistically and return an undo token so the caller can
roll back if the upstream call fails.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from dateutil import parser as date_parser

from core.coercion import to_id_or_none, to_number_or_zero
from core.scope import has_direct_wing, is_wing_visible
from core.security_context import SecurityContext
from models.enums import NotificationCategory, NotificationType, TargetAudience, ViewerRole


# -----------------------------------------------------
# Type → category / icon
# -----------------------------------------------------
TYPE_CATEGORIES = {
    NotificationType.announcement: NotificationCategory.announcement,
    NotificationType.cutoff: NotificationCategory.alert,
    NotificationType.maintenance_reminder: NotificationCategory.payment,
    NotificationType.activity_scheduled: NotificationCategory.event,
    NotificationType.meeting_scheduled: NotificationCategory.meeting,
}

TYPE_ICONS = {
    NotificationType.announcement: "📢",
    NotificationType.cutoff: "⚠️",
    NotificationType.maintenance_reminder: "💰",
    NotificationType.activity_scheduled: "🎉",
    NotificationType.meeting_scheduled: "📅",
}

DEFAULT_ICON = "🔔"

TYPE_LABELS = {
    NotificationType.announcement: "Announcement",
    NotificationType.cutoff: "Cutoff Alert",
}


def parse_type(notification_type: Any) -> Optional[NotificationType]:
    try:
        return NotificationType(str(notification_type).strip().lower())
    except ValueError:
        return None


def categorize(notification_type: Any) -> NotificationCategory:
    parsed = parse_type(notification_type)
    return TYPE_CATEGORIES.get(parsed, NotificationCategory.general)


def icon_for(notification_type: Any) -> str:
    return TYPE_ICONS.get(parse_type(notification_type), DEFAULT_ICON)


def type_label(notification_type: Any) -> str:
    parsed = parse_type(notification_type)
    if parsed in TYPE_LABELS:
        return TYPE_LABELS[parsed]
    return str(notification_type or "")


# -----------------------------------------------------
# Visibility
# -----------------------------------------------------
def is_notification_visible(ctx: SecurityContext, notification: Any) -> bool:
    if not isinstance(notification, dict):
        return False
    if ctx.owner_unresolved:
        return False

    audience = str(notification.get("target_audience") or TargetAudience.all.value).strip().lower()

    if audience == TargetAudience.specific_wing.value or has_direct_wing(notification):
        # a wing-targeted notice without a usable wing only reaches unscoped viewers
        if audience == TargetAudience.specific_wing.value and to_id_or_none(notification.get("wing_id")) is None:
            return not ctx.is_wing_scoped and not ctx.is_owner
        if not is_wing_visible(notification, notification.get("wing_id"), ctx.wing_id):
            return False

    if audience == TargetAudience.owners.value:
        return ctx.role == ViewerRole.owner or not ctx.is_wing_scoped

    return True


def filter_visible(ctx: SecurityContext, notifications: Iterable[Any]) -> List[Dict[str, Any]]:
    return [n for n in notifications or [] if is_notification_visible(ctx, n)]


# -----------------------------------------------------
# Presentation helpers
# -----------------------------------------------------
def image_attachments(notification: Dict[str, Any], limit: int = 3) -> Tuple[List[str], int]:
    """http(s) image URLs to preview, plus how many more were left out."""
    urls = notification.get("attachment_url") or notification.get("attachment_urls") or []
    if not isinstance(urls, list):
        return [], 0

    images = [
        url for url in urls
        if isinstance(url, str) and url.startswith("http") and "pdf" not in url.lower()
    ]
    return images[:limit], max(0, len(images) - limit)


def date_label(notification_date: Any, today: Optional[date] = None) -> str:
    if not notification_date:
        return ""

    try:
        when = notification_date if isinstance(notification_date, datetime) else date_parser.parse(str(notification_date))
    except (ValueError, OverflowError):
        return ""

    day = when.date() if isinstance(when, datetime) else when
    today = today or date.today()

    if day == today:
        return "Today"
    if day == today + timedelta(days=1):
        return "Tomorrow"
    return f"{day.day} {day.strftime('%b %Y')}"


def is_read(notification: Dict[str, Any]) -> bool:
    flag = notification.get("is_read_by_user")
    if isinstance(flag, str):
        return flag.strip().lower() in ("1", "true", "yes")
    return bool(flag)


# -----------------------------------------------------
# Read-state machine
# -----------------------------------------------------
@dataclass(frozen=True)
class UndoToken:
    read_ids: Tuple[int, ...]


@dataclass
class NotificationState:
    notifications: List[Dict[str, Any]] = field(default_factory=list)
    unread_count: int = 0
    # ids marked locally and not yet seen as read in a server refresh
    pending_reads: set = field(default_factory=set)

    @classmethod
    def from_server(cls, notifications: Iterable[Dict[str, Any]], unread_count: Any = None) -> "NotificationState":
        state = cls()
        state.replace(notifications, unread_count)
        return state

    def replace(self, notifications: Iterable[Dict[str, Any]], unread_count: Any = None):
        self._load(notifications)
        self._set_count(unread_count)

    def _load(self, notifications: Iterable[Dict[str, Any]]):
        items = [dict(n) for n in notifications or [] if isinstance(n, dict)]
        for item in items:
            item["is_read_by_user"] = is_read(item)
        self.notifications = items

    def _set_count(self, unread_count: Any):
        # the server count may include notices hidden by scoping; never exceed what is visible
        local = self.local_unread()
        if unread_count is None:
            self.unread_count = local
        else:
            self.unread_count = max(0, min(int(to_number_or_zero(unread_count)), local))

    def local_unread(self) -> int:
        return sum(1 for n in self.notifications if not n["is_read_by_user"])

    def find(self, notification_id: Any) -> Optional[Dict[str, Any]]:
        key = to_id_or_none(notification_id)
        if key is None:
            return None
        for item in self.notifications:
            if to_id_or_none(item.get("notification_id")) == key:
                return item
        return None

    def mark_one(self, notification_id: Any) -> Optional[UndoToken]:
        """Unread → Read for one item. None when nothing changed."""
        item = self.find(notification_id)
        if item is None or item["is_read_by_user"]:
            return None

        token = UndoToken(read_ids=(to_id_or_none(notification_id),))
        item["is_read_by_user"] = True
        self.pending_reads.add(token.read_ids[0])
        self.unread_count = max(0, self.unread_count - 1)
        return token

    def mark_all(self) -> UndoToken:
        changed = []
        for item in self.notifications:
            if not item["is_read_by_user"]:
                item["is_read_by_user"] = True
                item_id = to_id_or_none(item.get("notification_id"))
                if item_id is not None:
                    changed.append(item_id)
        token = UndoToken(read_ids=tuple(changed))
        self.pending_reads.update(changed)
        self.unread_count = 0
        return token

    def rollback(self, token: Optional[UndoToken]):
        """
        Undo one transition. Only items that are still read are reverted and
        the counter moves by that many, so later marks and refreshes survive.
        """
        if token is None:
            return
        reverted = 0
        for read_id in token.read_ids:
            item = self.find(read_id)
            if item is not None and item["is_read_by_user"]:
                item["is_read_by_user"] = False
                reverted += 1
            self.pending_reads.discard(read_id)
        self.unread_count = max(0, min(self.unread_count + reverted, self.local_unread()))

    def confirm(self, token: Optional[UndoToken]):
        """Upstream accepted the transition."""
        if token is None:
            return
        for read_id in token.read_ids:
            self.pending_reads.discard(read_id)

    def merge_refresh(self, notifications: Iterable[Dict[str, Any]], unread_count: Any = None):
        """
        Apply a polled server list. Items still awaiting upstream confirmation
        stay read; everything else takes the server's flag.
        """
        self._load(notifications)

        for item in self.notifications:
            item_id = to_id_or_none(item.get("notification_id"))
            if item_id in self.pending_reads:
                item["is_read_by_user"] = True

        # drop ids that left the visible list
        visible_ids = {to_id_or_none(n.get("notification_id")) for n in self.notifications}
        self.pending_reads &= visible_ids

        self._set_count(unread_count)

    def to_list(self, today: Optional[date] = None) -> List[Dict[str, Any]]:
        rendered = []
        for item in self.notifications:
            images, more_images = image_attachments(item)
            notification_type = item.get("notification_type")
            rendered.append({
                **item,
                "category": categorize(notification_type).value,
                "icon": icon_for(notification_type),
                "type_label": type_label(notification_type),
                "images": images,
                "more_images": more_images,
                "date_label": date_label(item.get("notification_date"), today),
            })
        return rendered
