# -------------------------
# Enums
# -------------------------
from .enums import (
    ViewerRole,
    NotificationType,
    NotificationCategory,
    TargetAudience,
    OwnershipType,
    PaymentMode,
)

# -------------------------
# Dashboard Models
# -------------------------
from .stats import (
    DashboardStats,
    DashboardRead,
    WingRead,
)

# -------------------------
# Notification Models
# -------------------------
from .notification import (
    NotificationRead,
    NotificationList,
    MarkReadResult,
)

# -------------------------
# Live View Models
# -------------------------
from .view import LiveViewRead

__all__ = [
    # enums
    "ViewerRole",
    "NotificationType",
    "NotificationCategory",
    "TargetAudience",
    "OwnershipType",
    "PaymentMode",

    # dashboard
    "DashboardStats",
    "DashboardRead",
    "WingRead",

    # notifications
    "NotificationRead",
    "NotificationList",
    "MarkReadResult",

    # live views
    "LiveViewRead",
]
