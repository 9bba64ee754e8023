from enum import Enum


class BaseStrEnum(str, Enum):
    """
    Base enum that serializes cleanly to a string
    and provides a .list() method for UI dropdowns.
    """

    def __str__(self):
        return str(self.value)

    @classmethod
    def list(cls):
        return [item.value for item in cls]


# -----------------------------------------------------
# VIEWER ROLE
# -----------------------------------------------------
class ViewerRole(BaseStrEnum):
    """Scoping role derived from the upstream role_type."""

    admin = "admin"
    committee = "committee"
    owner = "owner"


# -----------------------------------------------------
# NOTIFICATION TYPE
# -----------------------------------------------------
class NotificationType(BaseStrEnum):
    """Closed set of notification types the backend emits."""

    announcement = "announcement"
    cutoff = "cutoff"
    maintenance_reminder = "maintenance_reminder"
    activity_scheduled = "activity_scheduled"
    meeting_scheduled = "meeting_scheduled"


# -----------------------------------------------------
# NOTIFICATION CATEGORY
# -----------------------------------------------------
class NotificationCategory(BaseStrEnum):
    """Display grouping for notifications."""

    announcement = "announcement"
    alert = "alert"
    payment = "payment"
    event = "event"
    meeting = "meeting"
    general = "general"  # Fallback for unknown types


# -----------------------------------------------------
# TARGET AUDIENCE
# -----------------------------------------------------
class TargetAudience(BaseStrEnum):
    """Who a notification was addressed to."""

    all = "all"
    owners = "owners"
    specific_wing = "specific_wing"


# -----------------------------------------------------
# PARKING OWNERSHIP
# -----------------------------------------------------
class OwnershipType(BaseStrEnum):
    owner = "Owner"
    rental = "Rental"


# -----------------------------------------------------
# PAYMENT MODE
# -----------------------------------------------------
class PaymentMode(BaseStrEnum):
    """Normalized payment modes used by the complete report."""

    cash = "Cash"
    upi = "UPI"
    bank_transfer = "Bank Transfer"
    other = "Other"
