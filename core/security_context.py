# core/security_context.py

"""
Viewer security context.

Built once per request (or once per live-view mount) from the viewer
identity produced by the auth step, then passed explicitly into every
scoping and aggregation call.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from core.coercion import to_id_or_none
from models.enums import ViewerRole


ADMIN_ROLE_TYPES = {"admin", "super_admin"}
OWNER_ROLE_TYPES = {"owner"}


@dataclass(frozen=True)
class SecurityContext:
    role: ViewerRole
    wing_id: Optional[int] = None
    owner_id: Optional[int] = None
    user_id: Optional[str] = None
    role_type: str = ""

    @property
    def is_owner(self) -> bool:
        return self.role == ViewerRole.owner

    @property
    def is_wing_scoped(self) -> bool:
        return self.wing_id is not None

    @property
    def owner_unresolved(self) -> bool:
        """Owner-role viewer with no usable owner id sees nothing."""
        return self.is_owner and self.owner_id is None


def role_from_type(role_type: Optional[str]) -> ViewerRole:
    normalized = (role_type or "").strip().lower()
    if normalized in ADMIN_ROLE_TYPES:
        return ViewerRole.admin
    if normalized in OWNER_ROLE_TYPES:
        return ViewerRole.owner
    # secretary, chairman, treasurer, member ... all sit on the committee
    return ViewerRole.committee


def resolve_security_context(identity: Mapping[str, Any]) -> SecurityContext:
    """
    Derive the context from a `{user_id, role_type, wing_id, owner_id}` record.
    Accepts camelCase keys as well. The owner id only counts for owner-role
    viewers.
    """
    role_type = identity.get("role_type") or identity.get("roleType") or ""
    role = role_from_type(role_type)

    wing_raw = identity.get("wing_id")
    if wing_raw is None:
        wing_raw = identity.get("wingId")

    owner_raw = identity.get("owner_id")
    if owner_raw is None:
        owner_raw = identity.get("ownerId")

    user_id = identity.get("user_id") or identity.get("userId")

    return SecurityContext(
        role=role,
        wing_id=to_id_or_none(wing_raw),
        owner_id=to_id_or_none(owner_raw) if role == ViewerRole.owner else None,
        user_id=str(user_id) if user_id is not None else None,
        role_type=str(role_type).strip().lower(),
    )
