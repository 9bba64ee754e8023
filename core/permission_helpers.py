from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from dateutil import parser as date_parser

from core.permissions import (
    ALL_MODULES,
    DELEGATION_MANAGER_ROLES,
    MENU_LABEL_TO_MODULE,
    READ_ONLY_ROLES,
    ROLE_MODULE_ACCESS,
)
from core.security_context import SecurityContext


# -----------------------------------------------------
# Delegation helpers
# -----------------------------------------------------
def _parse_when(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if not value:
        return None
    try:
        return date_parser.parse(str(value)).replace(tzinfo=None)
    except (ValueError, OverflowError):
        return None


def is_delegation_active(delegation: Dict[str, Any], now: Optional[datetime] = None) -> bool:
    if not isinstance(delegation, dict) or not delegation.get("is_active"):
        return False

    now = now or datetime.now()
    start = _parse_when(delegation.get("start_date"))
    end = _parse_when(delegation.get("end_date"))
    if start is None or end is None:
        return False
    return start <= now <= end


def get_active_delegations_for_user(
    ctx: SecurityContext,
    delegations: Iterable[Dict[str, Any]],
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Active, in-date delegations addressed to this viewer."""
    if not ctx.user_id:
        return []

    return [
        d for d in delegations or []
        if isinstance(d, dict)
        and str(d.get("delegated_to_user_id")) == ctx.user_id
        and is_delegation_active(d, now)
    ]


# -----------------------------------------------------
# Collect effective module access:
#   • role-based access
#   • modules granted by active delegations
# -----------------------------------------------------
def get_effective_modules(
    ctx: SecurityContext,
    active_delegations: Iterable[Dict[str, Any]] = (),
) -> set:
    role_access = ROLE_MODULE_ACCESS.get(ctx.role_type, [])
    if "*" in role_access or "*:read" in role_access:
        return set(ALL_MODULES)

    modules = set()
    for delegation in active_delegations or []:
        permissions = delegation.get("permissions") if isinstance(delegation, dict) else None
        if isinstance(permissions, list):
            modules.update(p for p in permissions if isinstance(p, str))
    return modules


def has_module_access(
    ctx: SecurityContext,
    module_id: str,
    active_delegations: Iterable[Dict[str, Any]] = (),
) -> bool:
    return module_id in get_effective_modules(ctx, active_delegations)


def get_module_id_from_menu_label(menu_label: str) -> Optional[str]:
    return MENU_LABEL_TO_MODULE.get(menu_label)


# ============================================================
# EDIT / DELETE CAPABILITIES
# ============================================================

def can_edit(ctx: SecurityContext) -> bool:
    """Owners are read-only everywhere."""
    return ctx.role_type not in READ_ONLY_ROLES and not ctx.is_owner


def can_delete(ctx: SecurityContext) -> bool:
    return can_edit(ctx)


def can_manage_delegations(ctx: SecurityContext) -> bool:
    return ctx.role_type in DELEGATION_MANAGER_ROLES
