# routers/permissions.py

from typing import Optional

from fastapi import APIRouter, Depends, Query

from dependencies.auth import get_security_context, get_upstream_client
from core.permission_helpers import (
    can_delete,
    can_edit,
    can_manage_delegations,
    get_active_delegations_for_user,
    get_effective_modules,
    get_module_id_from_menu_label,
)
from core.security_context import SecurityContext
from core.upstream_client import UpstreamClient

router = APIRouter(
    prefix="/permissions",
    tags=["Permissions"],
)


# -----------------------------------------------------
# GET /permissions/modules
# Which console modules the viewer can open, and what they may change
# -----------------------------------------------------
@router.get("/modules")
async def get_viewer_modules(
    menu_label: Optional[str] = Query(None, description="Optional sidebar label to check"),
    ctx: SecurityContext = Depends(get_security_context),
    client: UpstreamClient = Depends(get_upstream_client),
):
    """
    Role grants plus any active, in-date delegations addressed to the
    viewer. Delegations are reference data: if they cannot be loaded the
    viewer gets role grants only.
    """
    reference = await client.fetch_best_effort(("role_delegations",))
    delegations = get_active_delegations_for_user(ctx, reference.get("role_delegations", []))
    modules = get_effective_modules(ctx, delegations)

    result = {
        "role_type": ctx.role_type,
        "modules": sorted(modules),
        "can_edit": can_edit(ctx),
        "can_delete": can_delete(ctx),
        "can_manage_delegations": can_manage_delegations(ctx),
        "active_delegations": len(delegations),
    }

    if menu_label is not None:
        module_id = get_module_id_from_menu_label(menu_label)
        result["menu_label"] = menu_label
        result["module_id"] = module_id
        result["has_access"] = module_id in modules if module_id else False

    return result
