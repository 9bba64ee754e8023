from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, HTTPException, Request
from pydantic import BaseModel

from core.security_context import SecurityContext, resolve_security_context
from core.upstream_client import UpstreamClient


# ============================================================
# Viewer identity (set by the login step in front of this API)
# ============================================================
class ViewerIdentity(BaseModel):
    user_id: Optional[str] = None
    role_type: str = ""
    wing_id: Optional[str] = None
    owner_id: Optional[str] = None


def get_viewer_identity(
    x_user_id: Optional[str] = Header(None),
    x_role_type: Optional[str] = Header(None),
    x_wing_id: Optional[str] = Header(None),
    x_owner_id: Optional[str] = Header(None),
) -> ViewerIdentity:
    if not x_role_type:
        raise HTTPException(status_code=401, detail="Missing viewer role")

    return ViewerIdentity(
        user_id=x_user_id,
        role_type=x_role_type,
        wing_id=x_wing_id,
        owner_id=x_owner_id,
    )


# ============================================================
# SecurityContext (passed explicitly into every scoping call)
# ============================================================
def get_security_context(
    identity: ViewerIdentity = Depends(get_viewer_identity),
) -> SecurityContext:
    return resolve_security_context(identity.model_dump())


# ============================================================
# Upstream client
# ============================================================
async def get_upstream_client(request: Request) -> AsyncGenerator[UpstreamClient, None]:
    """
    Shared client from app state when the app is running; a short-lived
    one otherwise.
    """
    shared = getattr(request.app.state, "upstream_client", None)
    if shared is not None:
        yield shared
        return

    client = UpstreamClient()
    try:
        yield client
    finally:
        await client.aclose()
