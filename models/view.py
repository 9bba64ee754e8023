# models/view.py

from typing import Optional, Dict, Any
from pydantic import BaseModel


class LiveViewRead(BaseModel):
    """Current state of a mounted view. `snapshot` is the last good cycle."""
    view_id: str
    kind: str
    snapshot: Optional[Dict[str, Any]] = None
    stale: bool = False
    last_error: Optional[str] = None
    updated_at: Optional[str] = None
