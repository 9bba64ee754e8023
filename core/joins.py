# core/joins.py

"""
Join resolvers for collections that sit one hop away from a wing.

Rentals, maintenance and parking carry owner_id; activity payments carry
flat_id. Both resolve to a wing through the owner collection, so the maps
are built from one owner snapshot per cycle and never cached across cycles.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional

from core.coercion import is_deleted, to_id_or_none


@dataclass(frozen=True)
class JoinMaps:
    owner_wing: Mapping[int, int] = field(default_factory=dict)
    flat_wing: Mapping[int, int] = field(default_factory=dict)
    flat_owner: Mapping[int, int] = field(default_factory=dict)

    def wing_for_owner(self, owner_id: Any) -> Optional[int]:
        key = to_id_or_none(owner_id)
        return self.owner_wing.get(key) if key is not None else None

    def wing_for_flat(self, flat_id: Any) -> Optional[int]:
        key = to_id_or_none(flat_id)
        return self.flat_wing.get(key) if key is not None else None

    def owner_for_flat(self, flat_id: Any) -> Optional[int]:
        key = to_id_or_none(flat_id)
        return self.flat_owner.get(key) if key is not None else None


def build_join_maps(owners: Iterable[Dict[str, Any]]) -> JoinMaps:
    """
    Build owner→wing, flat→wing and flat→owner lookups in one pass.

    Deleted owners still resolve their own owner_id, so a live rental that
    points at them keeps its wing. For flats, a live owner row takes
    precedence over a deleted one; otherwise the first row wins.
    """
    owner_wing: Dict[int, int] = {}
    flat_wing: Dict[int, int] = {}
    flat_owner: Dict[int, int] = {}
    flat_from_live: Dict[int, bool] = {}

    for owner in owners or []:
        if not isinstance(owner, dict):
            continue

        owner_id = to_id_or_none(owner.get("owner_id"))
        wing_id = to_id_or_none(owner.get("wing_id"))
        flat_id = to_id_or_none(owner.get("flat_id"))
        live = not is_deleted(owner)

        if owner_id is not None and wing_id is not None:
            if owner_id not in owner_wing or live:
                owner_wing[owner_id] = wing_id

        if flat_id is None:
            continue

        # first live row wins; a deleted row only fills an empty slot
        if flat_from_live.get(flat_id):
            continue
        if flat_id in flat_from_live and not live:
            continue

        if wing_id is not None:
            flat_wing[flat_id] = wing_id
        else:
            flat_wing.pop(flat_id, None)
        if owner_id is not None:
            flat_owner[flat_id] = owner_id
        else:
            flat_owner.pop(flat_id, None)
        flat_from_live[flat_id] = live

    return JoinMaps(owner_wing=owner_wing, flat_wing=flat_wing, flat_owner=flat_owner)
