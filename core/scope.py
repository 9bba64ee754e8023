# core/scope.py

"""
Scope predicates: which records a viewer may see.

Wing scoping applies to every viewer that has a wing assignment. Owner-role
viewers are narrowed further to their own records, after wing scoping.
All functions here are total: bad ids mean "not visible", never an error.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from core.coercion import is_deleted, to_id_or_none
from core.joins import JoinMaps, build_join_maps
from core.security_context import SecurityContext


Record = Dict[str, Any]
Resolver = Callable[[Record], Optional[int]]

COLLECTION_NAMES = (
    "owners",
    "rentals",
    "maintenance",
    "expenses",
    "activity_payments",
    "activity_expenses",
    "meetings",
    "parking",
)


# -----------------------------------------------------
# Record-level predicates
# -----------------------------------------------------
def is_wing_visible(record: Any, resolved_wing_id: Any, viewer_wing_id: Any) -> bool:
    if not isinstance(record, dict):
        return False

    viewer_wing = to_id_or_none(viewer_wing_id)
    if viewer_wing_id is None:
        return True
    if viewer_wing is None:
        # a wing was requested but it is not a usable id
        return False

    resolved = to_id_or_none(resolved_wing_id)
    return resolved is not None and resolved == viewer_wing


def is_owner_visible(record: Any, resolved_owner_id: Any, viewer_owner_id: Any) -> bool:
    if not isinstance(record, dict):
        return False

    viewer_owner = to_id_or_none(viewer_owner_id)
    resolved = to_id_or_none(resolved_owner_id)
    return viewer_owner is not None and resolved is not None and resolved == viewer_owner


def has_direct_wing(record: Record) -> bool:
    """False when wing_id is absent, null or blank (society-wide record)."""
    raw = record.get("wing_id")
    if raw is None:
        return False
    if isinstance(raw, str) and not raw.strip():
        return False
    return True


# -----------------------------------------------------
# Collection-level scoping
# -----------------------------------------------------
def _scope(
    ctx: SecurityContext,
    records: Optional[Iterable[Any]],
    wing_of: Resolver,
    owner_of: Optional[Resolver],
    include_deleted: bool = False,
) -> List[Record]:
    if ctx.owner_unresolved:
        return []

    scoped = []
    for record in records or []:
        if not isinstance(record, dict):
            continue
        if not include_deleted and is_deleted(record):
            continue
        if not is_wing_visible(record, wing_of(record), ctx.wing_id):
            continue
        if ctx.is_owner and owner_of is not None:
            if not is_owner_visible(record, owner_of(record), ctx.owner_id):
                continue
        scoped.append(record)
    return scoped


def _direct_wing(record: Record) -> Optional[int]:
    return to_id_or_none(record.get("wing_id"))


def _direct_owner(record: Record) -> Optional[int]:
    return to_id_or_none(record.get("owner_id"))


def scope_owners(ctx: SecurityContext, owners, include_deleted: bool = False) -> List[Record]:
    return _scope(ctx, owners, _direct_wing, _direct_owner, include_deleted)


def scope_rentals(ctx: SecurityContext, rentals, joins: JoinMaps, include_deleted: bool = False) -> List[Record]:
    return _scope(
        ctx, rentals,
        lambda r: joins.wing_for_owner(r.get("owner_id")),
        _direct_owner,
        include_deleted,
    )


def scope_maintenance(ctx: SecurityContext, details, joins: JoinMaps, include_deleted: bool = False) -> List[Record]:
    return _scope(
        ctx, details,
        lambda d: joins.wing_for_owner(d.get("owner_id")),
        _direct_owner,
        include_deleted,
    )


def scope_parking(ctx: SecurityContext, parking, joins: JoinMaps, include_deleted: bool = False) -> List[Record]:
    return _scope(
        ctx, parking,
        lambda p: joins.wing_for_owner(p.get("owner_id")),
        _direct_owner,
        include_deleted,
    )


def scope_activity_payments(ctx: SecurityContext, payments, joins: JoinMaps, include_deleted: bool = False) -> List[Record]:
    return _scope(
        ctx, payments,
        lambda p: joins.wing_for_flat(p.get("flat_id")),
        lambda p: joins.owner_for_flat(p.get("flat_id")),
        include_deleted,
    )


def scope_expenses(ctx: SecurityContext, expenses, include_deleted: bool = False) -> List[Record]:
    # no owner key: owners see their wing's expense lines
    return _scope(ctx, expenses, _direct_wing, None, include_deleted)


def scope_meetings(ctx: SecurityContext, meetings, include_deleted: bool = False) -> List[Record]:
    return _scope(ctx, meetings, _direct_wing, None, include_deleted)


def scope_activity_expenses(ctx: SecurityContext, expenses, include_deleted: bool = False) -> List[Record]:
    """
    Wing-tagged lines behave like expenses. Society-wide lines (no wing_id)
    are shown to every admin/committee viewer and never to owners.
    """
    if ctx.owner_unresolved:
        return []

    scoped = []
    for record in expenses or []:
        if not isinstance(record, dict):
            continue
        if not include_deleted and is_deleted(record):
            continue
        if has_direct_wing(record):
            if is_wing_visible(record, record.get("wing_id"), ctx.wing_id):
                scoped.append(record)
        elif not ctx.is_owner:
            scoped.append(record)
    return scoped


# -----------------------------------------------------
# Whole-snapshot scoping
# -----------------------------------------------------
@dataclass(frozen=True)
class ScopedCollections:
    owners: List[Record] = field(default_factory=list)
    rentals: List[Record] = field(default_factory=list)
    maintenance: List[Record] = field(default_factory=list)
    expenses: List[Record] = field(default_factory=list)
    activity_payments: List[Record] = field(default_factory=list)
    activity_expenses: List[Record] = field(default_factory=list)
    meetings: List[Record] = field(default_factory=list)
    parking: List[Record] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return {name: len(getattr(self, name)) for name in COLLECTION_NAMES}


def scope_collections(
    ctx: SecurityContext,
    raw: Mapping[str, Optional[List[Record]]],
    include_deleted: bool = False,
) -> ScopedCollections:
    """
    Scope every collection of one fetch cycle.

    The join maps come from the same owner list that is scoped here, so
    both maps and the owner view always describe one snapshot.
    """
    owners = raw.get("owners") or []
    joins = build_join_maps(owners)

    return ScopedCollections(
        owners=scope_owners(ctx, owners, include_deleted),
        rentals=scope_rentals(ctx, raw.get("rentals"), joins, include_deleted),
        maintenance=scope_maintenance(ctx, raw.get("maintenance"), joins, include_deleted),
        expenses=scope_expenses(ctx, raw.get("expenses"), include_deleted),
        activity_payments=scope_activity_payments(ctx, raw.get("activity_payments"), joins, include_deleted),
        activity_expenses=scope_activity_expenses(ctx, raw.get("activity_expenses"), include_deleted),
        meetings=scope_meetings(ctx, raw.get("meetings"), include_deleted),
        parking=scope_parking(ctx, raw.get("parking"), joins, include_deleted),
    )
