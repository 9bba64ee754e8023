# services/dashboard_service.py

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List

from core.aggregation import StatsSnapshot, compute_stats
from core.coercion import to_id_or_none
from core.logging_config import logger
from core.scope import COLLECTION_NAMES, ScopedCollections, scope_collections
from core.security_context import SecurityContext
from core.upstream_client import UpstreamClient


# Everything the stats depend on. Fetched all-or-nothing.
FINANCIAL_COLLECTIONS = COLLECTION_NAMES

# Cosmetic only. Fetched best-effort.
REFERENCE_COLLECTIONS = ("wings",)


def _wing_name(wing: Dict[str, Any]):
    name = wing.get("wing_name")
    return None if name is None else str(name)


@dataclass(frozen=True)
class DashboardSnapshot:
    stats: StatsSnapshot
    scoped: ScopedCollections
    wings: List[Dict[str, Any]] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stats": self.stats.to_dict(),
            "counts": self.scoped.counts(),
            "wings": [
                {"wing_id": to_id_or_none(w.get("wing_id")), "wing_name": _wing_name(w)}
                for w in self.wings if isinstance(w, dict)
            ],
            "generated_at": self.generated_at.isoformat(),
        }


class DashboardService:
    def __init__(self, client: UpstreamClient):
        self.client = client

    async def load_scoped(self, ctx: SecurityContext) -> ScopedCollections:
        """Fetch every financial collection, then scope from that one snapshot."""
        raw = await self.client.fetch_all_or_nothing(FINANCIAL_COLLECTIONS)
        return scope_collections(ctx, raw)

    async def run_cycle(self, ctx: SecurityContext) -> DashboardSnapshot:
        """
        One aggregation cycle: fetch → scope → compute.
        Raises UpstreamFetchError if any financial collection fails.
        """
        scoped = await self.load_scoped(ctx)
        stats = compute_stats(scoped)

        reference = await self.client.fetch_best_effort(REFERENCE_COLLECTIONS)
        wings = reference.get("wings", [])
        if ctx.is_wing_scoped:
            wings = [w for w in wings if isinstance(w, dict) and to_id_or_none(w.get("wing_id")) == ctx.wing_id]

        logger.info(
            f"Dashboard cycle for {ctx.role.value} (wing={ctx.wing_id}, owner={ctx.owner_id}): "
            f"{stats.total_owners} owners, collected {stats.total_maintenance_collected}"
        )
        return DashboardSnapshot(stats=stats, scoped=scoped, wings=wings)
