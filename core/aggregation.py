# core/aggregation.py

"""
Dashboard statistics from scoped collections.

compute_stats is a pure reducer: it never fetches, never mutates its input
and never raises on bad numbers. Money is summed as Decimal so that
pending == amount - collected holds exactly.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable

from core.coercion import ZERO, is_deleted, money, to_id_or_none, to_number_or_zero
from core.scope import ScopedCollections


@dataclass(frozen=True)
class StatsSnapshot:
    total_owners: int = 0
    total_flats: int = 0
    total_rentals: int = 0
    total_meetings: int = 0
    total_maintenance_amount: Decimal = ZERO
    total_maintenance_collected: Decimal = ZERO
    total_maintenance_pending: Decimal = ZERO
    total_expense_amount: Decimal = ZERO
    total_activity_payment_amount: Decimal = ZERO
    total_activity_expense_amount: Decimal = ZERO
    net_balance: Decimal = ZERO
    collection_rate: Decimal = ZERO

    @property
    def collection_rate_percent(self) -> float:
        percent = (self.collection_rate * 100).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
        return float(percent)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_owners": self.total_owners,
            "total_flats": self.total_flats,
            "total_rentals": self.total_rentals,
            "total_meetings": self.total_meetings,
            "total_maintenance_amount": money(self.total_maintenance_amount),
            "total_maintenance_collected": money(self.total_maintenance_collected),
            "total_maintenance_pending": money(self.total_maintenance_pending),
            "total_expense_amount": money(self.total_expense_amount),
            "total_activity_payment_amount": money(self.total_activity_payment_amount),
            "total_activity_expense_amount": money(self.total_activity_expense_amount),
            "net_balance": money(self.net_balance),
            "collection_rate": float(self.collection_rate),
            "collection_rate_percent": self.collection_rate_percent,
        }


def _live(records: Iterable[Any]):
    return [r for r in records or [] if isinstance(r, dict) and not is_deleted(r)]


def sum_field(records: Iterable[Any], field_name: str) -> Decimal:
    """Sum a monetary field over live records, coercing each value."""
    total = ZERO
    for record in _live(records):
        total += to_number_or_zero(record.get(field_name))
    return total


def count_live(records: Iterable[Any]) -> int:
    return len(_live(records))


def count_distinct_flats(owners: Iterable[Any]) -> int:
    flats = set()
    for owner in _live(owners):
        flat_id = to_id_or_none(owner.get("flat_id"))
        if flat_id is not None:
            flats.add(flat_id)
    return len(flats)


def collection_rate(collected: Decimal, amount: Decimal) -> Decimal:
    if amount <= ZERO:
        return ZERO
    rate = collected / amount
    return rate if rate > ZERO else ZERO


def compute_stats(scoped: ScopedCollections) -> StatsSnapshot:
    maintenance_amount = sum_field(scoped.maintenance, "total_amount")
    maintenance_collected = sum_field(scoped.maintenance, "paid_amount")
    expense_amount = sum_field(scoped.expenses, "amount")
    activity_payment_amount = sum_field(scoped.activity_payments, "amount")
    activity_expense_amount = sum_field(scoped.activity_expenses, "amount")

    return StatsSnapshot(
        total_owners=count_live(scoped.owners),
        total_flats=count_distinct_flats(scoped.owners),
        total_rentals=count_live(scoped.rentals),
        total_meetings=count_live(scoped.meetings),
        total_maintenance_amount=maintenance_amount,
        total_maintenance_collected=maintenance_collected,
        total_maintenance_pending=maintenance_amount - maintenance_collected,
        total_expense_amount=expense_amount,
        total_activity_payment_amount=activity_payment_amount,
        total_activity_expense_amount=activity_expense_amount,
        net_balance=maintenance_collected - expense_amount - activity_expense_amount,
        collection_rate=collection_rate(maintenance_collected, maintenance_amount),
    )
