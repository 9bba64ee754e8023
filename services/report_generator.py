# services/report_generator.py

from typing import Optional, Dict, Any, List, Iterable, Sequence
from datetime import date, datetime, time
from decimal import Decimal
import math

from dateutil import parser as date_parser

from core.coercion import ZERO, is_deleted, money, to_id_or_none, to_number_or_zero
from core.scope import ScopedCollections
from models.enums import OwnershipType, PaymentMode


PARKING_PAGE_SIZE = 10


# ============================================================
# Type Definitions
# ============================================================
class DateRange:
    """Inclusive date window; the whole end day counts."""
    def __init__(self, start_date: Optional[date] = None, end_date: Optional[date] = None):
        self.start_date = start_date
        self.end_date = end_date

    @property
    def active(self) -> bool:
        # both ends required, a half-open filter is ignored
        return self.start_date is not None and self.end_date is not None

    def contains(self, when: datetime) -> bool:
        start = datetime.combine(self.start_date, time.min)
        end = datetime.combine(self.end_date, time.max)
        return start <= when <= end


class CompleteReport:
    """Per-payment-mode money flows and balances."""
    def __init__(
        self,
        maintenance_collected_by_mode: Dict[str, Decimal],
        expense_by_mode: Dict[str, Decimal],
        activity_payment_by_mode: Dict[str, Decimal],
        activity_expense_by_mode: Dict[str, Decimal],
    ):
        self.maintenance_collected_by_mode = maintenance_collected_by_mode
        self.expense_by_mode = expense_by_mode
        self.activity_payment_by_mode = activity_payment_by_mode
        self.activity_expense_by_mode = activity_expense_by_mode

        self.modes = sorted(
            set(maintenance_collected_by_mode)
            | set(expense_by_mode)
            | set(activity_payment_by_mode)
            | set(activity_expense_by_mode)
        )

        self.maintenance_balance_by_mode: Dict[str, Decimal] = {}
        self.activity_balance_by_mode: Dict[str, Decimal] = {}
        self.total_balance_by_mode: Dict[str, Decimal] = {}
        for mode in self.modes:
            maintenance_balance = maintenance_collected_by_mode.get(mode, ZERO) - expense_by_mode.get(mode, ZERO)
            activity_balance = activity_payment_by_mode.get(mode, ZERO) - activity_expense_by_mode.get(mode, ZERO)
            self.maintenance_balance_by_mode[mode] = maintenance_balance
            self.activity_balance_by_mode[mode] = activity_balance
            self.total_balance_by_mode[mode] = maintenance_balance + activity_balance

        self.total_maintenance_collected = sum(maintenance_collected_by_mode.values(), ZERO)
        self.total_expense = sum(expense_by_mode.values(), ZERO)
        self.total_activity_payment = sum(activity_payment_by_mode.values(), ZERO)
        self.total_activity_expense = sum(activity_expense_by_mode.values(), ZERO)

        self.total_maintenance_balance = self.total_maintenance_collected - self.total_expense
        self.total_activity_balance = self.total_activity_payment - self.total_activity_expense
        self.grand_total_balance = self.total_maintenance_balance + self.total_activity_balance

    def to_dict(self) -> Dict[str, Any]:
        def by_mode(values: Dict[str, Decimal]) -> Dict[str, float]:
            return {mode: money(amount) for mode, amount in values.items()}

        return {
            "modes": self.modes,
            "maintenance_collected_by_mode": by_mode(self.maintenance_collected_by_mode),
            "expense_by_mode": by_mode(self.expense_by_mode),
            "maintenance_balance_by_mode": by_mode(self.maintenance_balance_by_mode),
            "activity_payment_by_mode": by_mode(self.activity_payment_by_mode),
            "activity_expense_by_mode": by_mode(self.activity_expense_by_mode),
            "activity_balance_by_mode": by_mode(self.activity_balance_by_mode),
            "total_balance_by_mode": by_mode(self.total_balance_by_mode),
            "total_maintenance_collected": money(self.total_maintenance_collected),
            "total_expense": money(self.total_expense),
            "total_maintenance_balance": money(self.total_maintenance_balance),
            "total_activity_payment": money(self.total_activity_payment),
            "total_activity_expense": money(self.total_activity_expense),
            "total_activity_balance": money(self.total_activity_balance),
            "grand_total_balance": money(self.grand_total_balance),
        }


class Page:
    def __init__(self, items: List[Dict[str, Any]], page: int, total_items: int, page_size: int):
        self.items = items
        self.page = page
        self.total_items = total_items
        self.page_size = page_size
        self.total_pages = math.ceil(total_items / page_size) if page_size else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": self.items,
            "page": self.page,
            "page_size": self.page_size,
            "total_items": self.total_items,
            "total_pages": self.total_pages,
        }


# ============================================================
# Date helpers
# ============================================================
def parse_date(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if not value:
        return None
    try:
        return date_parser.parse(str(value)).replace(tzinfo=None)
    except (ValueError, OverflowError):
        return None


def filter_by_date_range(
    records: Iterable[Dict[str, Any]],
    date_range: DateRange,
    date_fields: Sequence[str],
    include_undated: bool = False,
) -> List[Dict[str, Any]]:
    """
    Keep records whose first present date field falls inside the range.
    Without an active range everything passes.
    """
    records = list(records or [])
    if not date_range.active:
        return records

    kept = []
    for record in records:
        when = None
        for field_name in date_fields:
            when = parse_date(record.get(field_name))
            if when is not None:
                break
        if when is None:
            if include_undated:
                kept.append(record)
            continue
        if date_range.contains(when):
            kept.append(record)
    return kept


# ============================================================
# Complete report
# ============================================================
def normalize_payment_mode(mode: Any) -> str:
    if not mode or not str(mode).strip():
        return PaymentMode.other.value

    raw = str(mode).strip()
    lowered = raw.lower()
    if "cash" in lowered:
        return PaymentMode.cash.value
    if "upi" in lowered:
        return PaymentMode.upi.value
    if "bank" in lowered or "transfer" in lowered:
        return PaymentMode.bank_transfer.value
    return raw


def group_by_payment_mode(records: Iterable[Dict[str, Any]], amount_field: str) -> Dict[str, Decimal]:
    grouped: Dict[str, Decimal] = {}
    for record in records or []:
        if is_deleted(record):
            continue
        mode = normalize_payment_mode(record.get("payment_mode"))
        grouped[mode] = grouped.get(mode, ZERO) + to_number_or_zero(record.get(amount_field))
    return grouped


def build_complete_report(scoped: ScopedCollections, date_range: Optional[DateRange] = None) -> CompleteReport:
    """
    Money in and out per payment mode for the viewer's scope.

    Maintenance collected is the sum of paid_amount on maintenance details;
    undated maintenance lines and activity expenses stay in a dated report.
    """
    date_range = date_range or DateRange()

    maintenance = filter_by_date_range(
        scoped.maintenance, date_range, ("bill_start_date", "created_at"), include_undated=True
    )
    activity_payments = filter_by_date_range(scoped.activity_payments, date_range, ("payment_date",))
    activity_expenses = filter_by_date_range(
        scoped.activity_expenses, date_range, ("date", "created_at"), include_undated=True
    )
    expenses = filter_by_date_range(scoped.expenses, date_range, ("date",))

    return CompleteReport(
        maintenance_collected_by_mode=group_by_payment_mode(maintenance, "paid_amount"),
        expense_by_mode=group_by_payment_mode(expenses, "amount"),
        activity_payment_by_mode=group_by_payment_mode(activity_payments, "amount"),
        activity_expense_by_mode=group_by_payment_mode(activity_expenses, "amount"),
    )


# ============================================================
# Parking report
# ============================================================
def is_rental_active(rental: Dict[str, Any], today: date) -> bool:
    if not isinstance(rental, dict) or is_deleted(rental):
        return False
    start = parse_date(rental.get("start_date"))
    end = parse_date(rental.get("end_date"))
    if start is None or end is None:
        return False
    return start.date() <= today <= end.date()


def find_active_rental(rentals: Iterable[Dict[str, Any]], owner_id: Any, today: date) -> Optional[Dict[str, Any]]:
    key = to_id_or_none(owner_id)
    if key is None:
        return None
    for rental in rentals or []:
        if to_id_or_none(rental.get("owner_id")) == key and is_rental_active(rental, today):
            return rental
    return None


def ownership_of(parking: Dict[str, Any]) -> str:
    ownership = str(parking.get("ownership_type") or "").strip()
    if ownership == OwnershipType.rental.value:
        return OwnershipType.rental.value
    if not ownership or ownership == OwnershipType.owner.value:
        return OwnershipType.owner.value
    return ownership


def enrich_parking(scoped: ScopedCollections, today: date) -> List[Dict[str, Any]]:
    owners_by_id = {}
    for owner in scoped.owners:
        owner_id = to_id_or_none(owner.get("owner_id"))
        if owner_id is not None:
            owners_by_id.setdefault(owner_id, owner)

    enriched = []
    for parking in scoped.parking:
        owner = owners_by_id.get(to_id_or_none(parking.get("owner_id"))) or {}
        rental = find_active_rental(scoped.rentals, parking.get("owner_id"), today) or {}
        enriched.append({
            **parking,
            "owner_name": owner.get("owner_name") or "-",
            "owner_contactno": owner.get("owner_contactno") or "-",
            "tenant_name": rental.get("tenant_name") or "-",
            "tenant_contactno": rental.get("tenant_contactno") or rental.get("tenant_altercontactno") or "-",
        })
    return enriched


def _matches(parking: Dict[str, Any], search: str, fields: Sequence[str]) -> bool:
    if not search:
        return True
    needle = search.strip().lower()
    return any(needle in str(parking.get(f) or "").lower() for f in fields)


def _paginate(items: List[Dict[str, Any]], page: int, page_size: int) -> Page:
    page = max(1, page)
    start = (page - 1) * page_size
    return Page(items[start:start + page_size], page, len(items), page_size)


def vehicle_counts(parking: Iterable[Dict[str, Any]]) -> Dict[int, int]:
    counts: Dict[int, int] = {}
    for p in parking:
        owner_id = to_id_or_none(p.get("owner_id"))
        if owner_id is not None:
            counts[owner_id] = counts.get(owner_id, 0) + 1
    return counts


def build_parking_report(
    scoped: ScopedCollections,
    today: Optional[date] = None,
    search: str = "",
    page: int = 1,
    rental_page: int = 1,
    page_size: int = PARKING_PAGE_SIZE,
) -> Dict[str, Any]:
    """
    Parking split into owner-held and rented slots, each joined to the
    owner and the owner's currently active tenant.
    """
    today = today or date.today()
    enriched = enrich_parking(scoped, today)

    owner_parking = [
        p for p in enriched
        if ownership_of(p) == OwnershipType.owner.value
        and _matches(p, search, ("owner_name", "vehical_type", "vehical_no"))
    ]
    rental_parking = [
        p for p in enriched
        if ownership_of(p) == OwnershipType.rental.value
        and _matches(p, search, ("owner_name", "tenant_name", "vehical_type", "vehical_no"))
    ]

    return {
        "owner_parking": _paginate(owner_parking, page, page_size).to_dict(),
        "rental_parking": _paginate(rental_parking, rental_page, page_size).to_dict(),
        "owner_vehicle_counts": vehicle_counts(owner_parking),
        "rental_vehicle_counts": vehicle_counts(rental_parking),
        "total_vehicles": len(owner_parking) + len(rental_parking),
    }
