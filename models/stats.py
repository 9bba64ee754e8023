# models/stats.py

from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class DashboardStats(BaseModel):
    """Presentation values of one aggregation cycle."""
    total_owners: int = 0
    total_flats: int = 0
    total_rentals: int = 0
    total_meetings: int = 0
    total_maintenance_amount: float = 0.0
    total_maintenance_collected: float = 0.0
    total_maintenance_pending: float = 0.0
    total_expense_amount: float = 0.0
    total_activity_payment_amount: float = 0.0
    total_activity_expense_amount: float = 0.0
    net_balance: float = 0.0
    collection_rate: float = 0.0
    collection_rate_percent: float = Field(0.0, description="Collected / billed, rounded to one decimal")


class WingRead(BaseModel):
    wing_id: Optional[int] = None
    wing_name: Optional[str] = None


class DashboardRead(BaseModel):
    stats: DashboardStats
    counts: Dict[str, int] = {}
    wings: List[WingRead] = []
    generated_at: str
