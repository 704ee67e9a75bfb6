"""
models.py
Lightweight domain helpers (billing cycles, statuses, dataclasses).
"""

from __future__ import annotations
from dataclasses import dataclass

# Billing cycle durations in months (used for expiration rollover on payment)
CYCLE_MONTHS = {
    "monthly": 1,
    "6months": 6,
    "yearly": 12,
}
DEFAULT_CYCLE = "monthly"

# Presentation labels only
CYCLE_LABELS = {
    "monthly": "รายเดือน",
    "6months": "ราย 6 เดือน",
    "yearly": "รายปี",
}

STATUS_ACTIVE = "active"
STATUS_EXPIRING = "expiring"
STATUS_EXPIRED = "expired"
STATUSES = (STATUS_ACTIVE, STATUS_EXPIRING, STATUS_EXPIRED)

STATUS_LABELS = {
    STATUS_ACTIVE: "ใช้งานอยู่",
    STATUS_EXPIRING: "ใกล้หมดอายุ",
    STATUS_EXPIRED: "หมดอายุแล้ว",
}

# Days ahead (inclusive) that still count as "expiring"
EXPIRING_WINDOW_DAYS = 7

DEFAULT_PRODUCT_ICON = "📦"
DEFAULT_PRODUCT_COLOR = "#6366f1"


@dataclass(frozen=True)
class House:
    id: str
    name: str
    description: str = ""
    product_id: str | None = None
    created_at: str = ""


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    icon: str = DEFAULT_PRODUCT_ICON
    color: str = DEFAULT_PRODUCT_COLOR
    created_at: str = ""


@dataclass(frozen=True)
class Member:
    id: str
    house_id: str
    name: str
    email: str = ""
    phone: str = ""
    monthly_fee: float = 0.0
    billing_cycle: str = DEFAULT_CYCLE  # monthly / 6months / yearly
    payment_date: str = ""
    expiration_date: str = ""
    product_id: str | None = None
    created_at: str = ""


@dataclass(frozen=True)
class PaymentRecord:
    id: str
    member_id: str
    amount: float
    paid_at: str  # ISO timestamp, assigned when recorded


@dataclass(frozen=True)
class Stats:
    total_houses: int
    total_members: int
    total_products: int
    total_monthly_fee: float
    total_paid: float  # all-time sum of the payment ledger
    avg_monthly_paid: float
    active_members: int
    expiring_members: int
    expired_members: int

    def to_dict(self) -> dict:
        return {
            "totalHouses": self.total_houses,
            "totalMembers": self.total_members,
            "totalProducts": self.total_products,
            "totalMonthlyFee": self.total_monthly_fee,
            "totalPaid": self.total_paid,
            "avgMonthlyPaid": self.avg_monthly_paid,
            "activeMembers": self.active_members,
            "expiringMembers": self.expiring_members,
            "expiredMembers": self.expired_members,
        }
