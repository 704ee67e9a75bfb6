"""
stats.py
Aggregate statistics and reports over snapshot collections (no storage access).
"""

from __future__ import annotations

from datetime import date
from typing import Iterable

import pandas as pd

import utils
from models import (
    House,
    Member,
    PaymentRecord,
    Product,
    STATUS_ACTIVE,
    STATUS_EXPIRED,
    STATUS_EXPIRING,
    Stats,
)


def _payment_month(payment: PaymentRecord) -> str:
    return utils.to_date(payment.paid_at).strftime("%Y-%m")


def compute_stats(
    houses: Iterable[House],
    members: Iterable[Member],
    payments: Iterable[PaymentRecord],
    products: Iterable[Product] = (),
    today: date | None = None,
) -> Stats:
    houses = list(houses)
    members = list(members)
    payments = list(payments)
    products = list(products)
    today = today or date.today()

    statuses = [utils.member_status(m, today) for m in members]
    expired = statuses.count(STATUS_EXPIRED)
    expiring = statuses.count(STATUS_EXPIRING)

    total_paid = float(sum(p.amount for p in payments))
    months = len({_payment_month(p) for p in payments}) or 1

    return Stats(
        total_houses=len(houses),
        total_members=len(members),
        total_products=len(products),
        total_monthly_fee=float(sum(m.monthly_fee for m in members)),
        total_paid=total_paid,
        avg_monthly_paid=total_paid / months,
        active_members=len(members) - expired - expiring,
        expiring_members=expiring,
        expired_members=expired,
    )


def house_summary(house_id: str, members: Iterable[Member], today: date | None = None) -> dict:
    """Member counts per status and expected monthly total for one house."""
    today = today or date.today()
    own = [m for m in members if m.house_id == house_id]
    statuses = [utils.member_status(m, today) for m in own]
    return {
        "total": len(own),
        "active": statuses.count(STATUS_ACTIVE),
        "expiring": statuses.count(STATUS_EXPIRING),
        "expired": statuses.count(STATUS_EXPIRED),
        "total_fee": float(sum(m.monthly_fee for m in own)),
    }


def expiring_soon(members: Iterable[Member], today: date | None = None) -> list[tuple[Member, int]]:
    """(member, days left) for members in the expiring window, soonest first."""
    today = today or date.today()
    rows = [(m, utils.days_until(m.expiration_date, today)) for m in members]
    rows = [(m, d) for m, d in rows if utils.compute_status(m.expiration_date, today) == STATUS_EXPIRING]
    return sorted(rows, key=lambda r: (r[1], r[0].name))


def expired_members(members: Iterable[Member], today: date | None = None) -> list[tuple[Member, int]]:
    """(member, days overdue) for expired members, most overdue first."""
    today = today or date.today()
    rows = [(m, -utils.days_until(m.expiration_date, today)) for m in members]
    rows = [(m, d) for m, d in rows if d > 0]
    return sorted(rows, key=lambda r: (-r[1], r[0].name))


def revenue_summary_by_month(payments: Iterable[PaymentRecord]) -> pd.DataFrame:
    df = pd.DataFrame(
        [{"month": _payment_month(p), "revenue": float(p.amount)} for p in payments]
    )
    if df.empty:
        return pd.DataFrame(columns=["month", "revenue"])
    df = df.groupby("month", as_index=False)["revenue"].sum()
    return df.sort_values("month", ascending=False).reset_index(drop=True)


def upcoming_payments(members: Iterable[Member], today: date | None = None, days: int = 7) -> list[tuple[Member, int]]:
    """(member, days until payment) for payment dates from today up to `days` ahead."""
    today = today or date.today()
    rows = []
    for m in members:
        if not m.payment_date:
            continue
        d = utils.days_until(m.payment_date, today)
        if 0 <= d <= days:
            rows.append((m, d))
    return sorted(rows, key=lambda r: (r[1], r[0].name))


def payment_ledger(
    payments: Iterable[PaymentRecord],
    members: Iterable[Member],
    houses: Iterable[House],
    products: Iterable[Product] = (),
) -> list[dict]:
    """
    Payments joined with member, house and product names, newest first.
    The product is the house's, else the member's own. Payments whose member
    no longer exists are left out.
    """
    member_by_id = {m.id: m for m in members}
    house_by_id = {h.id: h for h in houses}
    product_names = {p.id: p.name for p in products}

    rows = []
    for p in payments:
        member = member_by_id.get(p.member_id)
        if member is None:
            continue
        house = house_by_id.get(member.house_id)
        product_id = (house.product_id if house else None) or member.product_id
        rows.append(
            {
                "id": p.id,
                "member_id": member.id,
                "member_name": member.name,
                "house_name": house.name if house else "",
                "product_name": product_names.get(product_id, ""),
                "amount": float(p.amount),
                "paid_at": p.paid_at,
            }
        )
    return sorted(rows, key=lambda r: (r["paid_at"], r["id"]), reverse=True)
