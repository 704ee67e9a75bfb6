"""
services.py
Operations behind the UI: validation, referential checks, payments, reports, CSV.
Stats and reports are always computed from a fresh repository read.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from datetime import date, timedelta
from typing import Callable

import pandas as pd

import csv_io
import stats
import utils
from errors import NotFoundError, ValidationError
from models import (
    DEFAULT_PRODUCT_COLOR,
    DEFAULT_PRODUCT_ICON,
    EXPIRING_WINDOW_DAYS,
    STATUSES,
    House,
    Member,
    PaymentRecord,
    Product,
    Stats,
)
from repository import Repository

logger = logging.getLogger(__name__)


class SubscriptionService:
    def __init__(
        self,
        repo: Repository,
        today: Callable[[], date] = date.today,
        new_id: Callable[[], str] = utils.new_id,
        now: Callable[[], str] = utils.now_iso,
    ):
        self.repo = repo
        self._today = today
        self._new_id = new_id
        self._now = now

    def today(self) -> date:
        return self._today()

    # ---------- Houses ----------

    def list_houses(self, search: str = "") -> list[House]:
        houses = self.repo.list_houses()
        needle = (search or "").strip().casefold()
        if needle:
            houses = [h for h in houses if needle in h.name.casefold() or needle in h.description.casefold()]
        return houses

    def get_house(self, house_id: str) -> House:
        house = self.repo.get_house(house_id)
        if house is None:
            raise NotFoundError("House", house_id)
        return house

    def _check_product(self, product_id: str | None) -> str | None:
        product_id = (product_id or "").strip() or None
        if product_id is not None and self.repo.get_product(product_id) is None:
            raise NotFoundError("Product", product_id)
        return product_id

    def create_house(self, name: str, description: str = "", product_id: str | None = None) -> House:
        name = (name or "").strip()
        if not name:
            raise ValidationError("House name is required.")
        house = House(
            id=self._new_id(),
            name=name,
            description=(description or "").strip(),
            product_id=self._check_product(product_id),
            created_at=self._now(),
        )
        self.repo.add_house(house)
        logger.info("House created: %s (%s)", house.name, house.id)
        return house

    def update_house(self, house_id: str, name: str, description: str = "", product_id: str | None = None) -> House:
        name = (name or "").strip()
        if not name:
            raise ValidationError("House name is required.")
        current = self.get_house(house_id)
        house = replace(
            current,
            name=name,
            description=(description or "").strip(),
            product_id=self._check_product(product_id),
        )
        self.repo.update_house(house)
        return house

    def delete_house(self, house_id: str) -> None:
        if not self.repo.delete_house(house_id):
            raise NotFoundError("House", house_id)
        logger.info("House deleted with its members: %s", house_id)

    def house_summaries(self, search: str = "") -> list[tuple[House, dict]]:
        members = self.repo.list_members()
        today = self.today()
        return [(h, stats.house_summary(h.id, members, today)) for h in self.list_houses(search)]

    # ---------- Products ----------

    def list_products(self) -> list[Product]:
        return self.repo.list_products()

    def get_product(self, product_id: str) -> Product:
        product = self.repo.get_product(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    def create_product(self, name: str, icon: str | None = None, color: str | None = None) -> Product:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Product name is required.")
        product = Product(
            id=self._new_id(),
            name=name,
            icon=(icon or "").strip() or DEFAULT_PRODUCT_ICON,
            color=(color or "").strip() or DEFAULT_PRODUCT_COLOR,
            created_at=self._now(),
        )
        self.repo.add_product(product)
        logger.info("Product created: %s (%s)", product.name, product.id)
        return product

    def update_product(self, product_id: str, name: str, icon: str | None = None, color: str | None = None) -> Product:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Product name is required.")
        product = replace(
            self.get_product(product_id),
            name=name,
            icon=(icon or "").strip() or DEFAULT_PRODUCT_ICON,
            color=(color or "").strip() or DEFAULT_PRODUCT_COLOR,
        )
        self.repo.update_product(product)
        return product

    def delete_product(self, product_id: str) -> None:
        if not self.repo.delete_product(product_id):
            raise NotFoundError("Product", product_id)
        logger.info("Product deleted, references cleared: %s", product_id)

    def house_count_for_product(self, product_id: str) -> int:
        return sum(1 for h in self.repo.list_houses() if h.product_id == product_id)

    # ---------- Members ----------

    def _prepare_member(self, data: dict) -> dict:
        fields = utils.normalize_member_fields(data, self.today())
        errors = utils.validate_member_inputs(fields)
        if errors:
            raise ValidationError(errors)
        if self.repo.get_house(fields["house_id"]) is None:
            raise NotFoundError("House", fields["house_id"])
        fields["product_id"] = self._check_product(fields["product_id"])
        fields["payment_date"] = utils.to_date(fields["payment_date"]).isoformat()
        fields["expiration_date"] = utils.to_date(fields["expiration_date"]).isoformat()
        return fields

    def list_members(self, house_id: str | None = None, status: str | None = None, search: str = "") -> list[Member]:
        if status is not None and status not in STATUSES:
            raise ValidationError(f"Unknown status filter: {status}")
        members = self.repo.list_members(house_id)
        if status is not None:
            today = self.today()
            members = [m for m in members if utils.member_status(m, today) == status]
        needle = (search or "").strip().casefold()
        if needle:
            members = [
                m for m in members
                if needle in m.name.casefold() or needle in m.email.casefold() or needle in m.phone
            ]
        return members

    def get_member(self, member_id: str) -> Member:
        member = self.repo.get_member(member_id)
        if member is None:
            raise NotFoundError("Member", member_id)
        return member

    def member_status(self, member: Member) -> str:
        return utils.member_status(member, self.today())

    def create_member(self, data: dict) -> Member:
        fields = self._prepare_member(data)
        member = Member(id=self._new_id(), created_at=self._now(), **fields)
        self.repo.add_member(member)
        logger.info("Member created: %s in house %s", member.name, member.house_id)
        return member

    def update_member(self, member_id: str, data: dict) -> Member:
        current = self.get_member(member_id)
        fields = self._prepare_member(data)
        member = replace(current, **fields)
        self.repo.update_member(member)
        return member

    def delete_member(self, member_id: str) -> None:
        if not self.repo.delete_member(member_id):
            raise NotFoundError("Member", member_id)
        logger.info("Member deleted with payment history: %s", member_id)

    # ---------- Payments ----------

    def suggest_expiration(self, member_id: str) -> date:
        """New expiration if the member pays today (today + one billing cycle)."""
        member = self.get_member(member_id)
        return utils.next_expiration(self.today(), member.billing_cycle)

    def record_payment(self, member_id: str, amount=None, new_expiration_date=None) -> tuple[Member, PaymentRecord]:
        """
        Append a payment to the ledger and move the member's expiration forward.
        amount defaults to the member's fee; the expiration defaults to the suggestion.
        """
        member = self.get_member(member_id)

        if amount is None or (isinstance(amount, str) and not amount.strip()):
            amount = member.monthly_fee
        try:
            amount = float(amount)
        except (TypeError, ValueError):
            raise ValidationError("Amount must be numeric.") from None
        if not math.isfinite(amount):
            raise ValidationError("Amount must be a finite number.")
        if amount < 0:
            raise ValidationError("Amount must not be negative.")

        if new_expiration_date is None or new_expiration_date == "":
            expiration = utils.next_expiration(self.today(), member.billing_cycle)
        elif utils.is_iso_date(new_expiration_date):
            expiration = utils.to_date(new_expiration_date)
        else:
            raise ValidationError("New expiration date must be a valid ISO date (YYYY-MM-DD).")

        payment = PaymentRecord(id=self._new_id(), member_id=member.id, amount=amount, paid_at=self._now())
        member = replace(
            member,
            payment_date=self.today().isoformat(),
            expiration_date=expiration.isoformat(),
        )
        if not self.repo.record_payment(payment, member):
            raise NotFoundError("Member", member_id)
        logger.info("Payment %.2f recorded for %s, expires %s", amount, member.id, member.expiration_date)
        return member, payment

    def payment_history(self, member_id: str | None = None) -> list[PaymentRecord]:
        if member_id is not None:
            self.get_member(member_id)
        return self.repo.list_payments(member_id)

    def payment_ledger(self) -> list[dict]:
        """Every payment with its member, house and product names, newest first."""
        return stats.payment_ledger(
            self.repo.list_payments(),
            self.repo.list_members(),
            self.repo.list_houses(),
            self.repo.list_products(),
        )

    # ---------- Reports ----------

    def stats(self) -> Stats:
        return stats.compute_stats(
            self.repo.list_houses(),
            self.repo.list_members(),
            self.repo.list_payments(),
            self.repo.list_products(),
            today=self.today(),
        )

    def expiring_soon(self) -> list[tuple[Member, int]]:
        return stats.expiring_soon(self.repo.list_members(), self.today())

    def expired(self) -> list[tuple[Member, int]]:
        return stats.expired_members(self.repo.list_members(), self.today())

    def upcoming_payments(self, days: int = EXPIRING_WINDOW_DAYS) -> list[tuple[Member, int]]:
        return stats.upcoming_payments(self.repo.list_members(), self.today(), days)

    def revenue_by_month(self) -> pd.DataFrame:
        return stats.revenue_summary_by_month(self.repo.list_payments())

    # ---------- CSV ----------

    def export_members_csv(self) -> str:
        return csv_io.members_to_csv(self.repo.list_members(), self.repo.list_houses())

    def import_members_csv(self, text: str, house_id: str) -> csv_io.ImportResult:
        self.get_house(house_id)
        result = csv_io.parse_members_csv(text, house_id, today=self.today())
        for record in result.records:
            result.inserted.append(self.repo.add_member(Member(id=self._new_id(), created_at=self._now(), **record)))
        result.imported_count = len(result.inserted)
        logger.info(
            "CSV import into %s: %d imported, %d skipped", house_id, result.imported_count, len(result.skipped)
        )
        return result

    # ---------- Sample data ----------

    def load_sample_data(self) -> None:
        """
        Replace houses/members/payments with 5 houses and 10 members spread over
        all billing cycles and statuses. Products are kept.
        """
        self.repo.clear()
        today = self.today()
        products = self.repo.list_products()

        houses = []
        for i, name in enumerate(["บ้านที่ 1", "บ้านที่ 2", "บ้านที่ 3", "บ้านที่ 4", "บ้านที่ 5"]):
            product_id = products[i % len(products)].id if products else None
            houses.append(self.create_house(name, f"รายละเอียดของ{name}", product_id))

        cycles = ["monthly", "6months", "yearly"]
        member_data = [
            ("สมชาย ใจดี", 299),
            ("สมหญิง รักเรียน", 199),
            ("วิชัย ทำงานหนัก", 299),
            ("นารี สวยงาม", 399),
            ("ประเสริฐ แข็งแรง", 199),
            ("พรทิพย์ เก่งมาก", 299),
            ("อนุชา ขยัน", 399),
            ("จินตนา ฉลาด", 199),
            ("ธีระ มั่นคง", 299),
            ("ปราณี อดทน", 199),
        ]
        for i, (name, fee) in enumerate(member_data):
            member = self.create_member(
                {
                    "house_id": houses[i % len(houses)].id,
                    "name": name,
                    "email": f"member{i + 1}@example.com",
                    "phone": f"08{10000000 + i * 1234567:08d}",
                    "monthly_fee": fee,
                    "billing_cycle": cycles[i % len(cycles)],
                    "payment_date": today + timedelta(days=i * 3 - 10),
                    "expiration_date": today + timedelta(days=i * 5 - 15),
                }
            )
            if i % 2 == 0:
                self.repo.add_payment(
                    PaymentRecord(id=self._new_id(), member_id=member.id, amount=float(fee), paid_at=self._now())
                )
        logger.info("Sample data loaded: %d houses, %d members", len(houses), len(member_data))
