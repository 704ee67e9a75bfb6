"""
repository.py
Storage interface with two adapters: SQLite (persistent) and in-memory (tests, scratch).
Both enforce the same referential rules:
- deleting a house removes its members and their payments
- deleting a member removes its payments
- deleting a product clears product_id on houses and members
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import astuple, fields, replace
from pathlib import Path

import db
from models import House, Member, PaymentRecord, Product

logger = logging.getLogger(__name__)


class Repository(ABC):
    """Source of truth for houses, products, members and the payment ledger."""

    # Houses
    @abstractmethod
    def list_houses(self) -> list[House]: ...

    @abstractmethod
    def get_house(self, house_id: str) -> House | None: ...

    @abstractmethod
    def add_house(self, house: House) -> House: ...

    @abstractmethod
    def update_house(self, house: House) -> bool: ...

    @abstractmethod
    def delete_house(self, house_id: str) -> bool: ...

    # Products
    @abstractmethod
    def list_products(self) -> list[Product]: ...

    @abstractmethod
    def get_product(self, product_id: str) -> Product | None: ...

    @abstractmethod
    def add_product(self, product: Product) -> Product: ...

    @abstractmethod
    def update_product(self, product: Product) -> bool: ...

    @abstractmethod
    def delete_product(self, product_id: str) -> bool: ...

    # Members
    @abstractmethod
    def list_members(self, house_id: str | None = None) -> list[Member]: ...

    @abstractmethod
    def get_member(self, member_id: str) -> Member | None: ...

    @abstractmethod
    def add_member(self, member: Member) -> Member: ...

    @abstractmethod
    def update_member(self, member: Member) -> bool: ...

    @abstractmethod
    def delete_member(self, member_id: str) -> bool: ...

    # Payment ledger (append-only)
    @abstractmethod
    def list_payments(self, member_id: str | None = None) -> list[PaymentRecord]: ...

    @abstractmethod
    def add_payment(self, payment: PaymentRecord) -> PaymentRecord: ...

    @abstractmethod
    def record_payment(self, payment: PaymentRecord, member: Member) -> bool:
        """Append `payment` and store the updated `member` together, or neither."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every row (sample data reset)."""


def _columns(cls) -> list[str]:
    return [f.name for f in fields(cls)]


def _insert_sql(table: str, cls) -> str:
    cols = _columns(cls)
    return f"INSERT INTO {table}({', '.join(cols)}) VALUES({', '.join('?' for _ in cols)})"


def _update_sql(table: str, cls) -> str:
    cols = [c for c in _columns(cls) if c not in ("id", "created_at")]
    return f"UPDATE {table} SET {', '.join(f'{c}=?' for c in cols)} WHERE id=?"


def _update_params(entity) -> tuple:
    cols = [c for c in _columns(type(entity)) if c not in ("id", "created_at")]
    return tuple(getattr(entity, c) for c in cols) + (entity.id,)


class SQLiteRepository(Repository):
    def __init__(self, db_file: str | Path | None = None):
        self.db_file = db_file
        db.init_db(db_file)

    def _all(self, cls, sql: str, params: tuple = ()) -> list:
        return [cls(**dict(r)) for r in db.fetch_all(sql, params, db_file=self.db_file)]

    def _one(self, cls, sql: str, params: tuple = ()):
        row = db.fetch_one(sql, params, db_file=self.db_file)
        return cls(**dict(row)) if row else None

    def _insert(self, table: str, entity):
        db.execute(_insert_sql(table, type(entity)), astuple(entity), db_file=self.db_file)
        return entity

    def _update(self, table: str, entity) -> bool:
        return db.execute(_update_sql(table, type(entity)), _update_params(entity), db_file=self.db_file) > 0

    # Houses
    def list_houses(self) -> list[House]:
        return self._all(House, "SELECT * FROM houses ORDER BY name ASC, id ASC")

    def get_house(self, house_id: str) -> House | None:
        return self._one(House, "SELECT * FROM houses WHERE id = ?", (house_id,))

    def add_house(self, house: House) -> House:
        return self._insert("houses", house)

    def update_house(self, house: House) -> bool:
        return self._update("houses", house)

    def delete_house(self, house_id: str) -> bool:
        deleted = db.execute_in_transaction(
            [
                (
                    "DELETE FROM payment_history WHERE member_id IN (SELECT id FROM members WHERE house_id = ?)",
                    (house_id,),
                ),
                ("DELETE FROM members WHERE house_id = ?", (house_id,)),
                ("DELETE FROM houses WHERE id = ?", (house_id,)),
            ],
            db_file=self.db_file,
        )
        return deleted > 0

    # Products
    def list_products(self) -> list[Product]:
        return self._all(Product, "SELECT * FROM products ORDER BY name ASC, id ASC")

    def get_product(self, product_id: str) -> Product | None:
        return self._one(Product, "SELECT * FROM products WHERE id = ?", (product_id,))

    def add_product(self, product: Product) -> Product:
        return self._insert("products", product)

    def update_product(self, product: Product) -> bool:
        return self._update("products", product)

    def delete_product(self, product_id: str) -> bool:
        deleted = db.execute_in_transaction(
            [
                ("UPDATE houses SET product_id = NULL WHERE product_id = ?", (product_id,)),
                ("UPDATE members SET product_id = NULL WHERE product_id = ?", (product_id,)),
                ("DELETE FROM products WHERE id = ?", (product_id,)),
            ],
            db_file=self.db_file,
        )
        return deleted > 0

    # Members
    def list_members(self, house_id: str | None = None) -> list[Member]:
        if house_id is None:
            return self._all(Member, "SELECT * FROM members ORDER BY name ASC, id ASC")
        return self._all(Member, "SELECT * FROM members WHERE house_id = ? ORDER BY name ASC, id ASC", (house_id,))

    def get_member(self, member_id: str) -> Member | None:
        return self._one(Member, "SELECT * FROM members WHERE id = ?", (member_id,))

    def add_member(self, member: Member) -> Member:
        return self._insert("members", member)

    def update_member(self, member: Member) -> bool:
        return self._update("members", member)

    def delete_member(self, member_id: str) -> bool:
        deleted = db.execute_in_transaction(
            [
                ("DELETE FROM payment_history WHERE member_id = ?", (member_id,)),
                ("DELETE FROM members WHERE id = ?", (member_id,)),
            ],
            db_file=self.db_file,
        )
        return deleted > 0

    # Payments
    def list_payments(self, member_id: str | None = None) -> list[PaymentRecord]:
        if member_id is None:
            return self._all(PaymentRecord, "SELECT * FROM payment_history ORDER BY paid_at DESC, id DESC")
        return self._all(
            PaymentRecord,
            "SELECT * FROM payment_history WHERE member_id = ? ORDER BY paid_at DESC, id DESC",
            (member_id,),
        )

    def add_payment(self, payment: PaymentRecord) -> PaymentRecord:
        return self._insert("payment_history", payment)

    def record_payment(self, payment: PaymentRecord, member: Member) -> bool:
        updated = db.execute_in_transaction(
            [
                (_insert_sql("payment_history", PaymentRecord), astuple(payment)),
                (_update_sql("members", Member), _update_params(member)),
            ],
            db_file=self.db_file,
        )
        return updated > 0

    def clear(self) -> None:
        db.execute_in_transaction(
            [
                ("DELETE FROM payment_history", ()),
                ("DELETE FROM members", ()),
                ("DELETE FROM houses", ()),
            ],
            db_file=self.db_file,
        )


class InMemoryRepository(Repository):
    """Dict-backed repository, mainly for tests."""

    def __init__(self):
        self._houses: dict[str, House] = {}
        self._products: dict[str, Product] = {}
        self._members: dict[str, Member] = {}
        self._payments: dict[str, PaymentRecord] = {}

    # Houses
    def list_houses(self) -> list[House]:
        return sorted(self._houses.values(), key=lambda h: (h.name, h.id))

    def get_house(self, house_id: str) -> House | None:
        return self._houses.get(house_id)

    def add_house(self, house: House) -> House:
        self._houses[house.id] = house
        return house

    def update_house(self, house: House) -> bool:
        if house.id not in self._houses:
            return False
        self._houses[house.id] = replace(house, created_at=self._houses[house.id].created_at)
        return True

    def delete_house(self, house_id: str) -> bool:
        if house_id not in self._houses:
            return False
        for member_id in [m.id for m in self._members.values() if m.house_id == house_id]:
            self.delete_member(member_id)
        del self._houses[house_id]
        return True

    # Products
    def list_products(self) -> list[Product]:
        return sorted(self._products.values(), key=lambda p: (p.name, p.id))

    def get_product(self, product_id: str) -> Product | None:
        return self._products.get(product_id)

    def add_product(self, product: Product) -> Product:
        self._products[product.id] = product
        return product

    def update_product(self, product: Product) -> bool:
        if product.id not in self._products:
            return False
        self._products[product.id] = replace(product, created_at=self._products[product.id].created_at)
        return True

    def delete_product(self, product_id: str) -> bool:
        if product_id not in self._products:
            return False
        for h in list(self._houses.values()):
            if h.product_id == product_id:
                self._houses[h.id] = replace(h, product_id=None)
        for m in list(self._members.values()):
            if m.product_id == product_id:
                self._members[m.id] = replace(m, product_id=None)
        del self._products[product_id]
        return True

    # Members
    def list_members(self, house_id: str | None = None) -> list[Member]:
        members = [m for m in self._members.values() if house_id is None or m.house_id == house_id]
        return sorted(members, key=lambda m: (m.name, m.id))

    def get_member(self, member_id: str) -> Member | None:
        return self._members.get(member_id)

    def add_member(self, member: Member) -> Member:
        self._members[member.id] = member
        return member

    def update_member(self, member: Member) -> bool:
        if member.id not in self._members:
            return False
        self._members[member.id] = replace(member, created_at=self._members[member.id].created_at)
        return True

    def delete_member(self, member_id: str) -> bool:
        if member_id not in self._members:
            return False
        for payment_id in [p.id for p in self._payments.values() if p.member_id == member_id]:
            del self._payments[payment_id]
        del self._members[member_id]
        return True

    # Payments
    def list_payments(self, member_id: str | None = None) -> list[PaymentRecord]:
        payments = [p for p in self._payments.values() if member_id is None or p.member_id == member_id]
        return sorted(payments, key=lambda p: (p.paid_at, p.id), reverse=True)

    def add_payment(self, payment: PaymentRecord) -> PaymentRecord:
        self._payments[payment.id] = payment
        return payment

    def record_payment(self, payment: PaymentRecord, member: Member) -> bool:
        if member.id not in self._members:
            return False
        self._payments[payment.id] = payment
        self.update_member(member)
        return True

    def clear(self) -> None:
        self._payments.clear()
        self._members.clear()
        self._houses.clear()
