from dataclasses import replace

import pytest

from errors import StorageError
from models import PaymentRecord, Product
from conftest import make_house, make_member


@pytest.fixture
def filled(repo):
    repo.add_product(Product(id="p1", name="Netflix"))
    repo.add_house(make_house("h1", "House 1", product_id="p1"))
    repo.add_house(make_house("h2", "House 2"))
    repo.add_member(make_member("m1", "h1", "Alice", product_id="p1"))
    repo.add_member(make_member("m2", "h1", "Bob"))
    repo.add_member(make_member("m3", "h2", "Carol"))
    repo.add_payment(PaymentRecord(id="pay1", member_id="m1", amount=100, paid_at="2024-03-01T10:00:00"))
    repo.add_payment(PaymentRecord(id="pay2", member_id="m1", amount=100, paid_at="2024-02-01T10:00:00"))
    repo.add_payment(PaymentRecord(id="pay3", member_id="m3", amount=50, paid_at="2024-03-02T10:00:00"))
    return repo


def test_round_trip_of_entities(filled):
    assert filled.get_house("h1") == make_house("h1", "House 1", product_id="p1")
    assert filled.get_member("m1") == make_member("m1", "h1", "Alice", product_id="p1")
    assert filled.get_product("p1").icon == "📦"
    assert filled.get_house("nope") is None


def test_lists_are_ordered(filled):
    assert [h.id for h in filled.list_houses()] == ["h1", "h2"]
    assert [m.name for m in filled.list_members()] == ["Alice", "Bob", "Carol"]
    assert [m.id for m in filled.list_members("h2")] == ["m3"]
    assert [p.id for p in filled.list_payments()] == ["pay3", "pay1", "pay2"]
    assert [p.id for p in filled.list_payments("m1")] == ["pay1", "pay2"]


def test_delete_house_cascades_to_members_and_payments(filled):
    assert filled.delete_house("h1") is True

    assert filled.get_house("h1") is None
    assert [m.id for m in filled.list_members()] == ["m3"]
    assert [p.id for p in filled.list_payments()] == ["pay3"]


def test_delete_member_removes_its_payments(filled):
    assert filled.delete_member("m1") is True
    assert filled.list_payments("m1") == []
    assert len(filled.list_payments()) == 1


def test_delete_product_clears_references(filled):
    assert filled.delete_product("p1") is True

    assert filled.get_product("p1") is None
    assert filled.get_house("h1").product_id is None
    assert filled.get_member("m1").product_id is None
    assert len(filled.list_members()) == 3


def test_missing_rows_report_false(filled):
    assert filled.delete_house("nope") is False
    assert filled.delete_member("nope") is False
    assert filled.delete_product("nope") is False
    assert filled.update_member(make_member("nope", "h1")) is False
    assert filled.update_house(make_house("nope")) is False
    assert filled.update_product(Product(id="nope", name="x")) is False


def test_update_member(filled):
    member = replace(filled.get_member("m2"), expiration_date="2025-01-01", monthly_fee=99.0)
    assert filled.update_member(member) is True
    assert filled.get_member("m2").expiration_date == "2025-01-01"
    assert filled.get_member("m2").monthly_fee == 99.0


def test_clear_keeps_products(filled):
    filled.clear()
    assert filled.list_houses() == []
    assert filled.list_members() == []
    assert filled.list_payments() == []
    assert [p.id for p in filled.list_products()] == ["p1"]


def test_sqlite_enforces_house_reference(sqlite_repo):
    with pytest.raises(StorageError):
        sqlite_repo.add_member(make_member("m1", "missing-house"))


def test_sqlite_persists_between_instances(tmp_path):
    from repository import SQLiteRepository

    path = tmp_path / "subs.db"
    SQLiteRepository(path).add_house(make_house("h1", "Persisted"))
    assert SQLiteRepository(path).get_house("h1").name == "Persisted"


def test_record_payment_stores_payment_and_member(filled):
    payment = PaymentRecord(id="pay4", member_id="m2", amount=80, paid_at="2024-03-15T10:00:00")
    member = replace(filled.get_member("m2"), payment_date="2024-03-15", expiration_date="2024-04-15")

    assert filled.record_payment(payment, member) is True
    assert [p.id for p in filled.list_payments("m2")] == ["pay4"]
    assert filled.get_member("m2").expiration_date == "2024-04-15"


def test_in_memory_record_payment_for_missing_member(memory_repo):
    payment = PaymentRecord(id="pay1", member_id="nope", amount=10, paid_at="2024-03-15T10:00:00")
    assert memory_repo.record_payment(payment, make_member("nope")) is False
    assert memory_repo.list_payments() == []


def test_sqlite_record_payment_rolls_back_when_member_update_fails(sqlite_repo):
    sqlite_repo.add_house(make_house("h1"))
    sqlite_repo.add_member(make_member("m1", "h1"))
    payment = PaymentRecord(id="pay1", member_id="m1", amount=10, paid_at="2024-03-15T10:00:00")

    with pytest.raises(StorageError):
        sqlite_repo.record_payment(payment, make_member("m1", "missing-house"))

    assert sqlite_repo.list_payments() == []
    assert sqlite_repo.get_member("m1").house_id == "h1"
