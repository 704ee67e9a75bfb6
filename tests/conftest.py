from datetime import date
from itertools import count

import pytest

from models import House, Member
from repository import InMemoryRepository, SQLiteRepository
from services import SubscriptionService

TODAY = date(2024, 3, 15)


def make_member(id="m1", house_id="h1", name="Alice", expiration_date="2024-04-15", **kwargs) -> Member:
    defaults = dict(
        email="",
        phone="",
        monthly_fee=0.0,
        billing_cycle="monthly",
        payment_date="2024-03-01",
    )
    defaults.update(kwargs)
    return Member(id=id, house_id=house_id, name=name, expiration_date=expiration_date, **defaults)


def make_house(id="h1", name="House 1", **kwargs) -> House:
    return House(id=id, name=name, **kwargs)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def memory_repo():
    return InMemoryRepository()


@pytest.fixture
def sqlite_repo(tmp_path):
    return SQLiteRepository(tmp_path / "test.db")


@pytest.fixture(params=["memory", "sqlite"])
def repo(request, tmp_path):
    if request.param == "memory":
        return InMemoryRepository()
    return SQLiteRepository(tmp_path / "test.db")


@pytest.fixture
def service(memory_repo):
    ids = count(1)
    return SubscriptionService(
        memory_repo,
        today=lambda: TODAY,
        new_id=lambda: f"id{next(ids)}",
        now=lambda: "2024-03-15T10:00:00",
    )
