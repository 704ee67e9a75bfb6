from datetime import date, datetime, timedelta

import pytest

import utils
from errors import ParseError
from conftest import TODAY, make_member


@pytest.mark.parametrize(
    "offset, expected",
    [
        (-30, "expired"),
        (-1, "expired"),
        (0, "expiring"),
        (3, "expiring"),
        (7, "expiring"),
        (8, "active"),
        (365, "active"),
    ],
)
def test_compute_status_boundaries(offset, expected):
    assert utils.compute_status(TODAY + timedelta(days=offset), TODAY) == expected


def test_compute_status_ignores_time_of_day():
    late_today = datetime(2024, 3, 15, 23, 59)
    assert utils.compute_status("2024-03-14", late_today) == "expired"
    assert utils.compute_status(datetime(2024, 3, 22, 0, 1), TODAY) == "expiring"
    assert utils.compute_status("2024-03-23T08:00:00", TODAY) == "active"


def test_compute_status_accepts_iso_strings():
    assert utils.compute_status("2024-03-15", "2024-03-15") == "expiring"


def test_compute_status_rejects_garbage():
    with pytest.raises(ParseError):
        utils.compute_status("not a date", TODAY)
    with pytest.raises(ParseError):
        utils.compute_status(None, TODAY)


def test_member_status_and_days_until():
    member = make_member(expiration_date="2024-03-20")
    assert utils.member_status(member, TODAY) == "expiring"
    assert utils.days_until(member.expiration_date, TODAY) == 5


def test_next_expiration_per_cycle():
    assert utils.next_expiration(date(2024, 3, 15), "monthly") == date(2024, 4, 15)
    assert utils.next_expiration(date(2024, 3, 15), "6months") == date(2024, 9, 15)
    assert utils.next_expiration(date(2024, 3, 15), "yearly") == date(2025, 3, 15)


def test_next_expiration_unknown_cycle_is_monthly():
    assert utils.next_expiration(date(2024, 3, 15), None) == date(2024, 4, 15)
    assert utils.next_expiration(date(2024, 3, 15), "weekly") == date(2024, 4, 15)


def test_next_expiration_drops_time_and_accepts_strings():
    assert utils.next_expiration(datetime(2024, 3, 15, 22, 30), "monthly") == date(2024, 4, 15)
    assert utils.next_expiration("2024-03-15T22:30:00", "yearly") == date(2025, 3, 15)


def test_month_end_clamps_to_last_valid_day():
    assert utils.next_expiration(date(2024, 1, 31), "monthly") == date(2024, 2, 29)
    assert utils.next_expiration(date(2023, 1, 31), "monthly") == date(2023, 2, 28)
    assert utils.next_expiration(date(2024, 8, 31), "6months") == date(2025, 2, 28)
    assert utils.next_expiration(date(2024, 2, 29), "yearly") == date(2025, 2, 28)
    assert utils.next_expiration(date(2024, 12, 31), "monthly") == date(2025, 1, 31)


def test_twelve_monthly_steps_land_in_same_year_as_yearly():
    start = date(2024, 1, 31)
    d = start
    for _ in range(12):
        d = utils.next_expiration(d, "monthly")
    yearly = utils.next_expiration(start, "yearly")

    # the month-end clamp carries forward from February
    assert d == date(2025, 1, 29)
    assert yearly == date(2025, 1, 31)
    assert d.year == yearly.year


def test_next_expiration_is_deterministic():
    assert utils.next_expiration(date(2024, 1, 31), "monthly") == utils.next_expiration(date(2024, 1, 31), "monthly")


def test_normalize_cycle():
    assert utils.normalize_cycle("yearly") == "yearly"
    assert utils.normalize_cycle(" 6months ") == "6months"
    assert utils.normalize_cycle("รายปี") == "yearly"
    assert utils.normalize_cycle("ราย 6 เดือน") == "6months"
    assert utils.normalize_cycle("") == "monthly"
    assert utils.normalize_cycle(None) == "monthly"


def test_cycle_label():
    assert utils.cycle_label("monthly") == "รายเดือน"
    assert utils.cycle_label("6months") == "ราย 6 เดือน"
    assert utils.cycle_label("yearly") == "รายปี"
    assert utils.cycle_label(None) == "รายเดือน"


def test_coerce_fee():
    assert utils.coerce_fee("299") == 299.0
    assert utils.coerce_fee(" 1,299.50 ") == 1299.5
    assert utils.coerce_fee("") == 0.0
    assert utils.coerce_fee(None) == 0.0
    assert utils.coerce_fee("abc") == 0.0
    assert utils.coerce_fee("nan") == 0.0
    assert utils.coerce_fee("inf") == 0.0


def test_normalize_member_fields_fills_defaults():
    fields = utils.normalize_member_fields(
        {"house_id": "h1", "name": "  Alice ", "expiration_date": date(2024, 4, 1)}, TODAY
    )
    assert fields == {
        "house_id": "h1",
        "product_id": None,
        "name": "Alice",
        "email": "",
        "phone": "",
        "monthly_fee": 0.0,
        "billing_cycle": "monthly",
        "payment_date": "2024-03-15",
        "expiration_date": "2024-04-01",
    }


def test_normalize_member_fields_accepts_camel_case():
    fields = utils.normalize_member_fields(
        {
            "houseId": "h1",
            "name": "Bob",
            "monthlyFee": "199",
            "billingCycle": "yearly",
            "paymentDate": "2024-03-01",
            "expirationDate": "2025-03-01",
            "productId": "",
        },
        TODAY,
    )
    assert fields["house_id"] == "h1"
    assert fields["monthly_fee"] == 199.0
    assert fields["billing_cycle"] == "yearly"
    assert fields["expiration_date"] == "2025-03-01"
    assert fields["product_id"] is None


def test_validate_member_inputs_collects_errors():
    fields = utils.normalize_member_fields({"monthly_fee": "abc", "expiration_date": "2024-02-30"}, TODAY)
    errors = utils.validate_member_inputs(fields)
    assert "Member name is required." in errors
    assert "House is required." in errors
    assert "Monthly fee must be numeric." in errors
    assert "Expiration date must be a valid ISO date (YYYY-MM-DD)." in errors


def test_validate_member_inputs_rejects_negative_fee_and_missing_expiration():
    fields = utils.normalize_member_fields({"house_id": "h1", "name": "A", "monthly_fee": -5}, TODAY)
    errors = utils.validate_member_inputs(fields)
    assert errors == ["Monthly fee must not be negative.", "Expiration date is required."]


def test_validate_member_inputs_ok():
    fields = utils.normalize_member_fields(
        {"house_id": "h1", "name": "A", "monthly_fee": 10, "expiration_date": "2024-04-01"}, TODAY
    )
    assert utils.validate_member_inputs(fields) == []


@pytest.mark.parametrize("fee", ["nan", "inf", "-inf", float("nan")])
def test_validate_member_inputs_rejects_non_finite_fee(fee):
    fields = utils.normalize_member_fields(
        {"house_id": "h1", "name": "A", "monthly_fee": fee, "expiration_date": "2024-04-01"}, TODAY
    )
    assert utils.validate_member_inputs(fields) == ["Monthly fee must be a finite number."]
