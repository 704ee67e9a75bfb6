"""
utils.py
Dates, billing-cycle rollover, status, validation and input normalization.
"""

from __future__ import annotations

import math
import uuid
from datetime import date, datetime, timedelta

from errors import ParseError
from models import (
    CYCLE_LABELS,
    CYCLE_MONTHS,
    DEFAULT_CYCLE,
    EXPIRING_WINDOW_DAYS,
    STATUS_ACTIVE,
    STATUS_EXPIRED,
    STATUS_EXPIRING,
)

# camelCase keys sent by older clients -> record field names
_FIELD_ALIASES = {
    "houseId": "house_id",
    "productId": "product_id",
    "monthlyFee": "monthly_fee",
    "billingCycle": "billing_cycle",
    "paymentDate": "payment_date",
    "expirationDate": "expiration_date",
}


def new_id() -> str:
    return uuid.uuid4().hex


def now_iso() -> str:
    return datetime.now().isoformat(timespec="seconds")


def parse_iso(d: str) -> date:
    try:
        return date.fromisoformat(d)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Invalid ISO date: {d!r}") from e


def to_date(value) -> date:
    """
    Normalize a date, datetime or ISO string (date or timestamp) to a calendar date.
    Time-of-day is dropped so comparisons never drift by hours.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if len(text) > 10:
            try:
                return datetime.fromisoformat(text).date()
            except ValueError as e:
                raise ParseError(f"Invalid ISO timestamp: {value!r}") from e
        return parse_iso(text)
    raise ParseError(f"Not a date: {value!r}")


def is_iso_date(value) -> bool:
    try:
        to_date(value)
    except ParseError:
        return False
    return True


def add_months(start: date, months: int) -> date:
    """
    Add months while keeping day in valid range (e.g., Jan 31 + 1 month => Feb 28/29).
    """
    y = start.year + (start.month - 1 + months) // 12
    m = (start.month - 1 + months) % 12 + 1
    # last day of target month
    if m == 12:
        next_month = date(y + 1, 1, 1)
    else:
        next_month = date(y, m + 1, 1)
    last_day = next_month - timedelta(days=1)
    day = min(start.day, last_day.day)
    return date(y, m, day)


def normalize_cycle(value) -> str:
    """Known cycle value or Thai label -> cycle key; anything else is monthly."""
    if value is None:
        return DEFAULT_CYCLE
    text = str(value).strip()
    if text in CYCLE_MONTHS:
        return text
    for cycle, label in CYCLE_LABELS.items():
        if text == label:
            return cycle
    return DEFAULT_CYCLE


def cycle_label(cycle: str | None) -> str:
    return CYCLE_LABELS.get(cycle or DEFAULT_CYCLE, cycle or "")


def next_expiration(paid_on, cycle: str | None) -> date:
    """Expiration date after a payment made on `paid_on` for the given billing cycle."""
    start = to_date(paid_on)
    months = CYCLE_MONTHS[normalize_cycle(cycle)]
    return add_months(start, months)


def days_until(expiration_date, today=None) -> int:
    today = to_date(today) if today is not None else date.today()
    return (to_date(expiration_date) - today).days


def compute_status(expiration_date, today=None) -> str:
    diff = days_until(expiration_date, today)
    if diff < 0:
        return STATUS_EXPIRED
    if diff <= EXPIRING_WINDOW_DAYS:
        return STATUS_EXPIRING
    return STATUS_ACTIVE


def member_status(member, today=None) -> str:
    return compute_status(member.expiration_date, today)


def coerce_fee(value) -> float:
    """Lenient fee parsing (CSV import): missing, unparseable or non-finite -> 0."""
    if value is None:
        return 0.0
    text = str(value).strip().replace(",", "")
    if not text:
        return 0.0
    try:
        fee = float(text)
    except ValueError:
        return 0.0
    return fee if math.isfinite(fee) else 0.0


def _date_field(value) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def normalize_member_fields(data: dict, today: date | None = None) -> dict:
    """
    The one place member input gets its defaults: strip text, default fee to 0,
    cycle to monthly and payment date to today. Bad values are left as-is so
    validate_member_inputs can report them.
    """
    today = today or date.today()
    raw = {_FIELD_ALIASES.get(k, k): v for k, v in data.items()}

    fee = raw.get("monthly_fee")
    if fee is None or (isinstance(fee, str) and not fee.strip()):
        fee = 0.0
    else:
        try:
            fee = float(fee)
        except (TypeError, ValueError):
            pass

    product_id = raw.get("product_id")
    if isinstance(product_id, str):
        product_id = product_id.strip() or None

    return {
        "house_id": str(raw.get("house_id") or "").strip(),
        "product_id": product_id,
        "name": str(raw.get("name") or "").strip(),
        "email": str(raw.get("email") or "").strip(),
        "phone": str(raw.get("phone") or "").strip(),
        "monthly_fee": fee,
        "billing_cycle": normalize_cycle(raw.get("billing_cycle")),
        "payment_date": _date_field(raw.get("payment_date")) or today.isoformat(),
        "expiration_date": _date_field(raw.get("expiration_date")),
    }


def validate_member_inputs(fields: dict) -> list[str]:
    errors: list[str] = []
    if not fields.get("name"):
        errors.append("Member name is required.")
    if not fields.get("house_id"):
        errors.append("House is required.")

    fee = fields.get("monthly_fee")
    if not isinstance(fee, (int, float)) or isinstance(fee, bool):
        errors.append("Monthly fee must be numeric.")
    elif not math.isfinite(fee):
        errors.append("Monthly fee must be a finite number.")
    elif fee < 0:
        errors.append("Monthly fee must not be negative.")

    if fields.get("payment_date") and not is_iso_date(fields["payment_date"]):
        errors.append("Payment date must be a valid ISO date (YYYY-MM-DD).")

    if not fields.get("expiration_date"):
        errors.append("Expiration date is required.")
    elif not is_iso_date(fields["expiration_date"]):
        errors.append("Expiration date must be a valid ISO date (YYYY-MM-DD).")
    return errors
