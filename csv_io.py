"""
csv_io.py
Member CSV export/import.

Column order is shared by export and import:
name, email, phone, fee, billing cycle, payment date, expiration date, house.
Import ignores the house column; every row goes to the chosen house.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable

import pandas as pd

import utils
from errors import ParseError
from models import House, Member

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "ชื่อสมาชิก",
    "อีเมล",
    "เบอร์โทร",
    "ยอดชำระ",
    "รอบบิล",
    "วันชำระ",
    "วันหมดอายุ",
    "บ้าน",
]
HEADER_NAMES = {EXPORT_COLUMNS[0], "name"}


@dataclass
class ImportResult:
    records: list[dict] = field(default_factory=list)
    imported_count: int = 0
    skipped: list[tuple[int, str]] = field(default_factory=list)  # (line number, reason)
    inserted: list[Member] = field(default_factory=list)  # filled in once the records are stored


def members_to_csv(members: Iterable[Member], houses: Iterable[House]) -> str:
    house_names = {h.id: h.name for h in houses}
    rows = sorted(members, key=lambda m: (house_names.get(m.house_id, ""), m.name))

    header = ",".join(EXPORT_COLUMNS) + "\n"
    if not rows:
        return header

    df = pd.DataFrame(
        [
            {
                "ชื่อสมาชิก": m.name,
                "อีเมล": m.email or "",
                "เบอร์โทร": m.phone or "",
                "ยอดชำระ": float(m.monthly_fee or 0),
                "รอบบิล": m.billing_cycle or "monthly",
                "วันชำระ": m.payment_date or "",
                "วันหมดอายุ": m.expiration_date or "",
                "บ้าน": house_names.get(m.house_id, ""),
            }
            for m in rows
        ],
        columns=EXPORT_COLUMNS,
    )
    # text quoted, fee left bare
    body = df.to_csv(index=False, header=False, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    return header + body


def members_to_csv_bytes(members: Iterable[Member], houses: Iterable[House]) -> bytes:
    return members_to_csv(members, houses).encode("utf-8")


class _BadRow(Exception):
    pass


def _split_line(line: str) -> list[str]:
    """
    Tokenise one physical line with the CSV grammar.
    Lines are read one at a time so a broken row can only cost itself.
    """
    if line.count('"') % 2:
        raise _BadRow("unbalanced quotes")
    try:
        df = pd.read_csv(
            io.StringIO(line),
            header=None,
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
            engine="python",
        )
    except pd.errors.EmptyDataError:
        return []
    except pd.errors.ParserError as e:
        raise _BadRow(f"unreadable row: {e}") from e
    if len(df.columns) > len(EXPORT_COLUMNS):
        raise _BadRow("too many fields")
    return [str(v) for v in df.fillna("").iloc[0].tolist()] if len(df) else []


def _date_or_today(value: str, today: date) -> str:
    if not value:
        return today.isoformat()
    return utils.to_date(value).isoformat()


def parse_members_csv(text: str, house_id: str, today: date | None = None) -> ImportResult:
    """
    Turn CSV text into member creation records for `house_id`.
    Rows without a name, with broken quoting, too many fields, a bad date or
    a negative fee are skipped and listed in `skipped` by line number; they
    never abort the import. Quoted fields may hold commas but not newlines.
    """
    today = today or date.today()
    result = ImportResult()

    text = (text or "").lstrip("\ufeff")
    first = True
    for lineno, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue

        try:
            fields = _split_line(line)
        except _BadRow as e:
            result.skipped.append((lineno, str(e)))
            first = False
            continue

        fields = [v.strip() for v in fields] + [""] * (len(EXPORT_COLUMNS) - len(fields))
        if first:
            first = False
            if fields[0].casefold() in HEADER_NAMES:
                continue

        name, email, phone, fee, cycle, paid, expires = fields[:7]
        if not name:
            result.skipped.append((lineno, "missing name"))
            continue

        monthly_fee = utils.coerce_fee(fee)
        if monthly_fee < 0:
            result.skipped.append((lineno, "negative fee"))
            continue

        try:
            payment_date = _date_or_today(paid, today)
            expiration_date = _date_or_today(expires, today)
        except ParseError as e:
            result.skipped.append((lineno, str(e)))
            continue

        result.records.append(
            {
                "house_id": house_id,
                "product_id": None,
                "name": name,
                "email": email,
                "phone": phone,
                "monthly_fee": monthly_fee,
                "billing_cycle": utils.normalize_cycle(cycle or None),
                "payment_date": payment_date,
                "expiration_date": expiration_date,
            }
        )

    for n, reason in result.skipped:
        logger.warning("CSV line %d skipped: %s", n, reason)

    result.imported_count = len(result.records)
    return result
