"""
Header matching, value coercion, raw row → DrugBidRecord.
"""
from __future__ import annotations

import math
import re
from typing import Any, Iterable, Mapping, Optional

import numpy as np
import pandas as pd

from pricewatch.config import COLUMN_ALIASES, IDENTITY_FIELDS, TEXT_FIELDS
from pricewatch.data.schemas import DrugBidRecord, RowRejection
from pricewatch.errors import (
    InvalidNumericFieldError,
    MissingIdentityFieldError,
    RowRejectedError,
)

# Currency decorations seen in bid sheets: "$1,200", "1 200 VND", "1,200đ"
_CURRENCY_RE = re.compile(r"[\$\s₫]|VND|đ", re.IGNORECASE)
# A comma is a thousands separator only before exactly three digits;
# "12,5" is left alone and fails to parse
_THOUSANDS_RE = re.compile(r",(?=\d{3}(?!\d))")


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------

def fold_key(value: str) -> str:
    """Grouping form of a text field: trimmed and case-folded."""
    return value.strip().casefold()


def match_column(name: Any) -> Optional[str]:
    """Canonical field for a raw header, or None when it is not recognised."""
    return COLUMN_ALIASES.get(str(name).strip().casefold())


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if pd.api.types.is_scalar(value) and pd.isna(value):
        return True
    return False


def as_text(value: Any) -> str:
    """Render a cell as a trimmed string.

    Spreadsheet decoders hand numeric-looking codes back as floats
    (``12345.0``); integral floats are written without the fraction.
    """
    if is_blank(value):
        return ""
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    if isinstance(value, np.integer):
        return str(int(value))
    return str(value).strip()


def coerce_number(value: Any, field: str) -> float:
    """Parse a required non-negative number or raise InvalidNumericFieldError."""
    if is_blank(value):
        raise InvalidNumericFieldError(field, f"{field} is missing")
    if isinstance(value, (bool, np.bool_)):
        raise InvalidNumericFieldError(field, f"{field} is not a number: {value!r}")
    if isinstance(value, (int, float, np.integer, np.floating)):
        number = float(value)
    else:
        cleaned = _THOUSANDS_RE.sub("", _CURRENCY_RE.sub("", str(value)))
        try:
            number = float(cleaned)
        except ValueError:
            raise InvalidNumericFieldError(field, f"{field} is not a number: {value!r}") from None
    if not math.isfinite(number):
        raise InvalidNumericFieldError(field, f"{field} is not finite: {value!r}")
    if number < 0:
        raise InvalidNumericFieldError(field, f"{field} is negative: {value!r}")
    return number


def coerce_quantity(value: Any) -> int:
    number = coerce_number(value, "quantity")
    if not number.is_integer():
        raise InvalidNumericFieldError("quantity", f"quantity is not a whole number: {value!r}")
    return int(number)


# ---------------------------------------------------------------------------
# Row normalisation
# ---------------------------------------------------------------------------

def normalize_row(row: Mapping[str, Any], row_number: Optional[int] = None) -> DrugBidRecord:
    """Build a DrugBidRecord from one raw row.

    Headers are matched case-insensitively after trimming. Columns that
    match no canonical field are kept verbatim in ``extras``; when two
    headers map to the same field the first one wins and the other is
    kept as an extra.

    Raises MissingIdentityFieldError or InvalidNumericFieldError.
    """
    values: dict[str, Any] = {}
    source_columns: dict[str, str] = {}
    extras: dict[str, Any] = {}

    for raw_name, raw_value in row.items():
        name = match_column(raw_name)
        if name is None or name in values:
            extras[raw_name] = raw_value
            continue
        values[name] = raw_value
        source_columns[name] = str(raw_name)

    try:
        text = {name: as_text(values.get(name)) for name in TEXT_FIELDS}
        for name in IDENTITY_FIELDS:
            if not text[name]:
                raise MissingIdentityFieldError(name, f"{name} is blank")

        unit_price = coerce_number(values.get("unit_price"), "unit_price")
        quantity = coerce_quantity(values.get("quantity"))
    except RowRejectedError as exc:
        exc.row_number = row_number
        raise

    return DrugBidRecord(
        active_ingredient=text["active_ingredient"],
        concentration=text["concentration"],
        registration_number=text["registration_number"],
        unit_price=unit_price,
        quantity=quantity,
        route_of_administration=text["route_of_administration"],
        therapeutic_group=text["therapeutic_group"],
        unit=text["unit"],
        manufacturer=text["manufacturer"],
        facility_name=text["facility_name"],
        country_of_origin=text["country_of_origin"] or None,
        facility_code=text["facility_code"] or None,
        drug_code=text["drug_code"] or None,
        extras=extras,
        source_columns=source_columns,
    )


def normalize_rows(
    rows: Iterable[Mapping[str, Any]],
) -> tuple[list[DrugBidRecord], list[RowRejection]]:
    """Normalise a whole sheet. Bad rows are reported, good rows are kept."""
    records: list[DrugBidRecord] = []
    rejections: list[RowRejection] = []
    for number, row in enumerate(rows, 1):
        try:
            records.append(normalize_row(row, number))
        except RowRejectedError as exc:
            rejections.append(RowRejection(number, exc.kind, exc.field, str(exc)))
    return records, rejections
