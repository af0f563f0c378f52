"""
Record, batch and analysis-result schemas.
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pricewatch.config import EXPORT_HEADERS, TEXT_FIELDS


class AnalysisMode(str, Enum):
    ALERT = "ALERT"
    COMPARE = "COMPARE"

    @classmethod
    def parse(cls, value: "AnalysisMode | str") -> "AnalysisMode":
        """Accept 'alert', 'Compare', AnalysisMode.ALERT, ..."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Invalid analysis mode: {value!r} (expected ALERT or COMPARE)") from None


@dataclass(frozen=True)
class DrugBidRecord:
    """One bid line item: a drug bought by a facility at a unit price.

    Frozen: the store replaces a record to change it, so a handed-out record
    or snapshot can never drift from the generation it was read at.
    """
    active_ingredient: str
    concentration: str
    registration_number: str
    unit_price: float
    quantity: int
    route_of_administration: str = ""
    therapeutic_group: str = ""
    unit: str = ""
    manufacturer: str = ""
    facility_name: str = ""
    country_of_origin: Optional[str] = None
    facility_code: Optional[str] = None
    drug_code: Optional[str] = None
    batch_id: Optional[str] = None       # owning batch, set by the store
    record_id: Optional[int] = None      # stable handle, set by the store
    extras: dict[str, Any] = field(default_factory=dict)
    source_columns: dict[str, str] = field(default_factory=dict)

    def to_row(self, source_headers: bool = False) -> dict[str, Any]:
        """Flatten to a single mapping.

        With ``source_headers`` the canonical fields are written back under
        the header they were read from (or the BHYT code when the record
        was built without one), so an export reproduces the uploaded sheet.
        """
        row: dict[str, Any] = {}
        for name in TEXT_FIELDS + ["unit_price", "quantity"]:
            key = name
            if source_headers:
                key = self.source_columns.get(name, EXPORT_HEADERS[name])
            row[key] = getattr(self, name)
        for key, value in self.extras.items():
            row.setdefault(key, value)
        if not source_headers:
            row["batch_id"] = self.batch_id
            row["record_id"] = self.record_id
        return row


@dataclass
class Batch:
    """Provenance unit — one ingested sheet."""
    batch_id: str
    display_name: str
    ingested_at: dt.datetime
    row_count: int
    rejected_count: int = 0
    source_size: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "display_name": self.display_name,
            "ingested_at": self.ingested_at.isoformat(),
            "row_count": self.row_count,
            "rejected_count": self.rejected_count,
            "source_size": self.source_size,
        }


@dataclass(frozen=True)
class Snapshot:
    """Immutable view of the store at one generation."""
    generation: int
    records: tuple[DrugBidRecord, ...]

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class RowRejection:
    row_number: int          # 1-based position in the submitted rows
    kind: str
    field: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_number": self.row_number,
            "kind": self.kind,
            "field": self.field,
            "message": self.message,
        }


# ---------------------------------------------------------------------------
# Analysis results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AlertResult:
    """A record priced above the cheapest identical drug."""
    record: DrugBidRecord
    min_price_in_group: float
    price_delta: float
    excess_cost: float

    def to_row(self) -> dict[str, Any]:
        row = self.record.to_row()
        row["min_price_in_group"] = self.min_price_in_group
        row["price_delta"] = self.price_delta
        row["excess_cost"] = self.excess_cost
        return row


@dataclass(frozen=True)
class CompareResult:
    """Price range of one drug across the facilities that bought it."""
    active_ingredient: str
    concentration: str
    registration_number: str
    therapeutic_group: str
    facility_count: int
    min_price: float
    max_price: float
    price_detail: tuple[str, ...]

    @property
    def price_spread(self) -> float:
        return self.max_price - self.min_price

    def to_row(self) -> dict[str, Any]:
        return {
            "active_ingredient": self.active_ingredient,
            "concentration": self.concentration,
            "registration_number": self.registration_number,
            "therapeutic_group": self.therapeutic_group,
            "facility_count": self.facility_count,
            "min_price": self.min_price,
            "max_price": self.max_price,
            "price_detail": list(self.price_detail),
        }
