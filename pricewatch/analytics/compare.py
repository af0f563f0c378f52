"""
COMPARE mode — price range of each drug across the facilities that bought it.
"""
from __future__ import annotations

from typing import Sequence

from pricewatch.analytics.common import format_price, key_columns, records_frame
from pricewatch.config import COMPARE_KEY_FIELDS
from pricewatch.data.normalize import fold_key
from pricewatch.data.schemas import CompareResult, DrugBidRecord


def compare_analysis(records: Sequence[DrugBidRecord]) -> list[CompareResult]:
    """One row per drug bought at more than one facility.

    Records are grouped on the folded COMPARE key. ``price_detail`` lists
    every member record as "facility: price" in input order, so a facility
    with two bid lines shows up twice. Rows are sorted by active ingredient;
    ties keep first-seen order. Displayed key values come from the first
    record of each group.
    """
    if not records:
        return []

    df = records_frame(records, COMPARE_KEY_FIELDS)
    df["group"] = df.groupby(key_columns(COMPARE_KEY_FIELDS), sort=False).ngroup()

    by_group = df.groupby("group", sort=True)
    summary = by_group.agg(
        facility_count=("facility_key", "nunique"),
        min_price=("unit_price", "min"),
        max_price=("unit_price", "max"),
    )
    members = by_group["pos"].apply(list)
    summary = summary[summary["facility_count"] > 1]

    results = []
    for group, row in summary.iterrows():
        positions = members[group]
        first = records[positions[0]]
        detail = tuple(
            f"{records[p].facility_name}: {format_price(records[p].unit_price)}"
            for p in positions
        )
        results.append(CompareResult(
            active_ingredient=first.active_ingredient,
            concentration=first.concentration,
            registration_number=first.registration_number,
            therapeutic_group=first.therapeutic_group,
            facility_count=int(row["facility_count"]),
            min_price=float(row["min_price"]),
            max_price=float(row["max_price"]),
            price_detail=detail,
        ))

    # Stable: drugs with the same ingredient stay in first-seen order
    results.sort(key=lambda r: fold_key(r.active_ingredient))
    return results
