"""
ALERT mode — records bought above the cheapest price for the identical drug.
"""
from __future__ import annotations

from typing import Sequence

from pricewatch.analytics.common import key_columns, records_frame
from pricewatch.config import ALERT_KEY_FIELDS
from pricewatch.data.schemas import AlertResult, DrugBidRecord


def alert_analysis(records: Sequence[DrugBidRecord]) -> list[AlertResult]:
    """Flag every record priced above its group's minimum.

    Records are grouped on the folded ALERT identity key. Groups where every
    record has the same price are skipped; within the others, records at the
    minimum are not flagged. Output follows group first-seen order, then
    record order inside the group. Nothing is rounded.
    """
    if not records:
        return []

    df = records_frame(records, ALERT_KEY_FIELDS)
    grouped = df.groupby(key_columns(ALERT_KEY_FIELDS), sort=False)
    df["group"] = grouped.ngroup()
    df["min_price"] = grouped["unit_price"].transform("min")
    df["distinct_prices"] = grouped["unit_price"].transform("nunique")

    flagged = df[(df["distinct_prices"] > 1) & (df["unit_price"] > df["min_price"])]
    flagged = flagged.sort_values(["group", "pos"], kind="mergesort")

    results = []
    for pos, min_price in zip(flagged["pos"], flagged["min_price"]):
        record = records[int(pos)]
        min_price = float(min_price)
        delta = float(record.unit_price) - min_price
        results.append(AlertResult(
            record=record,
            min_price_in_group=min_price,
            price_delta=delta,
            excess_cost=delta * record.quantity,
        ))
    return results


def total_excess_cost(results: Sequence[AlertResult]) -> float:
    return float(sum(r.excess_cost for r in results))
