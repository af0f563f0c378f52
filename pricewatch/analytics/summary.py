"""
Working-set overview: distinct drugs and facilities, total purchase value.
"""
from __future__ import annotations

import pandas as pd

from pricewatch.data.normalize import fold_key
from pricewatch.data.schemas import Snapshot


def dataset_summary(snapshot: Snapshot) -> dict:
    """KPIs for the data-management screen.

    A drug here is an (active ingredient, concentration) pair, which is how
    buyers talk about products; the analysis keys are stricter.
    """
    records = snapshot.records
    if not records:
        return {
            "generation": snapshot.generation,
            "records": 0,
            "unique_drugs": 0,
            "unique_facilities": 0,
            "total_value": 0.0,
            "by_batch": [],
        }

    df = pd.DataFrame({
        "drug": [(fold_key(r.active_ingredient), fold_key(r.concentration)) for r in records],
        "facility": [fold_key(r.facility_name) for r in records],
        "batch_id": [r.batch_id for r in records],
        "value": [float(r.unit_price) * r.quantity for r in records],
    })
    by_batch = df.groupby("batch_id", sort=False).agg(
        records=("value", "size"),
        total_value=("value", "sum"),
    ).reset_index()

    return {
        "generation": snapshot.generation,
        "records": len(df),
        "unique_drugs": int(df["drug"].nunique()),
        "unique_facilities": int(df["facility"].nunique()),
        "total_value": float(df["value"].sum()),
        "by_batch": by_batch.to_dict("records"),
    }
