"""
Helpers shared by the analysis modules: record frames, keys, number formatting.
"""
from __future__ import annotations

import datetime as dt
import math
from typing import Sequence

import numpy as np
import pandas as pd

from pricewatch.data.normalize import fold_key
from pricewatch.data.schemas import DrugBidRecord


def records_frame(records: Sequence[DrugBidRecord], key_fields: Sequence[str]) -> pd.DataFrame:
    """One row per record, in the given order.

    ``pos`` is the record's position in the input sequence and ``k_<field>``
    holds the folded grouping value of each key field.
    """
    df = pd.DataFrame({
        "pos": np.arange(len(records), dtype="int64"),
        "unit_price": pd.Series([float(r.unit_price) for r in records], dtype="float64"),
        "quantity": pd.Series([int(r.quantity) for r in records], dtype="int64"),
        "facility_key": [fold_key(r.facility_name) for r in records],
    })
    for name in key_fields:
        df[f"k_{name}"] = [fold_key(getattr(r, name)) for r in records]
    return df


def key_columns(key_fields: Sequence[str]) -> list[str]:
    return [f"k_{name}" for name in key_fields]


def identity_key(record: DrugBidRecord, key_fields: Sequence[str]) -> tuple[str, ...]:
    """Folded tuple of the key fields — two records with equal keys are the same drug."""
    return tuple(fold_key(getattr(record, name)) for name in key_fields)


def format_price(value: float) -> str:
    """10.0 → '10', 12.5 → '12.5'."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def sanitize_for_json(obj):
    """Recursively convert numpy/pandas types to native Python for JSON serialization."""
    if isinstance(obj, dict):
        return {str(k): sanitize_for_json(v) for k, v in obj.items() if k is not None}
    if isinstance(obj, (list, tuple)):
        return [sanitize_for_json(v) for v in obj]
    if isinstance(obj, (np.integer,)):
        return int(obj)
    if isinstance(obj, (np.floating,)):
        v = float(obj)
        return None if (math.isnan(v) or math.isinf(v)) else v
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.ndarray):
        return sanitize_for_json(obj.tolist())
    if isinstance(obj, float):
        return None if (math.isnan(obj) or math.isinf(obj)) else obj
    if isinstance(obj, (pd.Timestamp, dt.datetime, dt.date)):
        return obj.isoformat()
    if pd.api.types.is_scalar(obj) and pd.isna(obj):
        return None
    return obj
