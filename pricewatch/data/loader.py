"""
Spreadsheet decoding, batch ingestion, and the demo dataset.
"""
from __future__ import annotations

import io
import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import numpy as np
import pandas as pd

from pricewatch.config import (
    DEMO_BATCH_NAME, DEMO_COUNTRY, DEMO_DRUGS, DEMO_FACILITIES, DEMO_MANUFACTURERS,
    DEMO_UNIT, SHEET_EXTENSIONS,
)
from pricewatch.data.normalize import normalize_rows
from pricewatch.data.schemas import RowRejection
from pricewatch.data.store import RecordStore
from pricewatch.errors import UnreadableSheetError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def _frame_to_rows(df: pd.DataFrame) -> list[dict[str, Any]]:
    """DataFrame → row mappings with blanks as None."""
    df = df.astype(object).where(df.notna(), None)
    return df.to_dict("records")


def _read_frame(source: Any, filename: str) -> pd.DataFrame:
    suffix = Path(filename).suffix.lower()
    if suffix not in SHEET_EXTENSIONS:
        raise UnreadableSheetError(
            f"Unsupported file type '{suffix or filename}' (expected {', '.join(SHEET_EXTENSIONS)})"
        )
    try:
        if suffix == ".csv":
            return pd.read_csv(source, dtype=object, skipinitialspace=True)
        # Only the first sheet is analysed
        return pd.read_excel(source, sheet_name=0, dtype=object)
    except (ValueError, OSError, zipfile.BadZipFile, pd.errors.ParserError) as exc:
        raise UnreadableSheetError(f"Could not read {filename}: {exc}") from exc


def read_rows(path: str | Path) -> list[dict[str, Any]]:
    """Decode a .xlsx/.xls/.csv file into row mappings."""
    path = Path(path)
    return _frame_to_rows(_read_frame(path, path.name))


def read_rows_bytes(content: bytes, filename: str) -> list[dict[str, Any]]:
    """Decode an uploaded file held in memory."""
    if not content:
        raise UnreadableSheetError(f"{filename} is empty")
    return _frame_to_rows(_read_frame(io.BytesIO(content), filename))


def format_size(num_bytes: int) -> str:
    return f"{num_bytes / 1024:.1f} KB"


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------

@dataclass
class IngestReport:
    """What happened to one sheet: committed rows and per-row rejections."""
    batch_id: str
    display_name: str
    committed: int
    rejections: list[RowRejection] = field(default_factory=list)

    @property
    def rejected(self) -> int:
        return len(self.rejections)

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "display_name": self.display_name,
            "committed": self.committed,
            "rejected": self.rejected,
            "rejections": [r.to_dict() for r in self.rejections],
        }


def ingest_rows(
    store: RecordStore,
    rows: Iterable[Mapping[str, Any]],
    display_name: str,
    source_size: Optional[str] = None,
) -> IngestReport:
    """Normalise rows and commit the valid ones as a single batch.

    Partial success: rejected rows are reported, the rest are stored.
    """
    records, rejections = normalize_rows(rows)
    batch_id = store.append_batch(
        records,
        display_name,
        rejected_count=len(rejections),
        source_size=source_size,
    )
    if rejections:
        logger.warning("%s: %d row(s) rejected", display_name, len(rejections))
    return IngestReport(batch_id, display_name, len(records), rejections)


def ingest_file(store: RecordStore, path: str | Path) -> IngestReport:
    path = Path(path)
    rows = read_rows(path)
    return ingest_rows(store, rows, path.name, source_size=format_size(path.stat().st_size))


# ---------------------------------------------------------------------------
# Demo data
# ---------------------------------------------------------------------------

def demo_rows(seed: int = 0) -> list[dict[str, Any]]:
    """Sample bid sheet: every drug × manufacturer × facility, with price noise.

    Each manufacturer gets a base price; facilities vary it by -200..+299.
    Rows use the BHYT column codes so they go through the normal header
    matching. Same seed, same rows.
    """
    rng = np.random.default_rng(seed)
    rows = []
    for drug in DEMO_DRUGS:
        for manufacturer in DEMO_MANUFACTURERS:
            base_price = int(rng.integers(1000, 6000))
            for facility in DEMO_FACILITIES:
                rows.append({
                    "TEN_HOAT_CHAT": drug["name"],
                    "HAM_LUONG": drug["conc"],
                    "SO_DANG_KY": drug["reg"],
                    "MADUONGDUNG": drug["route"],
                    "NHOM_TCKT": drug["group"],
                    "DON_VI_TINH": DEMO_UNIT,
                    "HANG_SAN_XUAT": manufacturer,
                    "GIA": base_price + int(rng.integers(-200, 300)),
                    "SOLUONG": int(rng.integers(1000, 11000)),
                    "CO_SO_KCB": facility,
                    "NUOC_SAN_XUAT": DEMO_COUNTRY,
                })
    return rows


def ingest_demo(store: RecordStore, seed: int = 0) -> IngestReport:
    return ingest_rows(store, demo_rows(seed), DEMO_BATCH_NAME)
